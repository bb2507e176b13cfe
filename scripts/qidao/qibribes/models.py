"""
Records passed between pipeline stages.

All amounts are Decimal. Records are frozen; a stage that needs to add
fields returns new records instead of updating old ones.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Vote:
    voter: str
    vp: Decimal
    choice: Mapping[int, Decimal]
    vote_id: Optional[str] = None
    created: Optional[int] = None

    @property
    def total_weight(self) -> Decimal:
        return sum(self.choice.values(), Decimal(0))


@dataclass(frozen=True)
class VoteTotal:
    choice_id: int
    label: str
    amount: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class ChainTotal:
    chain: str
    percentage: Decimal


@dataclass(frozen=True)
class Tally:
    """Per-choice totals, ordered by amount descending then choice id."""
    totals: Tuple[VoteTotal, ...]
    total_vote: Decimal

    @property
    def by_choice(self) -> Dict[int, VoteTotal]:
        return {t.choice_id: t for t in self.totals}


@dataclass(frozen=True)
class BribeRecord:
    voter: str
    vp: Decimal
    choice_percentage: Decimal
    raw_bribe: Decimal
    whale_adjustment: Decimal = Decimal(0)
    final_bribe: Decimal = Decimal(0)
    rate_per_percent: Decimal = Decimal(0)
    is_whale: bool = False


@dataclass(frozen=True)
class BribeResult:
    pool: Decimal
    tracked_percentage: Decimal
    clawed_back: Decimal
    total_bribes: Decimal
    records: Dict[str, BribeRecord] = field(default_factory=dict)
