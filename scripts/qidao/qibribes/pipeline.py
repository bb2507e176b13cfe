"""
Bribe pipeline: tally -> chains -> gate -> pool -> allocate -> redistribute.

The pipeline only moves forward:

    START -> AGGREGATED -> CHAIN_AGGREGATED -> GATED_PASS -> POOLED
          -> ALLOCATED -> REDISTRIBUTED -> DONE
    CHAIN_AGGREGATED -> GATED_FAIL -> ABORTED

A failed threshold gate ends the run in ABORTED with only the tally and
chain totals. Any other error propagates; stages that already finished stay
readable on the pipeline instance.
"""
import enum
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple

from .bribes import allocate_bribes, bribe_pool, check_threshold, redistribute_whale_bribes
from .config import BribeConfig
from .errors import ChoiceNotFound, ThresholdNotMet
from .models import BribeResult, ChainTotal, Tally
from .tally import aggregate_chains, aggregate_votes

logger = logging.getLogger(__name__)


class PipelineState(str, enum.Enum):
    START = "start"
    AGGREGATED = "aggregated"
    CHAIN_AGGREGATED = "chain_aggregated"
    GATED_PASS = "gated_pass"
    GATED_FAIL = "gated_fail"
    POOLED = "pooled"
    ALLOCATED = "allocated"
    REDISTRIBUTED = "redistributed"
    DONE = "done"
    ABORTED = "aborted"


_TRANSITIONS = {
    (PipelineState.START, PipelineState.AGGREGATED),
    (PipelineState.AGGREGATED, PipelineState.CHAIN_AGGREGATED),
    (PipelineState.CHAIN_AGGREGATED, PipelineState.GATED_PASS),
    (PipelineState.CHAIN_AGGREGATED, PipelineState.GATED_FAIL),
    (PipelineState.GATED_FAIL, PipelineState.ABORTED),
    (PipelineState.GATED_PASS, PipelineState.POOLED),
    (PipelineState.POOLED, PipelineState.ALLOCATED),
    (PipelineState.ALLOCATED, PipelineState.REDISTRIBUTED),
    (PipelineState.REDISTRIBUTED, PipelineState.DONE),
}


class TransitionError(Exception):
    """Raised when a state transition is not allowed."""


@dataclass(frozen=True)
class PipelineResult:
    state: PipelineState
    tally: Tally
    chain_totals: Tuple[ChainTotal, ...]
    tracked_choice: str
    bribes: Optional[BribeResult] = None
    error: Optional[ThresholdNotMet] = None

    @property
    def aborted(self) -> bool:
        return self.state == PipelineState.ABORTED


class BribePipeline:
    """
    Usage:
        pipeline = BribePipeline(votes, choices, config)
        result = pipeline.run()
    """

    def __init__(self, votes, choices, config: Optional[BribeConfig] = None) -> None:
        self.votes = tuple(votes)
        self.choices = dict(choices)
        self.config = config or BribeConfig()
        self.state = PipelineState.START
        self.tally = None
        self.chain_totals = None
        self.bribes = None

    def _advance(self, new_state):
        if (self.state, new_state) not in _TRANSITIONS:
            raise TransitionError(f"Illegal transition: {self.state.value} -> {new_state.value}")
        logger.debug(f"Pipeline {self.state.value} -> {new_state.value}")
        self.state = new_state

    def tracked_choice_id(self):
        for choice_id, label in self.choices.items():
            if label == self.config.tracked_choice:
                return choice_id
        raise ChoiceNotFound(self.config.tracked_choice)

    def run(self) -> PipelineResult:
        cfg = self.config
        tracked_id = self.tracked_choice_id()

        self.tally = aggregate_votes(self.votes, self.choices)
        self._advance(PipelineState.AGGREGATED)

        self.chain_totals = aggregate_chains(self.tally)
        self._advance(PipelineState.CHAIN_AGGREGATED)

        try:
            check_threshold(self.chain_totals, cfg.tracked_choice, cfg.min_chain_percent)
        except ThresholdNotMet as e:
            self._advance(PipelineState.GATED_FAIL)
            self._advance(PipelineState.ABORTED)
            logger.error(f"❌ {e}")
            return PipelineResult(
                self.state, self.tally, self.chain_totals, cfg.tracked_choice, error=e
            )
        self._advance(PipelineState.GATED_PASS)

        tracked = self.tally.by_choice.get(tracked_id)
        tracked_amount = tracked.amount if tracked else Decimal(0)
        tracked_percentage = tracked.percentage if tracked else Decimal(0)
        pool = bribe_pool(tracked_percentage, cfg.rate_per_percent)
        self._advance(PipelineState.POOLED)

        records = allocate_bribes(self.votes, tracked_id, tracked_amount, pool)
        self._advance(PipelineState.ALLOCATED)

        self.bribes = redistribute_whale_bribes(
            records,
            pool,
            tracked_percentage,
            cfg.whale_threshold,
            cfg.exempt_addresses,
            cfg.redistribution_rate,
        )
        self._advance(PipelineState.REDISTRIBUTED)
        self._advance(PipelineState.DONE)

        return PipelineResult(
            self.state, self.tally, self.chain_totals, cfg.tracked_choice, bribes=self.bribes
        )


def run_pipeline(votes, choices, config=None) -> PipelineResult:
    return BribePipeline(votes, choices, config).run()
