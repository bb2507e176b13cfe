import logging
from dataclasses import replace
from decimal import Decimal, getcontext

from .errors import ThresholdNotMet
from .models import BribeRecord, BribeResult
from .tally import check_vote, parse_chain

logger = logging.getLogger(__name__)
getcontext().prec = 50

# Constants
DEFAULT_MIN_CHAIN_PERCENT = Decimal("8.333")
DEFAULT_RATE_PER_PERCENT = Decimal(1000)
DEFAULT_WHALE_THRESHOLD = Decimal(250000)
DEFAULT_REDISTRIBUTION_RATE = Decimal(20)
TETU_ADDRESS = "0x0644141dd9c2c34802d28d334217bd2034206bf7"


def check_threshold(chain_totals, tracked_choice, minimum=DEFAULT_MIN_CHAIN_PERCENT) -> Decimal:
    """
    Check that the tracked choice's chain holds at least `minimum` percent
    of the vote (inclusive). Returns the chain percentage.
    """
    chain = parse_chain(tracked_choice)
    percentage = next(
        (c.percentage for c in chain_totals if c.chain == chain), Decimal(0)
    )
    if percentage < Decimal(minimum):
        raise ThresholdNotMet(chain, percentage, Decimal(minimum))
    logger.info(f"✅ {chain} has {percentage}% of the vote (minimum {minimum}%)")
    return percentage


def bribe_pool(tracked_percentage, rate_per_percent=DEFAULT_RATE_PER_PERCENT) -> Decimal:
    return Decimal(tracked_percentage) * Decimal(rate_per_percent)


def allocate_bribes(votes, tracked_choice_id, tracked_amount, pool):
    """
    Split the pool among voters who put weight on the tracked choice,
    proportional to their contribution to that choice's total.

    A voter appearing in more than one vote keeps only the last record.
    Returns a dict voter -> BribeRecord (no whale adjustment yet).
    """
    records = {}
    if tracked_amount == 0:
        logger.warning("⚠️ Tracked choice received no votes, nothing to allocate")
        return records
    for vote in votes:
        if tracked_choice_id not in vote.choice:
            continue
        total_weight = check_vote(vote)
        if vote.vp == 0:
            continue

        choice_vote = Decimal(vote.vp) * Decimal(vote.choice[tracked_choice_id]) / total_weight
        choice_percentage = choice_vote / tracked_amount * 100
        raw_bribe = pool * choice_percentage / 100

        if vote.voter in records:
            logger.warning(f"⚠️ Voter {vote.voter} appears in more than one vote, keeping the later record")
        records[vote.voter] = BribeRecord(
            voter=vote.voter,
            vp=Decimal(vote.vp),
            choice_percentage=choice_percentage,
            raw_bribe=raw_bribe,
        )
    logger.info(f"ℹ️ Allocated {pool} across {len(records)} voters")
    return records


def normalize_exempt(addresses):
    return frozenset(a.lower() for a in addresses)


def is_whale(voter, vp, whale_threshold=DEFAULT_WHALE_THRESHOLD, exempt=frozenset({TETU_ADDRESS})):
    """`exempt` holds lower-cased addresses, see normalize_exempt()."""
    if voter.lower() in exempt:
        return False
    return Decimal(vp) > Decimal(whale_threshold)


def redistribute_whale_bribes(
    records,
    pool,
    tracked_percentage,
    whale_threshold=DEFAULT_WHALE_THRESHOLD,
    exempt=(TETU_ADDRESS,),
    redistribution_rate=DEFAULT_REDISTRIBUTION_RATE,
) -> BribeResult:
    """
    Claw back whale bribes and hand `redistribution_rate` percent of the
    clawed back amount to everyone else.

    Each non-whale gets choice_percentage/100 * clawed_back * rate/100. The
    share is taken against the tracked choice's full vote, whales included,
    so the redistributed sum is below rate% of clawed_back whenever whales
    hold part of the choice.
    """
    exempt = normalize_exempt(exempt)
    whales = {
        voter for voter, r in records.items()
        if is_whale(voter, r.vp, whale_threshold, exempt)
    }

    # Pass 1: whale-only sum over untouched records
    clawed_back = sum((records[v].raw_bribe for v in whales), Decimal(0))
    logger.info(f"ℹ️ Clawed back {clawed_back} from {len(whales)} whales")

    # Pass 2
    rate = Decimal(redistribution_rate)
    adjusted = {}
    for voter, r in records.items():
        if voter in whales:
            whale_adjustment = -r.raw_bribe
        else:
            whale_adjustment = r.choice_percentage * clawed_back * rate / 100 / 100
        final_bribe = r.raw_bribe + whale_adjustment
        denom = r.choice_percentage * Decimal(tracked_percentage) / 100
        adjusted[voter] = replace(
            r,
            whale_adjustment=whale_adjustment,
            final_bribe=final_bribe,
            rate_per_percent=final_bribe / denom if denom else Decimal(0),
            is_whale=voter in whales,
        )

    total_bribes = sum((r.final_bribe for r in adjusted.values()), Decimal(0))
    return BribeResult(
        pool=Decimal(pool),
        tracked_percentage=Decimal(tracked_percentage),
        clawed_back=clawed_back,
        total_bribes=total_bribes,
        records=adjusted,
    )
