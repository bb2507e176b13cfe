import logging
from decimal import Decimal, getcontext

from .errors import ChoiceNotFound, InvalidVote, MalformedLabel, ZeroWeightVote
from .models import ChainTotal, Tally, VoteTotal

logger = logging.getLogger(__name__)

# High precision so summed percentages land on 100
getcontext().prec = 50


def check_vote(vote):
    """
    Reject votes that cannot be split: weights summing to zero, any weight
    that is not positive, or negative voting power.
    Returns the vote's total weight.
    """
    vp = Decimal(vote.vp)
    if not vp.is_finite() or vp < 0:
        raise InvalidVote(vote.vote_id, vote.voter, f"voting power must be a non-negative number, got {vp}")
    for choice_id, weight in vote.choice.items():
        weight = Decimal(weight)
        if not weight.is_finite():
            raise InvalidVote(vote.vote_id, vote.voter, f"weight for choice {choice_id} is {weight}")
    total_weight = vote.total_weight
    if total_weight <= 0:
        raise ZeroWeightVote(vote.vote_id, vote.voter)
    for choice_id, weight in vote.choice.items():
        if weight <= 0:
            raise InvalidVote(vote.vote_id, vote.voter, f"weight for choice {choice_id} must be positive, got {weight}")
    return total_weight


def vote_weight_split(vote):
    """
    Normalize a vote's choice weights against its voting power.
    Returns a dict choice_id -> vp * weight / total_weight.
    """
    total_weight = check_vote(vote)
    vp = Decimal(vote.vp)
    return {
        choice_id: vp * Decimal(weight) / total_weight
        for choice_id, weight in vote.choice.items()
    }


def aggregate_votes(votes, choices) -> Tally:
    """
    Fold every vote into per-choice totals and percentages of the whole vote.

    Args:
        votes: iterable of Vote records (any order)
        choices: dict mapping 1-based choice id -> label

    Returns:
        Tally with totals sorted by amount descending, ties by choice id.
    """
    amounts = {}
    count = 0
    for vote in votes:
        for choice_id in vote.choice:
            if choice_id not in choices:
                raise ChoiceNotFound(choice_id, vote.vote_id)
        for choice_id, amount in vote_weight_split(vote).items():
            amounts[choice_id] = amounts.get(choice_id, Decimal(0)) + amount
        count += 1

    # Summed in display order so sum(totals) == total_vote holds exactly
    ordered = sorted(amounts.items(), key=lambda kv: (-kv[1], kv[0]))
    total_vote = sum((amount for _, amount in ordered), Decimal(0))
    logger.info(f"ℹ️ Tallied {count} votes over {len(amounts)} choices, total vote {total_vote}")
    if total_vote == 0:
        logger.warning("⚠️ Total vote is zero, all percentages reported as 0")

    totals = tuple(
        VoteTotal(
            choice_id,
            choices[choice_id],
            amount,
            amount / total_vote * 100 if total_vote else Decimal(0),
        )
        for choice_id, amount in ordered
    )
    return Tally(totals, total_vote)


def parse_chain(label):
    """Return the tag between the first '(' and its matching ')'."""
    start = label.find("(")
    if start < 0:
        raise MalformedLabel(label)
    depth = 0
    for i in range(start, len(label)):
        if label[i] == "(":
            depth += 1
        elif label[i] == ")":
            depth -= 1
            if depth == 0:
                return label[start + 1:i]
    raise MalformedLabel(label)


def aggregate_chains(tally):
    """
    Sum choice percentages per chain tag.
    Returns a tuple of ChainTotal sorted by percentage descending, ties by tag.
    """
    by_chain = {}
    for total in tally.totals:
        chain = parse_chain(total.label)
        by_chain[chain] = by_chain.get(chain, Decimal(0)) + total.percentage

    chains = [ChainTotal(chain, pct) for chain, pct in by_chain.items()]
    chains.sort(key=lambda c: (-c.percentage, c.chain))
    return tuple(chains)
