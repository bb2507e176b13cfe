"""Error types raised by the bribe calculator.

Every error aborts the run at the stage that raised it. Nothing is retried
and no default is substituted.
"""


class BribeError(Exception):
    """Base class for all bribe calculator errors."""


class ConfigError(BribeError):
    """Raised when an environment or CLI setting cannot be parsed."""


class SnapshotQueryError(BribeError):
    """Raised when the Snapshot hub answers with errors or unusable data."""


class ZeroWeightVote(BribeError):
    """A vote whose choice weights sum to zero cannot be normalized."""

    def __init__(self, vote_id, voter):
        self.vote_id = vote_id
        self.voter = voter
        super().__init__(
            f"vote {vote_id or '?'} from {voter} has choice weights summing to zero"
        )


class InvalidVote(BribeError):
    """A vote with negative voting power or a non-positive choice weight."""

    def __init__(self, vote_id, voter, reason):
        self.vote_id = vote_id
        self.voter = voter
        self.reason = reason
        super().__init__(f"vote {vote_id or '?'} from {voter}: {reason}")


class MalformedLabel(BribeError):
    """A choice label has no '(<chain>)' tag."""

    def __init__(self, label):
        self.label = label
        super().__init__(f"cannot parse chain tag from choice label {label!r}")


class ChoiceNotFound(BribeError):
    """A vote (or the tracked choice) references a choice that does not exist."""

    def __init__(self, choice, vote_id=None):
        self.choice = choice
        self.vote_id = vote_id
        where = f" (vote {vote_id})" if vote_id else ""
        super().__init__(f"choice {choice!r} not found in proposal choices{where}")


class ThresholdNotMet(BribeError):
    """The tracked chain did not reach the minimum share of the vote."""

    def __init__(self, chain, percentage, minimum):
        self.chain = chain
        self.percentage = percentage
        self.minimum = minimum
        super().__init__(
            f"no bribes, {chain} did not cross threshold "
            f"({percentage}% < {minimum}%)"
        )
