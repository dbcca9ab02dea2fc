"""LeaseGate enumerations."""

from enum import Enum


class ElectionPhase(str, Enum):
    """Election session phase."""

    ACQUIRING = "acquiring"
    LEADING = "leading"
    FAILED = "failed"


class LeaseStanding(str, Enum):
    """How an existing lease relates to the candidate looking at it."""

    # Recorded owner is us, e.g. after a restart
    OWNED_BY_SELF = "owned_by_self"
    # Somebody else's lease that stopped being renewed
    STALE = "stale"
    # Somebody else's live lease
    HELD_BY_OTHER = "held_by_other"
