"""LeaseGate engine - election state machine, retry policy and lease checks."""

from leasegate.engine.election import ElectionSession, LeaderElection
from leasegate.engine.evaluator import classify_lease, is_alive, is_owned_by, lease_duration_for
from leasegate.engine.retry import RetryPolicy, with_retries

__all__ = [
    "ElectionSession",
    "LeaderElection",
    "RetryPolicy",
    "classify_lease",
    "is_alive",
    "is_owned_by",
    "lease_duration_for",
    "with_retries",
]
