"""LeaseGate data models."""

from leasegate.models.enums import ElectionPhase, LeaseStanding
from leasegate.models.lease import CandidateIdentity, Lease, renewal_patch

__all__ = [
    "CandidateIdentity",
    "ElectionPhase",
    "Lease",
    "LeaseStanding",
    "renewal_patch",
]
