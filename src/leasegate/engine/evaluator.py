"""Staleness and ownership checks for a lease snapshot."""

import math
from datetime import datetime, timedelta

from leasegate.models import CandidateIdentity, Lease, LeaseStanding


def stale_after(interval_seconds: float) -> timedelta:
    """A lease not renewed for twice the election interval is abandoned."""
    return timedelta(seconds=2 * interval_seconds)


def lease_duration_for(interval_seconds: float) -> int:
    """Whole seconds advertised as leaseDurationSeconds, never below one."""
    return max(1, math.ceil(2 * interval_seconds))


def is_alive(lease: Lease, now: datetime, interval_seconds: float) -> bool:
    """Check if the lease was renewed recently enough to be trusted."""
    if lease.renew_time is None:
        return False
    return lease.renew_time > now - stale_after(interval_seconds)


def is_owned_by(lease: Lease, identity: CandidateIdentity) -> bool:
    """Check if the lease names ``identity`` as its owner."""
    return lease.owner_identity == identity.name


def classify_lease(
    lease: Lease,
    identity: CandidateIdentity,
    now: datetime,
    interval_seconds: float,
) -> LeaseStanding:
    """
    Decide what an existing lease means for ``identity``.

    Ownership wins over staleness: a restarted leader keeps its own lease
    even when it went unrenewed while the process was down.
    """
    if is_owned_by(lease, identity):
        return LeaseStanding.OWNED_BY_SELF
    if not is_alive(lease, now, interval_seconds):
        return LeaseStanding.STALE
    return LeaseStanding.HELD_BY_OTHER
