"""Leader election state machine and heartbeat loop."""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence

from leasegate.engine.evaluator import classify_lease, lease_duration_for
from leasegate.engine.retry import RetryPolicy, SleepFunc
from leasegate.errors import (
    TRANSIENT_ERRORS,
    LeaseConflict,
    LeaseGateError,
    LeaseNotFound,
    LostLeadership,
    is_already_exists,
)
from leasegate.models import CandidateIdentity, ElectionPhase, Lease, LeaseStanding, renewal_patch
from leasegate.observability.metrics import MetricsSink, metrics
from leasegate.repository.base import LeaseRepository, RepositoryProvider
from leasegate.utils.time import utc_now

if TYPE_CHECKING:
    from leasegate.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_RETRY_BACKOFFS = (0.1, 0.5, 1, 2, 4)


@dataclass
class ElectionSession:
    """In-memory state of one election run, owned by the election task."""

    lease_name: str
    identity: CandidateIdentity
    interval_seconds: float
    phase: ElectionPhase = ElectionPhase.ACQUIRING
    leader_since: Optional[datetime] = None
    failure: Optional[BaseException] = None


class LeaderElection:
    """
    Lease-based leader election.

    Every candidate tries to create the same lease; whoever the API server
    accepts first is the leader and keeps renewing it. Candidates that find
    a lease nobody renewed for two intervals delete it so the next round can
    elect a new leader. The lease carries an owner reference to the pod, so
    it is also garbage collected when the leader's pod goes away.

    Usage:
        election = LeaderElection("my-app", provider, identity)
        await election.become_leader_for_life(on_become_leader=promoted.set)
    """

    def __init__(
        self,
        name: str,
        repository_provider: RepositoryProvider,
        identity: CandidateIdentity,
        *,
        interval_seconds: float = 30,
        retry_backoffs: Sequence[float] = DEFAULT_RETRY_BACKOFFS,
        heartbeat_max_retries: int = 3,
        metrics_sink: MetricsSink = metrics,
        clock: Callable[[], datetime] = utc_now,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.name = name
        self._provider = repository_provider
        self._metrics = metrics_sink
        self._clock = clock
        self._sleep = sleep
        self._started = False

        self._session = ElectionSession(
            lease_name=name,
            identity=identity,
            interval_seconds=interval_seconds,
        )
        backoffs = tuple(retry_backoffs)
        self._acquire_policy = RetryPolicy(
            errors=TRANSIENT_ERRORS,
            backoffs=backoffs,
            max_retries=len(backoffs),
            sleep=sleep,
        )
        # A leader that cannot renew quickly must stop leading before the
        # other candidates consider its lease stale.
        self._heartbeat_policy = RetryPolicy(
            errors=TRANSIENT_ERRORS,
            backoffs=backoffs,
            max_retries=heartbeat_max_retries,
            sleep=sleep,
        )

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        repository_provider: RepositoryProvider,
        identity: CandidateIdentity,
        **kwargs: Any,
    ) -> "LeaderElection":
        return cls(
            settings.lease_name,
            repository_provider,
            identity,
            interval_seconds=settings.election_interval_seconds,
            retry_backoffs=settings.retry_backoffs,
            heartbeat_max_retries=settings.heartbeat_max_retries,
            **kwargs,
        )

    @property
    def session(self) -> ElectionSession:
        return self._session

    @property
    def phase(self) -> ElectionPhase:
        return self._session.phase

    @property
    def is_leader(self) -> bool:
        return self._session.phase == ElectionPhase.LEADING

    @property
    def identity(self) -> CandidateIdentity:
        return self._session.identity

    @property
    def interval_seconds(self) -> float:
        return self._session.interval_seconds

    def _repository(self) -> LeaseRepository:
        return self._provider()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def become_leader_for_life(self, on_become_leader: Callable[[], Any]) -> None:
        """
        Block until elected, signal promotion once, then renew forever.

        Never returns normally. Any error that escapes (lost leadership,
        exhausted retries, unexpected API answers) marks the session failed
        and is re-raised; the hosting process must stop leader-only work.
        """
        if self._started:
            raise LeaseGateError("Election already started", "ELECTION_ALREADY_STARTED")
        self._started = True

        logger.info(
            f"Trying to become leader... if all replicas show this, delete the {self.name} lease",
            extra={"lease": self.name, "identity": self.identity.name},
        )
        try:
            while not await self.attempt_acquisition():
                await self._sleep(self.interval_seconds)

            self._session.phase = ElectionPhase.LEADING
            self._session.leader_since = self._clock()
            self._metrics.inc_counter("leader_election.promotions")
            self._metrics.set_gauge("leader_election.is_leader", 1)

            result = on_become_leader()
            if inspect.isawaitable(result):
                await result

            await self._heartbeat_loop()
        except asyncio.CancelledError:
            raise
        except BaseException as e:
            self._session.phase = ElectionPhase.FAILED
            self._session.failure = e
            self._metrics.set_gauge("leader_election.is_leader", 0)
            raise

    async def _heartbeat_loop(self) -> None:
        while True:
            self._metrics.inc_counter("leader_running")
            await self._sleep(self.interval_seconds)
            await self.signal_alive()

    # ------------------------------------------------------------------
    # Acquisition
    # ------------------------------------------------------------------

    async def attempt_acquisition(self) -> bool:
        """
        Try once to become leader.

        Returns True when we created the lease or already own it, False
        when somebody else holds a live lease or a stale one was just
        cleaned up.
        """
        self._metrics.inc_counter("leader_election.attempts")
        identity = self.identity

        async def create() -> Lease:
            # fresh timestamps per attempt, a retried create must not start out stale
            candidate = Lease.for_candidate(
                self.name,
                identity,
                self._clock(),
                lease_duration_seconds=lease_duration_for(self.interval_seconds),
            )
            return await self._repository().create(candidate)

        try:
            await self._acquire_policy.run(create, no_retry=is_already_exists)
        except LeaseConflict:
            return await self._inspect_existing_lease()

        logger.info("Became leader", extra={"lease": self.name, "identity": identity.name})
        return True

    async def _inspect_existing_lease(self) -> bool:
        identity = self.identity
        lease = await self._fetch_lease()

        if lease is None:
            # gone between the conflict and the read; let the next round race for it
            logger.info("Stale lease was deleted", extra={"lease": self.name})
            return False

        standing = classify_lease(lease, identity, self._clock(), self.interval_seconds)

        if standing == LeaseStanding.OWNED_BY_SELF:
            logger.info("Still leader", extra={"lease": self.name, "identity": identity.name})
            return True

        if standing == LeaseStanding.STALE:
            # Races with a candidate that just recreated the lease; accepted,
            # preventing it needs a delete precondition on resourceVersion.
            logger.info(
                f"Deleting stale lease held by {lease.owner_identity}",
                extra={
                    "lease": self.name,
                    "owner": lease.owner_identity,
                    "renew_time": lease.renew_time.isoformat() if lease.renew_time else None,
                },
            )
            await self._delete_lease()
            self._metrics.inc_counter("leader_election.stale_deleted")
            return False

        # leader is alive, not logging to avoid noise every interval
        return False

    async def _fetch_lease(self) -> Optional[Lease]:
        namespace = self.identity.namespace

        async def fetch() -> Optional[Lease]:
            try:
                return await self._repository().get(self.name, namespace)
            except LeaseNotFound:
                return None

        return await self._acquire_policy.run(fetch)

    async def _delete_lease(self) -> None:
        namespace = self.identity.namespace

        async def delete() -> None:
            try:
                await self._repository().delete(self.name, namespace)
            except LeaseNotFound:
                pass  # another candidate cleaned it up first

        await self._acquire_policy.run(delete)

    # ------------------------------------------------------------------
    # Renewal
    # ------------------------------------------------------------------

    async def signal_alive(self) -> Lease:
        """
        Renew the lease, or raise because we can no longer prove leadership.

        Raises LostLeadership when the renewed lease names another owner or
        the lease disappeared; transient errors surface once the heartbeat
        retry budget is spent.
        """
        identity = self.identity

        async def renew() -> Lease:
            return await self._repository().patch(
                self.name, identity.namespace, renewal_patch(self._clock())
            )

        try:
            lease = await self._heartbeat_policy.run(
                renew, no_retry=lambda e: isinstance(e, LeaseNotFound)
            )
        except LeaseNotFound as e:
            raise LostLeadership(None) from e

        if lease.owner_identity != identity.name:
            raise LostLeadership(lease.owner_identity)
        return lease
