"""Test doubles shared by the LeaseGate test suite."""

from datetime import datetime, timedelta
from typing import Any

from leasegate.errors import LeaseApiError
from leasegate.models import CandidateIdentity, Lease

NAMESPACE = "baz"
LEASE_NAME = "foo"
INTERVAL = 30


class StopLoop(Exception):
    """Raised by the fake sleep to break out of never-ending loops."""


class FakeSleep:
    """Records requested delays instead of waiting; optionally stops after N calls."""

    def __init__(self, stop_after: int | None = None):
        self.calls: list[float] = []
        self.stop_after = stop_after

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        if self.stop_after is not None and len(self.calls) >= self.stop_after:
            raise StopLoop()


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class AdvancingSleep(FakeSleep):
    """Fake sleep that moves a FakeClock forward by the requested delay."""

    def __init__(self, clock: FakeClock, stop_after: int | None = None):
        super().__init__(stop_after)
        self.clock = clock

    async def __call__(self, delay: float) -> None:
        self.clock.advance(delay)
        await super().__call__(delay)


class RecordingRepository:
    """
    Wraps a repository, counting calls and failing on demand.

    ``failures[method]`` is a list of exceptions raised (in order) before the
    call reaches the wrapped repository.
    """

    def __init__(self, inner: Any):
        self.inner = inner
        self.calls: dict[str, int] = {"create": 0, "get": 0, "patch": 0, "delete": 0}
        self.failures: dict[str, list[BaseException]] = {}
        self.always_fail: dict[str, BaseException] = {}

    def _maybe_fail(self, method: str) -> None:
        self.calls[method] += 1
        if method in self.always_fail:
            raise self.always_fail[method]
        pending = self.failures.get(method)
        if pending:
            raise pending.pop(0)

    async def create(self, lease):
        self._maybe_fail("create")
        return await self.inner.create(lease)

    async def get(self, name, namespace):
        self._maybe_fail("get")
        return await self.inner.get(name, namespace)

    async def patch(self, name, namespace, patch):
        self._maybe_fail("patch")
        return await self.inner.patch(name, namespace, patch)

    async def delete(self, name, namespace):
        self._maybe_fail("delete")
        return await self.inner.delete(name, namespace)


def server_error() -> LeaseApiError:
    return LeaseApiError(500, "500: Internal Server Error")


def make_identity(name: str) -> CandidateIdentity:
    return CandidateIdentity(name=name, uid=f"uid-{name}", namespace=NAMESPACE)


def make_lease(owner: str, renew_time: datetime) -> Lease:
    return Lease(
        name=LEASE_NAME,
        namespace=NAMESPACE,
        owner_identity=owner,
        owner_uid=f"uid-{owner}",
        holder_identity=owner,
        acquire_time=renew_time,
        renew_time=renew_time,
        lease_duration_seconds=INTERVAL * 2,
    )


