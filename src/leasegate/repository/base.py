"""Lease repository contract."""

from typing import Any, Callable, Protocol

from leasegate.models import Lease


class LeaseRepository(Protocol):
    """Create/get/patch/delete of a single named lease record.

    Implementations raise ``LeaseConflict`` when creating a name that exists
    and ``LeaseNotFound`` when reading a name that does not.
    """

    async def create(self, lease: Lease) -> Lease: ...

    async def get(self, name: str, namespace: str) -> Lease: ...

    async def patch(self, name: str, namespace: str, patch: dict[str, Any]) -> Lease: ...

    async def delete(self, name: str, namespace: str) -> None: ...


# Called right before every remote call so credentials can be refreshed.
RepositoryProvider = Callable[[], LeaseRepository]


def static_provider(repository: LeaseRepository) -> RepositoryProvider:
    """Provider for a repository that never needs rebuilding."""
    return lambda: repository
