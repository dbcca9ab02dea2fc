"""In-process lease store for local development and tests."""

import asyncio
from typing import Any

from leasegate.errors import LeaseConflict, LeaseNotFound
from leasegate.models import Lease


def _merge(target: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """RFC 7386 merge: nested dicts merge, None removes a key."""
    for key, value in patch.items():
        if value is None:
            target.pop(key, None)
        elif isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge(target[key], value)
        else:
            target[key] = value
    return target


class InMemoryLeaseRepository:
    """
    Lease store keyed by (namespace, name).

    Enforces create-uniqueness the same way the API server does, so several
    candidates sharing one instance race exactly like separate pods.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._leases: dict[tuple[str, str], dict[str, Any]] = {}
        self._version = 0

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    async def create(self, lease: Lease) -> Lease:
        async with self._lock:
            key = (lease.namespace, lease.name)
            if key in self._leases:
                raise LeaseConflict(lease.name)
            body = lease.to_manifest()
            body["metadata"]["resourceVersion"] = self._next_version()
            self._leases[key] = body
            return Lease.from_manifest(body)

    async def get(self, name: str, namespace: str) -> Lease:
        async with self._lock:
            body = self._leases.get((namespace, name))
            if body is None:
                raise LeaseNotFound(name)
            return Lease.from_manifest(body)

    async def patch(self, name: str, namespace: str, patch: dict[str, Any]) -> Lease:
        async with self._lock:
            body = self._leases.get((namespace, name))
            if body is None:
                raise LeaseNotFound(name)
            _merge(body, patch)
            body["metadata"]["resourceVersion"] = self._next_version()
            return Lease.from_manifest(body)

    async def delete(self, name: str, namespace: str) -> None:
        async with self._lock:
            if self._leases.pop((namespace, name), None) is None:
                raise LeaseNotFound(name)

    async def put(self, lease: Lease) -> None:
        """Store ``lease`` unconditionally, replacing any existing record."""
        async with self._lock:
            body = lease.to_manifest()
            body["metadata"]["resourceVersion"] = self._next_version()
            self._leases[(lease.namespace, lease.name)] = body
