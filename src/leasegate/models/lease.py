"""Lease model - the shared leadership record."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from leasegate.utils.time import format_microtime, parse_microtime

LEASE_API_VERSION = "coordination.k8s.io/v1"


class CandidateIdentity(BaseModel):
    """The process taking part in the election."""

    name: str
    uid: str
    namespace: str


class Lease(BaseModel):
    """Represents the current leadership claim and its freshness."""

    name: str
    namespace: str
    owner_identity: Optional[str] = None
    owner_uid: Optional[str] = None
    holder_identity: Optional[str] = None
    acquire_time: Optional[datetime] = None
    renew_time: Optional[datetime] = None
    lease_duration_seconds: Optional[int] = None
    lease_transitions: int = 0  # never changes, leases are deleted instead of handed over
    resource_version: Optional[str] = None

    @classmethod
    def for_candidate(
        cls,
        name: str,
        identity: CandidateIdentity,
        now: datetime,
        lease_duration_seconds: int,
    ) -> "Lease":
        """Build a fresh lease claimed by ``identity``."""
        return cls(
            name=name,
            namespace=identity.namespace,
            owner_identity=identity.name,
            owner_uid=identity.uid,
            holder_identity=identity.name,
            acquire_time=now,
            renew_time=now,
            lease_duration_seconds=lease_duration_seconds,
            lease_transitions=0,
        )

    def to_manifest(self) -> dict[str, Any]:
        """Serialize to a coordination.k8s.io/v1 Lease body."""
        metadata: dict[str, Any] = {"name": self.name, "namespace": self.namespace}
        # owner reference to the hosting pod lets the cluster GC delete the lease
        if self.owner_identity:
            metadata["ownerReferences"] = [
                {
                    "apiVersion": "v1",
                    "kind": "Pod",
                    "name": self.owner_identity,
                    "uid": self.owner_uid,
                }
            ]

        spec: dict[str, Any] = {"leaseTransitions": self.lease_transitions}
        if self.holder_identity is not None:
            spec["holderIdentity"] = self.holder_identity
        if self.lease_duration_seconds is not None:
            spec["leaseDurationSeconds"] = self.lease_duration_seconds
        if self.acquire_time is not None:
            spec["acquireTime"] = format_microtime(self.acquire_time)
        if self.renew_time is not None:
            spec["renewTime"] = format_microtime(self.renew_time)

        return {
            "apiVersion": LEASE_API_VERSION,
            "kind": "Lease",
            "metadata": metadata,
            "spec": spec,
        }

    @classmethod
    def from_manifest(cls, body: dict[str, Any]) -> "Lease":
        """
        Parse a Lease body returned by the API.

        The first owner reference names the owner. Leases created without one
        fall back to ``spec.holderIdentity``.
        """
        metadata = body.get("metadata") or {}
        spec = body.get("spec") or {}
        owner_refs = metadata.get("ownerReferences") or []
        owner = owner_refs[0] if owner_refs else {}

        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            owner_identity=owner.get("name") or spec.get("holderIdentity"),
            owner_uid=owner.get("uid"),
            holder_identity=spec.get("holderIdentity"),
            acquire_time=parse_microtime(spec.get("acquireTime")),
            renew_time=parse_microtime(spec.get("renewTime")),
            lease_duration_seconds=spec.get("leaseDurationSeconds"),
            lease_transitions=spec.get("leaseTransitions") or 0,
            resource_version=metadata.get("resourceVersion"),
        )


def renewal_patch(now: datetime) -> dict[str, Any]:
    """Merge patch that only moves renewTime forward."""
    return {"spec": {"renewTime": format_microtime(now)}}
