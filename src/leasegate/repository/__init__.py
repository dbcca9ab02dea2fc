"""Lease repositories."""

from leasegate.repository.base import LeaseRepository, RepositoryProvider, static_provider
from leasegate.repository.kubernetes import (
    KubernetesLeaseRepository,
    create_http_client,
    kubernetes_repository_provider,
)
from leasegate.repository.memory import InMemoryLeaseRepository

__all__ = [
    "InMemoryLeaseRepository",
    "KubernetesLeaseRepository",
    "LeaseRepository",
    "RepositoryProvider",
    "create_http_client",
    "kubernetes_repository_provider",
    "static_provider",
]
