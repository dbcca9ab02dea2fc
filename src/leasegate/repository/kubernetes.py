"""Lease repository backed by the Kubernetes coordination API."""

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

import httpx

from leasegate.errors import (
    ALREADY_EXISTS_CODE,
    NOT_FOUND_CODE,
    LeaseApiError,
    LeaseConflict,
    LeaseNotFound,
)
from leasegate.models import Lease
from leasegate.observability.metrics import metrics
from leasegate.repository.base import RepositoryProvider

if TYPE_CHECKING:
    from leasegate.config import Settings

logger = logging.getLogger(__name__)

LEASES_API_PATH = "/apis/coordination.k8s.io/v1"
MERGE_PATCH_CONTENT_TYPE = "application/merge-patch+json"


class KubernetesLeaseRepository:
    """
    Lease CRUD over a shared ``httpx.AsyncClient``.

    Usage:
        async with create_http_client(settings) as client:
            repo = KubernetesLeaseRepository(client, token="...")
            lease = await repo.get("my-app", "default")
    """

    def __init__(self, client: httpx.AsyncClient, token: Optional[str] = None):
        self._client = client
        self._headers = {"Accept": "application/json"}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    @staticmethod
    def _collection_path(namespace: str) -> str:
        return f"{LEASES_API_PATH}/namespaces/{namespace}/leases"

    def _item_path(self, name: str, namespace: str) -> str:
        return f"{self._collection_path(namespace)}/{name}"

    async def _request(
        self,
        method: str,
        path: str,
        name: str,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        request_headers = dict(self._headers)
        if headers:
            request_headers.update(headers)

        start_time = time.perf_counter()
        try:
            response = await self._client.request(
                method, path, json=json, headers=request_headers
            )
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000.0
            metrics.observe("lease.request.duration_ms", duration_ms)

        if response.is_success:
            return response

        message = _error_message(response)
        if response.status_code == ALREADY_EXISTS_CODE:
            raise LeaseConflict(name, message)
        if response.status_code == NOT_FOUND_CODE:
            raise LeaseNotFound(name, message)
        raise LeaseApiError(response.status_code, message)

    async def create(self, lease: Lease) -> Lease:
        response = await self._request(
            "POST",
            self._collection_path(lease.namespace),
            lease.name,
            json=lease.to_manifest(),
        )
        return Lease.from_manifest(response.json())

    async def get(self, name: str, namespace: str) -> Lease:
        response = await self._request("GET", self._item_path(name, namespace), name)
        return Lease.from_manifest(response.json())

    async def patch(self, name: str, namespace: str, patch: dict[str, Any]) -> Lease:
        response = await self._request(
            "PATCH",
            self._item_path(name, namespace),
            name,
            json=patch,
            headers={"Content-Type": MERGE_PATCH_CONTENT_TYPE},
        )
        return Lease.from_manifest(response.json())

    async def delete(self, name: str, namespace: str) -> None:
        await self._request("DELETE", self._item_path(name, namespace), name)


def _error_message(response: httpx.Response) -> str:
    """Pull the Status message out of an API error body."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return f"{response.status_code}: {body['message']}"
    return f"{response.status_code}: {response.reason_phrase}"


def create_http_client(settings: "Settings") -> httpx.AsyncClient:
    """HTTP client pointed at the API server, trusting the cluster CA."""
    verify: Any = True
    if settings.kubernetes_ca_file and Path(settings.kubernetes_ca_file).exists():
        verify = settings.kubernetes_ca_file
    return httpx.AsyncClient(
        base_url=settings.kubernetes_api_url,
        timeout=settings.request_timeout_seconds,
        verify=verify,
    )


def read_token(token_file: str) -> Optional[str]:
    """Read the service account token, None when not mounted."""
    path = Path(token_file)
    if not path.exists():
        return None
    return path.read_text().strip() or None


def kubernetes_repository_provider(
    settings: "Settings", client: httpx.AsyncClient
) -> RepositoryProvider:
    """
    Provider that re-reads the projected token before every call.

    Bound service account tokens rotate, so a token read once at startup
    eventually expires.
    """

    def provide() -> KubernetesLeaseRepository:
        return KubernetesLeaseRepository(client, token=read_token(settings.kubernetes_token_file))

    return provide
