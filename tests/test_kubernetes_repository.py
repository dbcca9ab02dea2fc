"""
Kubernetes lease repository tests.

Requests are served by an httpx.MockTransport standing in for the API server.
"""

import json

import httpx
import pytest

from leasegate.config import Settings
from leasegate.engine import LeaderElection
from leasegate.errors import LeaseApiError, LeaseConflict, LeaseNotFound
from leasegate.models import Lease
from leasegate.repository import KubernetesLeaseRepository, kubernetes_repository_provider

from helpers import INTERVAL, LEASE_NAME, NAMESPACE, FakeSleep, make_identity, make_lease

API = "https://kube.test"
LEASES_PATH = f"/apis/coordination.k8s.io/v1/namespaces/{NAMESPACE}/leases"
LEASE_PATH = f"{LEASES_PATH}/{LEASE_NAME}"


class FakeApiServer:
    """Records requests and answers from a (method, path) routing table."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], list[httpx.Response]] = {}

    def on(self, method: str, path: str, *responses: httpx.Response) -> None:
        self.routes[(method, path)] = list(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responses = self.routes.get((request.method, request.url.path))
        if not responses:
            return httpx.Response(404, json={"kind": "Status", "message": "no route"})
        # the last response repeats
        return responses.pop(0) if len(responses) > 1 else responses[0]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=API, transport=httpx.MockTransport(self.handler))


def _lease_body(owner: str, now) -> dict:
    return make_lease(owner, now).to_manifest()


@pytest.mark.asyncio
async def test_create_posts_lease_manifest(now):
    server = FakeApiServer()
    lease = make_lease("pod-a", now)
    server.on("POST", LEASES_PATH, httpx.Response(201, json=lease.to_manifest()))

    async with server.client() as client:
        repo = KubernetesLeaseRepository(client, token="secret")
        created = await repo.create(lease)

    assert created.owner_identity == "pod-a"
    request = server.requests[0]
    assert request.headers["Authorization"] == "Bearer secret"
    assert json.loads(request.content) == lease.to_manifest()


@pytest.mark.asyncio
async def test_create_conflict(now):
    server = FakeApiServer()
    server.on(
        "POST",
        LEASES_PATH,
        httpx.Response(409, json={"kind": "Status", "message": 'leases "foo" already exists'}),
    )

    async with server.client() as client:
        with pytest.raises(LeaseConflict) as exc_info:
            await KubernetesLeaseRepository(client).create(make_lease("pod-a", now))

    assert exc_info.value.status_code == 409
    assert "already exists" in exc_info.value.message


@pytest.mark.asyncio
async def test_get_not_found():
    server = FakeApiServer()
    server.on("GET", LEASE_PATH, httpx.Response(404, json={"kind": "Status"}))

    async with server.client() as client:
        with pytest.raises(LeaseNotFound):
            await KubernetesLeaseRepository(client).get(LEASE_NAME, NAMESPACE)


@pytest.mark.asyncio
async def test_server_errors_become_api_errors():
    server = FakeApiServer()
    server.on("GET", LEASE_PATH, httpx.Response(500, text="oops"))

    async with server.client() as client:
        with pytest.raises(LeaseApiError) as exc_info:
            await KubernetesLeaseRepository(client).get(LEASE_NAME, NAMESPACE)

    assert exc_info.value.status_code == 500
    assert not isinstance(exc_info.value, (LeaseConflict, LeaseNotFound))


@pytest.mark.asyncio
async def test_patch_uses_merge_patch(now):
    server = FakeApiServer()
    server.on("PATCH", LEASE_PATH, httpx.Response(200, json=_lease_body("pod-a", now)))
    patch = {"spec": {"renewTime": "2024-01-02T03:04:05.000000Z"}}

    async with server.client() as client:
        lease = await KubernetesLeaseRepository(client).patch(LEASE_NAME, NAMESPACE, patch)

    assert lease.owner_identity == "pod-a"
    request = server.requests[0]
    assert request.headers["Content-Type"] == "application/merge-patch+json"
    assert json.loads(request.content) == patch


@pytest.mark.asyncio
async def test_delete():
    server = FakeApiServer()
    server.on("DELETE", LEASE_PATH, httpx.Response(200, json={"kind": "Status"}))

    async with server.client() as client:
        await KubernetesLeaseRepository(client).delete(LEASE_NAME, NAMESPACE)

    assert [(r.method, r.url.path) for r in server.requests] == [("DELETE", LEASE_PATH)]


@pytest.mark.asyncio
async def test_provider_rereads_rotated_token(tmp_path):
    token_file = tmp_path / "token"
    token_file.write_text("first\n")
    settings = Settings(kubernetes_token_file=str(token_file))
    server = FakeApiServer()
    server.on("DELETE", LEASE_PATH, httpx.Response(200, json={}))

    async with server.client() as client:
        provider = kubernetes_repository_provider(settings, client)
        await provider().delete(LEASE_NAME, NAMESPACE)
        token_file.write_text("second\n")
        await provider().delete(LEASE_NAME, NAMESPACE)

    assert [r.headers["Authorization"] for r in server.requests] == [
        "Bearer first",
        "Bearer second",
    ]


@pytest.mark.asyncio
async def test_provider_without_token_sends_no_authorization(tmp_path):
    settings = Settings(kubernetes_token_file=str(tmp_path / "missing"))
    server = FakeApiServer()
    server.on("DELETE", LEASE_PATH, httpx.Response(200, json={}))

    async with server.client() as client:
        await kubernetes_repository_provider(settings, client)().delete(LEASE_NAME, NAMESPACE)

    assert "Authorization" not in server.requests[0].headers


@pytest.mark.asyncio
async def test_election_stays_leader_after_restart_over_http(clock):
    server = FakeApiServer()
    server.on("POST", LEASES_PATH, httpx.Response(409, json={"kind": "Status"}))
    server.on("GET", LEASE_PATH, httpx.Response(200, json=_lease_body("pod-a", clock.now)))

    async with server.client() as client:
        repo = KubernetesLeaseRepository(client)
        election = LeaderElection(
            LEASE_NAME,
            lambda: repo,
            make_identity("pod-a"),
            interval_seconds=INTERVAL,
            clock=clock,
            sleep=FakeSleep(),
        )
        assert await election.attempt_acquisition() is True

    assert [r.method for r in server.requests] == ["POST", "GET"]


@pytest.mark.asyncio
async def test_election_retries_server_errors_over_http(clock):
    server = FakeApiServer()
    server.on(
        "POST",
        LEASES_PATH,
        httpx.Response(500),
        httpx.Response(500),
        httpx.Response(201, json=_lease_body("pod-a", clock.now)),
    )
    sleep = FakeSleep()

    async with server.client() as client:
        repo = KubernetesLeaseRepository(client)
        election = LeaderElection(
            LEASE_NAME,
            lambda: repo,
            make_identity("pod-a"),
            interval_seconds=INTERVAL,
            clock=clock,
            sleep=sleep,
        )
        assert await election.attempt_acquisition() is True

    assert len(server.requests) == 3
    assert sleep.calls == [0.1, 0.5]


@pytest.mark.asyncio
async def test_connection_errors_are_retried(clock):
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(201, json=_lease_body("pod-a", clock.now))

    async with httpx.AsyncClient(base_url=API, transport=httpx.MockTransport(handler)) as client:
        repo = KubernetesLeaseRepository(client)
        election = LeaderElection(
            LEASE_NAME,
            lambda: repo,
            make_identity("pod-a"),
            interval_seconds=INTERVAL,
            clock=clock,
            sleep=FakeSleep(),
        )
        assert await election.attempt_acquisition() is True

    assert len(attempts) == 2


def test_lease_body_parses(now):
    assert Lease.from_manifest(_lease_body("pod-a", now)).renew_time == now
