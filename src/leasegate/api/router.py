"""REST API router."""

from fastapi import APIRouter, Depends, HTTPException

from leasegate import __version__
from leasegate.api.deps import get_election
from leasegate.api.schemas import HealthResponse, LeaderStatusResponse, MetricsResponse
from leasegate.engine import LeaderElection
from leasegate.observability.metrics import metrics

router = APIRouter()


@router.get("/healthz", response_model=HealthResponse)
async def health_check():
    """Liveness probe; healthy whether or not this replica leads."""
    return HealthResponse(status="healthy", version=__version__)


@router.get("/v1/leader", response_model=LeaderStatusResponse)
async def leader_status(election: LeaderElection = Depends(get_election)):
    """Report this replica's election phase."""
    session = election.session
    return LeaderStatusResponse(
        lease_name=session.lease_name,
        namespace=session.identity.namespace,
        identity=session.identity.name,
        phase=session.phase.value,
        is_leader=election.is_leader,
        leader_since=session.leader_since,
        failure=repr(session.failure) if session.failure else None,
    )


@router.get("/v1/leader/ready", response_model=LeaderStatusResponse)
async def leader_ready(election: LeaderElection = Depends(get_election)):
    """Readiness probe that only passes on the leader."""
    if not election.is_leader:
        raise HTTPException(
            status_code=503,
            detail=f"Not leading (phase: {election.phase.value})",
        )
    return await leader_status(election)


@router.get("/v1/metrics", response_model=MetricsResponse)
async def get_metrics():
    """Snapshot of the in-process metrics registry."""
    return MetricsResponse(**metrics.snapshot())
