"""API response schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


class LeaderStatusResponse(BaseModel):
    """Election state of this replica."""

    lease_name: str = Field(..., description="Name of the contested lease")
    namespace: str
    identity: str = Field(..., description="This replica's candidate identity")
    phase: str = Field(..., description="acquiring, leading or failed")
    is_leader: bool
    leader_since: Optional[datetime] = None
    failure: Optional[str] = Field(None, description="Fatal error, when the phase is failed")


class MetricsResponse(BaseModel):
    """In-process metrics snapshot."""

    counters: dict[str, float]
    gauges: dict[str, float]
    histograms: dict[str, dict[str, Any]]
