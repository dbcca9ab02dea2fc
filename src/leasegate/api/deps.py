"""API dependencies."""

from fastapi import HTTPException, Request

from leasegate.engine import LeaderElection


def get_election(request: Request) -> LeaderElection:
    """The election started by the application lifespan."""
    election = getattr(request.app.state, "election", None)
    if election is None:
        raise HTTPException(status_code=503, detail="Election not started")
    return election
