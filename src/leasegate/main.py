"""LeaseGate main application."""

import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from leasegate import __version__
from leasegate.api import router
from leasegate.config import settings
from leasegate.engine import LeaderElection
from leasegate.identity import resolve_identity, validate_identity
from leasegate.repository import create_http_client, kubernetes_repository_provider
from leasegate.tasks.election import exit_process, start_election, stop_election

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("leasegate")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting LeaseGate...")

    identity = resolve_identity(settings)
    validate_identity(identity, settings.env)
    logger.info(f"Environment: {settings.env.value}")

    client = create_http_client(settings)
    election = LeaderElection.from_settings(
        settings,
        kubernetes_repository_provider(settings, client),
        identity,
    )
    promoted = asyncio.Event()

    def on_become_leader() -> None:
        logger.info(f"{identity.name} is the leader now")
        promoted.set()

    app.state.election = election
    app.state.promoted = promoted
    app.state.election_task = start_election(
        election,
        on_become_leader,
        on_fatal=exit_process if settings.exit_on_fatal else None,
    )
    logger.info(f"Election started for lease {settings.lease_name}")

    yield

    logger.info("Shutting down LeaseGate...")
    await stop_election(app.state.election_task)
    await client.aclose()
    logger.info("Shutdown complete")


app = FastAPI(
    title="LeaseGate",
    description="Lease-based leader election over the Kubernetes coordination API",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(router)


def main():
    """Entry point for the application."""
    uvicorn.run(
        "leasegate.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
