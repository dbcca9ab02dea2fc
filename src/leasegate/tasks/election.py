"""Election background task."""

import asyncio
import logging
import os
from typing import Any, Callable, Optional

from leasegate.engine.election import LeaderElection

logger = logging.getLogger("leasegate.election")

FatalHandler = Callable[[BaseException], None]


def exit_process(error: BaseException) -> None:
    """Stop the process without running shutdown hooks that might keep leading."""
    logger.critical(f"Terminating after fatal election error: {error}")
    os._exit(1)


def _make_done_callback(
    on_fatal: Optional[FatalHandler],
) -> Callable[["asyncio.Task[None]"], None]:
    def on_done(task: "asyncio.Task[None]") -> None:
        if task.cancelled():
            logger.info("Election task cancelled")
            return

        error = task.exception()
        if error is None:
            # become_leader_for_life only returns by raising
            error = RuntimeError("Election task exited unexpectedly")

        logger.critical(
            f"Election task failed: {error!r}",
            exc_info=(type(error), error, error.__traceback__),
        )
        if on_fatal is not None:
            on_fatal(error)

    return on_done


def start_election(
    election: LeaderElection,
    on_become_leader: Callable[[], Any],
    on_fatal: Optional[FatalHandler] = exit_process,
) -> "asyncio.Task[None]":
    """Run the election for the rest of the process's life on its own task."""
    task = asyncio.create_task(
        election.become_leader_for_life(on_become_leader),
        name=f"leader-election-{election.name}",
    )
    task.add_done_callback(_make_done_callback(on_fatal))
    return task


async def stop_election(task: Optional["asyncio.Task[None]"]) -> None:
    """Cancel the election task during shutdown."""
    if task is None or task.done():
        return

    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
