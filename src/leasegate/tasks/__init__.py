"""LeaseGate background tasks."""

from leasegate.tasks.election import exit_process, start_election, stop_election

__all__ = ["exit_process", "start_election", "stop_election"]
