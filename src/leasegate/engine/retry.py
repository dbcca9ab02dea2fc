"""Bounded retry with a fixed backoff schedule."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[Any]]
NoRetryPredicate = Callable[[BaseException], bool]


def backoff_for(backoffs: Sequence[float], attempt: int) -> float:
    """Delay before retry ``attempt`` (0-indexed), clamped to the last entry."""
    if not backoffs:
        return 0.0
    return backoffs[min(attempt, len(backoffs) - 1)]


async def with_retries(
    action: Callable[[], Awaitable[T]],
    *,
    errors: tuple[type[BaseException], ...],
    backoffs: Sequence[float],
    max_retries: Optional[int] = None,
    no_retry: Optional[NoRetryPredicate] = None,
    sleep: SleepFunc = asyncio.sleep,
) -> T:
    """
    Run ``action`` and retry it on transient errors.

    Errors outside ``errors`` propagate immediately, as do errors for which
    ``no_retry`` returns True. Every retry re-runs ``action`` from scratch.
    Once ``max_retries`` retries are used up (default: one per backoff entry)
    the last error is re-raised, so the action runs at most
    ``max_retries + 1`` times.
    """
    if max_retries is None:
        max_retries = len(backoffs)

    attempt = 0
    while True:
        try:
            return await action()
        except errors as e:
            if no_retry is not None and no_retry(e):
                raise
            if attempt >= max_retries:
                raise

            remaining = max_retries - attempt
            logger.warning(
                f"Retryable error: {type(e).__name__} ({remaining} retries left)",
                extra={"error_type": type(e).__name__, "retries": remaining},
            )
            await sleep(backoff_for(backoffs, attempt))
            attempt += 1


@dataclass(frozen=True)
class RetryPolicy:
    """A reusable retry configuration for one class of remote call."""

    errors: tuple[type[BaseException], ...]
    backoffs: tuple[float, ...]
    max_retries: Optional[int] = None
    sleep: SleepFunc = asyncio.sleep

    async def run(
        self,
        action: Callable[[], Awaitable[T]],
        no_retry: Optional[NoRetryPredicate] = None,
    ) -> T:
        return await with_retries(
            action,
            errors=self.errors,
            backoffs=self.backoffs,
            max_retries=self.max_retries,
            no_retry=no_retry,
            sleep=self.sleep,
        )
