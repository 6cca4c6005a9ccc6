"""Retry scheduling with linear backoff and random jitter."""

from __future__ import annotations

import asyncio
import math
import random
from typing import TYPE_CHECKING, TypeVar

import structlog

from .errors import DownloadError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from .models import InstallTuning

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def compute_backoff_delay(
    attempt: int,
    backoff_ms: int,
    jitter_ms: int,
    random_source: Callable[[], float] = random.random,
) -> int:
    """Compute the delay before the retry following ``attempt``.

    The delay grows linearly with the attempt number. When ``jitter_ms`` is
    positive a random term in ``[0, jitter_ms]`` is added; otherwise the
    random source is not consulted at all.

    Args:
        attempt: 1-based number of the attempt that just failed.
        backoff_ms: Base backoff in milliseconds.
        jitter_ms: Upper bound of the jitter term in milliseconds.
        random_source: Callable returning a float in ``[0, 1)``.

    Returns:
        Delay in milliseconds.
    """
    delay = max(1, attempt) * max(0, backoff_ms)
    if jitter_ms <= 0:
        return delay
    return delay + math.floor(random_source() * (jitter_ms + 1))


class RetryPolicy:
    """Runs fallible async operations up to a bounded number of attempts.

    Only retryable ``DownloadError`` instances are retried. Any other exception
    (integrity failures, local filesystem errors) propagates immediately.
    """

    def __init__(
        self,
        tuning: InstallTuning,
        *,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        random_source: Callable[[], float] = random.random,
        notify: Callable[[str], None] | None = None,
    ) -> None:
        self._tuning = tuning
        self._sleep = sleep
        self._random_source = random_source
        self._notify = notify

    @property
    def attempts(self) -> int:
        return self._tuning.retry_attempts

    async def with_retry(self, label: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Await ``operation`` until it succeeds or attempts run out.

        Args:
            label: Short name reported in retry messages.
            operation: Zero-argument coroutine factory.

        Returns:
            The operation's result.

        Raises:
            DownloadError: The last failure once all attempts are exhausted.
        """
        attempts = self.attempts
        log = logger.bind(label=label, attempts=attempts)
        for attempt in range(1, attempts + 1):
            try:
                return await operation()
            except DownloadError as e:
                log.debug("attempt_failed", attempt=attempt, error=str(e), retryable=e.retryable)
                if not e.retryable or attempt >= attempts:
                    raise
                delay_ms = compute_backoff_delay(
                    attempt,
                    self._tuning.backoff_ms,
                    self._tuning.backoff_jitter_ms,
                    self._random_source,
                )
                await self._sleep(delay_ms / 1000)
                if self._notify is not None:
                    self._notify(f"retry {label} ({attempt + 1}/{attempts})")
        raise DownloadError(f"retry failed: {label}")
