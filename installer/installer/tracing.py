"""Opt-in timestamped step trace for install runs."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

logger = structlog.get_logger(__name__)


class StepTracer:
    """Emits ``mdv:debug +<elapsed>ms <step>`` lines when enabled.

    Tracing never alters control flow; when disabled only the structlog debug
    event is recorded.
    """

    def __init__(
        self,
        enabled: bool,
        emit: Callable[[str], None],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._enabled = enabled
        self._emit = emit
        self._clock = clock
        self._started_at = clock()

    def __call__(self, step: str) -> None:
        elapsed_ms = int((self._clock() - self._started_at) * 1000)
        logger.debug("install_step", step=step, elapsed_ms=elapsed_ms)
        if self._enabled:
            self._emit(f"mdv:debug +{elapsed_ms}ms {step}")
