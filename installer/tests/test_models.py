"""Tests for install outcome models and the step tracer."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

from installer.models import InstallOutcome, InstallSource, InstallStatus
from installer.tracing import StepTracer


class TestInstallOutcome:
    """Tests for InstallOutcome."""

    def test_exit_codes(self) -> None:
        """MO-001: Only failures exit non-zero."""
        path = Path("/tmp/mdv")

        assert InstallOutcome(InstallStatus.INSTALLED, path).exit_code == 0
        assert InstallOutcome(InstallStatus.SKIPPED, path).exit_code == 0
        assert InstallOutcome(InstallStatus.UP_TO_DATE, path).exit_code == 0
        assert InstallOutcome(InstallStatus.FAILED, path).exit_code == 1

    def test_network_verified_sources(self) -> None:
        """MO-002: Only downloaded binaries are fresh from a manifest."""
        assert InstallSource.PRIMARY.network_verified
        assert InstallSource.FALLBACK.network_verified
        assert not InstallSource.CACHE.network_verified
        assert not InstallSource.NATIVE.network_verified


class TestStepTracer:
    """Tests for StepTracer."""

    def test_disabled_emits_nothing(self) -> None:
        """MO-010: A disabled tracer writes no lines."""
        emit = MagicMock()

        StepTracer(False, emit)("cache-miss")

        emit.assert_not_called()

    def test_enabled_emits_elapsed(self) -> None:
        """MO-011: Lines carry elapsed milliseconds since creation."""
        emit = MagicMock()
        clock = MagicMock(side_effect=[10.0, 10.25])

        StepTracer(True, emit, clock=clock)("cache-hit")

        emit.assert_called_once_with("mdv:debug +250ms cache-hit")
