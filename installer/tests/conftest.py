"""Shared test fixtures for installer tests."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from installer.config import InstallerSettings
from installer.models import InstallTuning

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


@pytest.fixture
def install_root(tmp_path: Path) -> Path:
    return tmp_path / "mdv-root"


@pytest.fixture
def make_settings(install_root: Path) -> Callable[..., InstallerSettings]:
    """Factory for settings pinned to linux-x64, v1.2.3 and a temporary install root.

    Retries are disabled and backoff has no jitter unless overridden.
    """

    def _make(**overrides: Any) -> InstallerSettings:
        values: dict[str, Any] = {
            "version": "1.2.3",
            "install_root": install_root,
            "platform": "linux",
            "arch": "x64",
            "tuning": InstallTuning(retry_attempts=1, backoff_ms=50, backoff_jitter_ms=0),
        }
        values.update(overrides)
        return InstallerSettings(**values)

    return _make


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep tests away from the real ~/.config/mdv/config.yaml."""
    config_home = tmp_path / "xdg_config"
    config_home.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.delenv("MDV_CONFIG", raising=False)
    return config_home
