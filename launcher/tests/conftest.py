"""Shared test fixtures for launcher tests."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest
import structlog

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path

MDV_ENV_VARS = (
    "MDV_SKIP_DOWNLOAD",
    "MDV_BIN",
    "MDV_INSTALL_TIMEOUT_MS",
    "MDV_INSTALL_RETRY_ATTEMPTS",
    "MDV_INSTALL_BACKOFF_MS",
    "MDV_INSTALL_BACKOFF_JITTER_MS",
    "MDV_INSTALL_DEBUG",
    "MDV_ALLOW_CARGO_FALLBACK",
    "MDV_RELEASE_BASE_URL",
    "MDV_RELEASE_API_URL",
    "MDV_PM_EXECPATH",
    "MDV_PM_USER_AGENT",
    "MDV_CONFIG",
    "GITHUB_TOKEN",
)


@pytest.fixture(autouse=True)
def isolated_install_root(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[Path, None, None]:
    """Isolate tests from the real ~/.mdv and ~/.config/mdv.

    Points MDV_INSTALL_ROOT and XDG_CONFIG_HOME at temporary directories and
    clears every other MDV_* variable. structlog is reset afterwards because
    the entry points configure it against the captured stderr.
    """
    root = tmp_path / "mdv-root"
    config_home = tmp_path / "xdg_config"
    config_home.mkdir(parents=True, exist_ok=True)

    for name in MDV_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("MDV_INSTALL_ROOT", str(root))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.setenv("COLUMNS", "200")

    yield root

    structlog.reset_defaults()
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
