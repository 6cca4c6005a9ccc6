"""Resolve which package manager owns the install and how to update through it.

Resolution order for the update command:

    1. Package manager recorded in the install metadata
    2. Hint from the executing package manager path / user agent
    3. Live detection by probing each manager's global package list
    4. pip, the universal default
"""

from __future__ import annotations

import subprocess
import sys
from typing import TYPE_CHECKING, Protocol

import structlog

from installer.config import DISTRIBUTION_NAME
from installer.metadata import read_install_metadata
from managers.base import ProbeResult
from managers.pip import PipManager
from managers.registry import get_registry

if TYPE_CHECKING:
    from collections.abc import Sequence

    from installer.config import InstallerSettings
    from managers.base import UpdateCommand
    from managers.registry import ManagerRegistry

logger = structlog.get_logger(__name__)

PACKAGE_NAME = DISTRIBUTION_NAME
DEFAULT_MANAGER = "pip"
DETECTION_ORDER: tuple[str, ...] = ("pipx", "uv", "pip", "conda")
# "pipx" contains "pip", so it is matched before "pip"
HINT_MATCH_ORDER: tuple[str, ...] = ("pipx", "conda", "uv", "pip")
PROBE_TIMEOUT_SECONDS = 15


class CommandProbe(Protocol):
    """Runs a package-listing command and reports its status and output."""

    def __call__(self, argv: Sequence[str]) -> ProbeResult: ...


class SubprocessProbe:
    """``CommandProbe`` backed by ``subprocess.run``."""

    def __init__(self, timeout: int = PROBE_TIMEOUT_SECONDS) -> None:
        self._timeout = timeout

    def __call__(self, argv: Sequence[str]) -> ProbeResult:
        log = logger.bind(command=" ".join(argv))
        try:
            completed = subprocess.run(
                list(argv),
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except FileNotFoundError:
            log.debug("probe_command_not_found")
            return ProbeResult(returncode=127)
        except subprocess.TimeoutExpired:
            log.debug("probe_timeout", timeout=self._timeout)
            return ProbeResult(returncode=124)
        except OSError as e:
            log.debug("probe_failed", error=str(e))
            return ProbeResult(returncode=126)
        return ProbeResult(returncode=completed.returncode, stdout=completed.stdout or "")


def _hint_from_value(value: str | None) -> str | None:
    if not value:
        return None
    lowered = value.lower()
    for name in HINT_MATCH_ORDER:
        if name in lowered:
            return name
    return None


def package_manager_hint_from_env(settings: InstallerSettings) -> str | None:
    """Identify the package manager from the execpath and user-agent hints.

    The execpath hint is consulted first; the first supported manager name
    found (case-insensitively) in either value wins.
    """
    for value in (settings.package_manager_execpath, settings.package_manager_user_agent):
        hint = _hint_from_value(value)
        if hint:
            return hint
    return None


def detect_installed_package_manager(
    probe: CommandProbe,
    preferred_hint: str | None,
    *,
    registry: ManagerRegistry | None = None,
    package: str = PACKAGE_NAME,
) -> str | None:
    """Probe package managers for a global install of ``package``.

    Args:
        probe: Runs a listing command.
        preferred_hint: Manager tried first when it is supported.
        registry: Supported managers. Defaults to the built-in registry.
        package: Package identifier to look for in the listing.

    Returns:
        Name of the first manager whose listing succeeds and contains the
        package, or None.
    """
    registry = registry or get_registry()
    order = [preferred_hint] if preferred_hint in registry else []
    order.extend(name for name in DETECTION_ORDER if name not in order)

    for name in order:
        manager = registry.get(name)
        if manager is None:
            continue
        result = probe(manager.probe_command())
        if manager.lists_package(result, package):
            logger.debug("package_manager_detected", manager=name)
            return name
    return None


def _is_script_path(path: str | None) -> bool:
    return bool(path) and path.lower().endswith(".py")


def resolve_update_command(
    settings: InstallerSettings,
    *,
    probe: CommandProbe | None = None,
    runtime: str = sys.executable,
    registry: ManagerRegistry | None = None,
) -> UpdateCommand:
    """Build the command that updates the globally installed launcher.

    Args:
        settings: Installer settings (install root and package manager hints).
        probe: Used for live detection. Defaults to ``SubprocessProbe``.
        runtime: Interpreter that runs a script-path pip override.
        registry: Supported managers. Defaults to the built-in registry.

    Returns:
        The update command.
    """
    registry = registry or get_registry()

    name: str | None = None
    metadata = read_install_metadata(settings.metadata_path)
    if metadata is not None and metadata.package_manager in registry:
        name = metadata.package_manager
        source = "metadata"
    else:
        name = package_manager_hint_from_env(settings)
        source = "env"
        if name is None:
            name = detect_installed_package_manager(
                probe or SubprocessProbe(), None, registry=registry
            )
            source = "probe"
    if name is None:
        name = DEFAULT_MANAGER
        source = "default"
    logger.debug("update_manager_resolved", manager=name, source=source)

    manager = registry.get(name) or PipManager()
    execpath = settings.package_manager_execpath
    if isinstance(manager, PipManager) and _is_script_path(execpath):
        return manager.script_update_command(runtime, execpath, PACKAGE_NAME)
    return manager.update_command(PACKAGE_NAME)


def should_run_update_command(args: Sequence[str]) -> bool:
    return len(args) > 0 and args[0] == "update"
