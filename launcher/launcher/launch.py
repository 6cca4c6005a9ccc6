"""The ``mdv`` launcher.

Resolves the installed native binary, installs it on first use (or when the
recorded version is stale), and runs it with the caller's arguments. ``mdv
update`` upgrades the launcher package itself through the package manager
that owns it.
"""

from __future__ import annotations

import asyncio
import os
import subprocess
import sys
from typing import TYPE_CHECKING

import structlog
from rich.console import Console

from installer.config import ENV_SKIP_DOWNLOAD, load_settings
from installer.metadata import read_install_metadata, should_install_binary
from installer.orchestrator import Installer
from launcher.logging_setup import configure_logging
from managers.resolver import (
    package_manager_hint_from_env,
    resolve_update_command,
    should_run_update_command,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    from installer.config import InstallerSettings
    from installer.models import InstallOutcome
    from managers.resolver import CommandProbe

logger = structlog.get_logger(__name__)

console = Console(stderr=True)

INSTALL_MISSING_HINT = (
    f"run `mdv-install install`, or unset {ENV_SKIP_DOWNLOAD} and re-run mdv"
)


def echo(line: str) -> None:
    """Write one user-facing line to stderr, verbatim."""
    console.print(line, markup=False, highlight=False, soft_wrap=True)


def exit_code_from_returncode(returncode: int) -> int:
    """Map a subprocess return code to a shell-style exit status.

    A child killed by signal N reports ``-N``; shells report ``128 + N``.
    """
    if returncode < 0:
        return 128 - returncode
    return returncode


def run_command(argv: Sequence[str]) -> int:
    """Run a command with inherited stdio and return its exit status."""
    try:
        completed = subprocess.run(list(argv), check=False)
    except FileNotFoundError:
        echo(f"mdv: command not found ({argv[0]})")
        return 127
    except PermissionError:
        echo(f"mdv: permission denied ({argv[0]})")
        return 126
    return exit_code_from_returncode(completed.returncode)


def resolve_installed_bin(settings: InstallerSettings) -> Path:
    """Path of the binary to launch: the override, else the stable install path."""
    return settings.bin_override or settings.binary_path


def ensure_installed(
    settings: InstallerSettings,
    *,
    notify: Callable[[str], None] = echo,
) -> InstallOutcome | None:
    """Install the binary when it is absent or stale.

    Returns:
        The install outcome, or None when the current binary is up to date.
    """
    metadata = read_install_metadata(settings.metadata_path)
    if not should_install_binary(
        bin_exists=settings.binary_path.exists(),
        installed_version=metadata.version if metadata else None,
        package_version=settings.version,
    ):
        return None

    logger.info("launcher_install_needed", path=str(settings.binary_path))
    installer = Installer(
        settings,
        echo=notify,
        package_manager=package_manager_hint_from_env(settings),
    )
    return asyncio.run(installer.install())


def run_launcher(
    argv: Sequence[str],
    settings: InstallerSettings,
    *,
    runner: Callable[[Sequence[str]], int] = run_command,
    installer: Callable[[InstallerSettings], InstallOutcome | None] = ensure_installed,
    probe: CommandProbe | None = None,
    notify: Callable[[str], None] = echo,
) -> int:
    """Launch mdv with ``argv`` and return the exit status.

    Args:
        argv: Arguments after the program name.
        settings: Resolved installer settings.
        runner: Runs a command with inherited stdio, returning its status.
        installer: Installs the binary when absent or stale.
        probe: Package manager probe used by ``mdv update``.
        notify: Sink for user-facing lines.

    Returns:
        Process exit status.
    """
    args = list(argv)

    if settings.bin_override is not None:
        return runner([str(settings.bin_override), *args])

    if should_run_update_command(args):
        command = resolve_update_command(settings, probe=probe)
        notify(f"mdv: update via {' '.join(command.argv)}")
        return runner(command.argv)

    bin_path = resolve_installed_bin(settings)
    installer(settings)

    if not bin_path.exists():
        logger.error("launcher_install_missing", path=str(bin_path))
        notify(f"mdv: install missing ({bin_path})")
        notify(f"mdv: {INSTALL_MISSING_HINT}")
        return 1

    return runner([str(bin_path), *args])


def main(argv: Sequence[str] | None = None) -> None:
    """Console entry point for ``mdv``."""
    args = sys.argv[1:] if argv is None else list(argv)
    settings = load_settings(os.environ)
    configure_logging("debug" if settings.debug else "warning")
    try:
        code = run_launcher(args, settings)
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
