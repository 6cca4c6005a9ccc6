"""Administrative CLI for mdv-launcher.

This module defines the ``mdv-install`` Typer application: install or
reinstall the native binary, update the launcher package, run a smoke test
against a throwaway install root, and manage the verified cache.
"""

from __future__ import annotations

import asyncio
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from installer.cache import VerifiedCache
from installer.config import default_config_path, load_settings
from installer.metadata import read_install_metadata
from installer.naming import asset_name_for
from installer.orchestrator import Installer
from launcher import __version__
from launcher.launch import echo, run_command
from launcher.logging_setup import configure_logging
from managers.resolver import package_manager_hint_from_env, resolve_update_command

if TYPE_CHECKING:
    from installer.config import InstallerSettings

SELFTEST_TIMEOUT_SECONDS = 60

app = typer.Typer(
    name="mdv-install",
    help="Install, update and verify the native mdv binary.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Create console for rich output
console = Console()

cache_app = typer.Typer(help="Manage the verified binary cache.", no_args_is_help=True)
app.add_typer(cache_app, name="cache")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]mdv-install[/bold blue] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """mdv-install: manage the native mdv binary behind the ``mdv`` launcher."""


def _load_settings(**overrides: Any) -> InstallerSettings:
    settings = load_settings(os.environ, **overrides)
    configure_logging("debug" if settings.debug else "warning")
    return settings


@app.command()
def install(
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Reinstall even if the installed binary is current.",
        ),
    ] = False,
) -> None:
    """Download, verify and install the mdv binary for this version."""
    settings = _load_settings()
    installer = Installer(
        settings,
        echo=echo,
        package_manager=package_manager_hint_from_env(settings),
    )
    outcome = asyncio.run(installer.install(force=force))
    if outcome.success:
        echo(f"mdv: {outcome.status.value} ({outcome.binary_path})")
    raise typer.Exit(outcome.exit_code)


@app.command()
def update() -> None:
    """Update mdv-launcher through the package manager that installed it."""
    settings = _load_settings()
    command = resolve_update_command(settings)
    echo(f"mdv: update via {' '.join(command.argv)}")
    raise typer.Exit(run_command(command.argv))


def _selftest_diag(message: str, **data: object) -> None:
    echo(f"mdv selftest: {message}")
    for key, value in data.items():
        if value is None or value == "":
            continue
        echo(f"mdv selftest: {key}={str(value).strip()}")


@app.command()
def selftest() -> None:
    """Install into a temporary root and smoke-test the binary with --help."""
    root = Path(tempfile.mkdtemp(prefix="mdv-install-"))
    try:
        settings = _load_settings(install_root=root, bin_override=None)
        outcome = asyncio.run(Installer(settings, echo=echo).install(force=True))
        if not outcome.success:
            _selftest_diag(
                "installer exited non-zero",
                root=root,
                status=outcome.exit_code,
                error=outcome.message,
            )
            raise typer.Exit(outcome.exit_code)

        if not settings.binary_path.exists():
            _selftest_diag(
                "installed binary missing after installer success",
                root=root,
                expected=settings.binary_path,
            )
            raise typer.Exit(1)

        try:
            smoke = subprocess.run(
                [str(settings.binary_path), "--help"],
                capture_output=True,
                text=True,
                timeout=SELFTEST_TIMEOUT_SECONDS,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            _selftest_diag("installed binary failed --help", expected=settings.binary_path, error=e)
            raise typer.Exit(1) from e
        if smoke.returncode != 0:
            _selftest_diag(
                "installed binary failed --help",
                root=root,
                expected=settings.binary_path,
                status=smoke.returncode,
                stderr=smoke.stderr,
            )
            raise typer.Exit(smoke.returncode if smoke.returncode > 0 else 1)

        echo("mdv selftest: ok")
    finally:
        shutil.rmtree(root, ignore_errors=True)


@cache_app.command("clear")
def cache_clear(
    version: Annotated[
        str | None,
        typer.Option(
            "--version",
            help="Only clear the cache of this version.",
        ),
    ] = None,
) -> None:
    """Remove cached binaries."""
    settings = _load_settings()
    removed = VerifiedCache().clear(settings.install_root, version)
    target = f"version {version}" if version else "all versions"
    echo(f"mdv: cleared {removed} cache entr{'y' if removed == 1 else 'ies'} ({target})")


@app.command()
def info() -> None:
    """Show resolved paths, release locations and network tuning."""
    settings = _load_settings()
    metadata = read_install_metadata(settings.metadata_path)

    table = Table(title="mdv install")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Version", settings.version)
    table.add_row("Platform", f"{settings.platform}-{settings.arch}")
    table.add_row("Asset", asset_name_for(settings.platform, settings.arch))
    table.add_row("Install root", str(settings.install_root))
    table.add_row("Binary", str(settings.bin_override or settings.binary_path))
    table.add_row("Installed", "yes" if settings.binary_path.exists() else "no")
    table.add_row("Installed version", metadata.version if metadata else "-")
    table.add_row(
        "Package manager",
        (metadata.package_manager if metadata else None) or "-",
    )
    table.add_row("Cache", str(settings.cache_root))
    table.add_row("Release base", settings.release_base_url)
    table.add_row("Release API", settings.release_api_url)
    table.add_row("Config file", str(default_config_path(os.environ)))
    tuning = settings.tuning
    table.add_row("Retry attempts", str(tuning.retry_attempts))
    table.add_row("Timeout", f"{tuning.timeout_ms}ms")
    table.add_row("Backoff", f"{tuning.backoff_ms}ms (+{tuning.backoff_jitter_ms}ms jitter)")
    table.add_row("Native build fallback", "on" if settings.allow_native_build else "off")

    console.print(table)


if __name__ == "__main__":
    app()
