"""Opt-in fallback that builds mdv from source with cargo."""

from __future__ import annotations

import asyncio
import shutil
from typing import TYPE_CHECKING, Protocol

import structlog

from .config import REPO

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from pathlib import Path

logger = structlog.get_logger(__name__)

CARGO_CRATE = "mdv-cli"
DEFAULT_REPO_GIT_URL = f"https://github.com/{REPO}.git"
PROBE_TIMEOUT_SECONDS = 30
BUILD_TIMEOUT_SECONDS = 1800


class NativeBuilder(Protocol):
    """Capability to produce the binary locally when no release asset works."""

    async def build(self, output_path: Path) -> bool: ...


class CargoBuilder:
    """Build and install ``mdv-cli`` into the install root with ``cargo install``."""

    def __init__(
        self,
        install_root: Path,
        platform: str,
        *,
        base_env: Mapping[str, str] | None = None,
        repo_git_url: str = DEFAULT_REPO_GIT_URL,
        notify: Callable[[str], None] | None = None,
        build_timeout: int = BUILD_TIMEOUT_SECONDS,
    ) -> None:
        self._install_root = install_root
        self._platform = platform
        self._base_env = dict(base_env or {})
        self._repo_git_url = repo_git_url
        self._notify = notify or (lambda _msg: None)
        self._build_timeout = build_timeout
        self._log = logger.bind(component="cargo_builder")

    @property
    def built_binary_path(self) -> Path:
        name = f"{CARGO_CRATE}.exe" if self._platform == "win32" else CARGO_CRATE
        return self._install_root / "bin" / name

    def install_command(self) -> list[str]:
        return [
            "cargo",
            "install",
            CARGO_CRATE,
            "--git",
            self._repo_git_url,
            "--locked",
            "--root",
            str(self._install_root),
            "--config",
            "net.git-fetch-with-cli=true",
        ]

    async def toolchain_available(self) -> bool:
        return_code = await self._run_command(
            ["cargo", "--version"], timeout=PROBE_TIMEOUT_SECONDS, capture=True
        )
        return return_code == 0

    async def build(self, output_path: Path) -> bool:
        """Build the binary and copy it to ``output_path``.

        Returns:
            True if a built binary was placed at ``output_path``.
        """
        if not await self.toolchain_available():
            self._log.info("cargo_unavailable")
            return False

        self._notify("cargo fallback install...")
        return_code = await self._run_command(
            self.install_command(),
            timeout=self._build_timeout,
            env={**self._base_env, "CARGO_NET_GIT_FETCH_WITH_CLI": "true"},
        )
        if return_code != 0:
            self._log.warning("cargo_install_failed", return_code=return_code)
            return False

        built = self.built_binary_path
        if not built.exists():
            self._log.warning("cargo_binary_missing", path=str(built))
            return False

        try:
            shutil.copyfile(built, output_path)
        except OSError as e:
            self._log.warning("cargo_binary_copy_failed", error=str(e))
            return False
        return True

    async def _run_command(
        self,
        cmd: list[str],
        *,
        timeout: int,
        capture: bool = False,
        env: dict[str, str] | None = None,
    ) -> int:
        """Run a command with timeout.

        Args:
            cmd: Command and arguments as a list.
            timeout: Timeout in seconds.
            capture: Discard output instead of inheriting the terminal.
            env: Environment variables for the command.

        Returns:
            Process return code; 127 when the executable is missing, 124 on timeout.
        """
        log = self._log.bind(command=" ".join(cmd))
        log.debug("running_command")
        stream = asyncio.subprocess.DEVNULL if capture else None
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd, stdout=stream, stderr=stream, env=env
            )
        except FileNotFoundError:
            log.debug("command_not_found")
            return 127

        try:
            await asyncio.wait_for(process.wait(), timeout=timeout)
        except TimeoutError:
            log.warning("command_timeout", timeout=timeout)
            process.kill()
            await process.wait()
            return 124

        return_code = process.returncode or 0
        log.debug("command_completed", return_code=return_code)
        return return_code
