"""Install orchestration as an explicit finite state machine.

Transitions::

    START -> SKIP_REQUESTED                      (skip flag set)
          -> UP_TO_DATE                          (binary present and current)
          -> CACHE_CHECK
    CACHE_CHECK -> CACHE_HIT -> FINALIZE
                -> PRIMARY_DOWNLOAD
    PRIMARY_DOWNLOAD -> FINALIZE                 (verified)
                     -> FALLBACK_RESOLVE         (any network/integrity failure)
    FALLBACK_RESOLVE -> FALLBACK_DOWNLOAD        (different binary URL resolved)
                     -> NATIVE_BUILD
    FALLBACK_DOWNLOAD -> FINALIZE | NATIVE_BUILD
    NATIVE_BUILD -> FINALIZE                     (opted in and built)
                 -> ABORTED
    FINALIZE -> INSTALLED

SKIP_REQUESTED, UP_TO_DATE, INSTALLED and ABORTED are terminal. A local
filesystem error in any state moves straight to ABORTED.
"""

from __future__ import annotations

import asyncio
import os
import random
import sys
import uuid
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import TYPE_CHECKING

import structlog

from .cache import VerifiedCache, cache_paths_for
from .checksums import build_checksum_mismatch_help, parse_checksum_for_asset, sha256_file
from .config import ENV_ALLOW_NATIVE_BUILD
from .downloader import HttpDownloader
from .errors import (
    ChecksumMismatchError,
    ChecksumMissingError,
    DownloadError,
    IntegrityError,
    ReleaseUnresolvableError,
)
from .metadata import read_install_metadata, should_install_binary, write_install_metadata
from .models import (
    InstallMetadata,
    InstallOutcome,
    InstallSource,
    InstallStatus,
    ReleaseAssetBundle,
)
from .naming import WINDOWS_PLATFORM, asset_name_for, checksums_asset_name_for
from .native_build import CargoBuilder
from .releases import GitHubReleaseClient, resolve_release_asset_bundle, should_use_fallback_url
from .retry import RetryPolicy
from .tracing import StepTracer

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from pathlib import Path

    from .config import InstallerSettings
    from .downloader import HttpTransport
    from .models import CachePaths
    from .native_build import NativeBuilder
    from .releases import ReleaseFetcher

logger = structlog.get_logger(__name__)

INCOMPLETE_HINT = (
    f"install incomplete. re-run with {ENV_ALLOW_NATIVE_BUILD}=1 "
    "or wait for GitHub release assets."
)


class InstallState(str, Enum):
    """States of an install run."""

    START = "start"
    SKIP_REQUESTED = "skip_requested"
    UP_TO_DATE = "up_to_date"
    CACHE_CHECK = "cache_check"
    CACHE_HIT = "cache_hit"
    PRIMARY_DOWNLOAD = "primary_download"
    FALLBACK_RESOLVE = "fallback_resolve"
    FALLBACK_DOWNLOAD = "fallback_download"
    NATIVE_BUILD = "native_build"
    FINALIZE = "finalize"
    INSTALLED = "installed"
    ABORTED = "aborted"


_TERMINAL_STATUS = {
    InstallState.SKIP_REQUESTED: InstallStatus.SKIPPED,
    InstallState.UP_TO_DATE: InstallStatus.UP_TO_DATE,
    InstallState.INSTALLED: InstallStatus.INSTALLED,
    InstallState.ABORTED: InstallStatus.FAILED,
}


def _stderr_echo(line: str) -> None:
    print(line, file=sys.stderr, flush=True)


@dataclass
class _InstallRun:
    """Mutable context carried through the states of one run."""

    force: bool
    asset: str
    checksums_asset: str
    primary: ReleaseAssetBundle
    cache_paths: CachePaths
    tmp_path: Path
    dest: Path
    source: InstallSource | None = None
    checksums_text: str | None = None
    primary_error: Exception | None = None
    resolution_error: ReleaseUnresolvableError | None = None
    final_error: Exception | None = None
    fallback: ReleaseAssetBundle | None = None
    message: str | None = None
    states: list[InstallState] = field(default_factory=list)


class Installer:
    """Acquires, verifies and installs the mdv binary for one version.

    Collaborators (transport, release fetcher, native builder, sleep, random
    source, output sink) are injectable so every path can be driven by fakes.

    Example:
        >>> installer = Installer(load_settings(os.environ))
        >>> outcome = asyncio.run(installer.install())
        >>> outcome.exit_code
        0
    """

    def __init__(
        self,
        settings: InstallerSettings,
        *,
        transport: HttpTransport | None = None,
        release_fetcher: ReleaseFetcher | None = None,
        native_builder: NativeBuilder | None = None,
        echo: Callable[[str], None] = _stderr_echo,
        package_manager: str | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        random_source: Callable[[], float] = random.random,
    ) -> None:
        """Initialize the installer.

        Args:
            settings: Resolved installer settings.
            transport: HTTP capability. Defaults to ``HttpDownloader``.
            release_fetcher: Release metadata capability. Defaults to the
                GitHub Releases API through ``transport``.
            native_builder: Source-build capability. Defaults to cargo.
            echo: Sink for user-facing lines (stderr by default).
            package_manager: Package manager recorded in install metadata.
            sleep: Coroutine used for retry backoff.
            random_source: Source of jitter in ``[0, 1)``.
        """
        self._settings = settings
        self._echo = echo
        self._package_manager = package_manager
        self._transport = transport or HttpDownloader.from_settings(settings)
        self._release_fetcher = release_fetcher or GitHubReleaseClient(
            self._transport,
            settings.release_api_url,
            auth_token=settings.github_token,
        )
        self._native_builder = native_builder or CargoBuilder(
            settings.install_root,
            settings.platform,
            base_env=settings.subprocess_env,
            notify=self._notify,
        )
        self._trace = StepTracer(settings.debug, echo)
        self._cache = VerifiedCache(trace=self._trace)
        self._retry = RetryPolicy(
            settings.tuning, sleep=sleep, random_source=random_source, notify=self._notify
        )
        self._handlers: dict[
            InstallState, Callable[[_InstallRun], Awaitable[InstallState | None]]
        ] = {
            InstallState.START: self._start,
            InstallState.SKIP_REQUESTED: self._terminal,
            InstallState.UP_TO_DATE: self._terminal,
            InstallState.CACHE_CHECK: self._cache_check,
            InstallState.CACHE_HIT: self._cache_hit,
            InstallState.PRIMARY_DOWNLOAD: self._primary_download,
            InstallState.FALLBACK_RESOLVE: self._fallback_resolve,
            InstallState.FALLBACK_DOWNLOAD: self._fallback_download,
            InstallState.NATIVE_BUILD: self._native_build,
            InstallState.FINALIZE: self._finalize,
            InstallState.INSTALLED: self._terminal,
            InstallState.ABORTED: self._aborted,
        }
        self._log = logger.bind(component="installer", version=settings.version)

    async def install(self, *, force: bool = False) -> InstallOutcome:
        """Run the install state machine to a terminal state.

        Args:
            force: Reinstall even if the current binary is up to date.

        Returns:
            The outcome; ``outcome.exit_code`` is the process exit status.
        """
        run = self._new_run(force)
        state: InstallState | None = InstallState.START
        last_state = InstallState.START
        while state is not None:
            run.states.append(state)
            last_state = state
            try:
                state = await self._handlers[state](run)
            except OSError as e:
                self._log.error("install_filesystem_error", state=last_state.value, error=str(e))
                run.final_error = e
                state = InstallState.ABORTED

        return InstallOutcome(
            status=_TERMINAL_STATUS[last_state],
            binary_path=run.dest,
            source=run.source,
            message=run.message,
            resolution_error=run.resolution_error,
            states=tuple(s.value for s in run.states),
        )

    def _new_run(self, force: bool) -> _InstallRun:
        settings = self._settings
        asset = asset_name_for(settings.platform, settings.arch)
        checksums_asset = checksums_asset_name_for(settings.platform, settings.arch)
        dest = settings.binary_path
        return _InstallRun(
            force=force,
            asset=asset,
            checksums_asset=checksums_asset,
            primary=ReleaseAssetBundle(
                binary_url=settings.release_download_url(asset),
                checksums_url=settings.release_download_url(checksums_asset),
            ),
            cache_paths=cache_paths_for(
                settings.install_root, settings.version, asset, checksums_asset
            ),
            tmp_path=dest.with_name(f"{dest.name}.tmp-{os.getpid()}-{uuid.uuid4().hex[:8]}"),
            dest=dest,
        )

    def _notify(self, message: str) -> None:
        self._echo(f"mdv: {message}")

    # -- states -------------------------------------------------------------

    async def _start(self, run: _InstallRun) -> InstallState:
        settings = self._settings
        if settings.skip_download:
            self._log.info("install_skipped")
            return InstallState.SKIP_REQUESTED

        if not run.force:
            metadata = read_install_metadata(settings.metadata_path)
            if not should_install_binary(
                bin_exists=run.dest.exists(),
                installed_version=metadata.version if metadata else None,
                package_version=settings.version,
            ):
                self._log.info("install_up_to_date", path=str(run.dest))
                return InstallState.UP_TO_DATE

        run.dest.parent.mkdir(parents=True, exist_ok=True)
        tuning = settings.tuning
        self._trace(
            f"start retry={tuning.retry_attempts} timeout={tuning.timeout_ms}ms "
            f"backoff={tuning.backoff_ms}ms jitter={tuning.backoff_jitter_ms}ms"
        )
        self._notify(f"download {run.asset} v{settings.version}")
        return InstallState.CACHE_CHECK

    async def _cache_check(self, run: _InstallRun) -> InstallState:
        if await self._cache.install_from_cache(run.cache_paths, run.asset, run.tmp_path):
            self._trace("cache-hit")
            return InstallState.CACHE_HIT
        self._trace("cache-miss")
        return InstallState.PRIMARY_DOWNLOAD

    async def _cache_hit(self, run: _InstallRun) -> InstallState:
        run.source = InstallSource.CACHE
        return InstallState.FINALIZE

    async def _primary_download(self, run: _InstallRun) -> InstallState:
        try:
            run.checksums_text = await self._download_and_verify(run.primary, run)
        except (DownloadError, IntegrityError) as e:
            self._trace(f"primary-failed {e}")
            self._log.warning("primary_download_failed", url=run.primary.binary_url, error=str(e))
            run.primary_error = e
            run.final_error = e
            return InstallState.FALLBACK_RESOLVE
        run.source = InstallSource.PRIMARY
        return InstallState.FINALIZE

    async def _fallback_resolve(self, run: _InstallRun) -> InstallState:
        async def get_release(kind: str) -> object:
            return await self._retry.with_retry(
                f"release:{kind}", partial(self._release_fetcher.get_release, kind)
            )

        bundle = await resolve_release_asset_bundle(
            version=self._settings.version,
            asset=run.asset,
            checksums_asset=run.checksums_asset,
            get_release=get_release,
        )
        if bundle is None:
            run.resolution_error = ReleaseUnresolvableError(self._settings.version, run.asset)
            self._trace("fallback-unresolvable")
            self._log.warning("fallback_unresolvable", error=str(run.resolution_error))
            return InstallState.NATIVE_BUILD

        if not should_use_fallback_url(run.primary.binary_url, bundle.binary_url):
            self._trace("fallback-same-url")
            return InstallState.NATIVE_BUILD

        run.fallback = bundle
        self._notify(f"fallback download {bundle.binary_url}")
        return InstallState.FALLBACK_DOWNLOAD

    async def _fallback_download(self, run: _InstallRun) -> InstallState:
        fallback = run.fallback
        if fallback is None:
            return InstallState.NATIVE_BUILD
        try:
            run.checksums_text = await self._download_and_verify(fallback, run)
        except (DownloadError, IntegrityError) as e:
            self._trace(f"fallback-failed {e}")
            self._log.warning("fallback_download_failed", url=fallback.binary_url, error=str(e))
            run.final_error = e
            return InstallState.NATIVE_BUILD
        run.source = InstallSource.FALLBACK
        return InstallState.FINALIZE

    async def _native_build(self, run: _InstallRun) -> InstallState:
        if not self._settings.allow_native_build:
            return InstallState.ABORTED
        self._trace("native-build")
        if await self._native_builder.build(run.tmp_path):
            run.source = InstallSource.NATIVE
            return InstallState.FINALIZE
        self._notify("cargo fallback failed")
        return InstallState.ABORTED

    async def _finalize(self, run: _InstallRun) -> InstallState:
        if self._settings.platform != WINDOWS_PLATFORM:
            os.chmod(run.tmp_path, 0o755)
        os.replace(run.tmp_path, run.dest)

        if run.source is not None and run.source.network_verified and run.checksums_text:
            if self._cache.persist(run.cache_paths, run.checksums_text, run.dest):
                self._trace("cache-store")

        package_manager = self._package_manager
        if package_manager is None:
            previous = read_install_metadata(self._settings.metadata_path)
            package_manager = previous.package_manager if previous else None
        try:
            write_install_metadata(
                self._settings.metadata_path,
                InstallMetadata(package_manager=package_manager, version=self._settings.version),
            )
        except OSError as e:
            self._log.warning("install_metadata_write_failed", error=str(e))

        self._trace("success")
        self._log.info("install_completed", source=run.source.value if run.source else None)
        return InstallState.INSTALLED

    async def _aborted(self, run: _InstallRun) -> None:
        try:
            run.tmp_path.unlink(missing_ok=True)
        except OSError as e:
            self._log.debug("tmp_cleanup_failed", error=str(e))

        error = run.final_error
        if isinstance(error, ChecksumMismatchError):
            message = str(error)
        elif isinstance(error, OSError):
            message = f"install failed ({error})"
        else:
            message = f"download failed ({error})"
        run.message = message
        self._log.error("install_failed", error=message)
        self._notify(message)
        self._notify(INCOMPLETE_HINT)
        return None

    async def _terminal(self, run: _InstallRun) -> None:  # noqa: ARG002
        return None

    # -- helpers ------------------------------------------------------------

    async def _download_and_verify(self, bundle: ReleaseAssetBundle, run: _InstallRun) -> str:
        """Download a bundle into the temporary path and verify its digest.

        Returns:
            The manifest text the binary was verified against.

        Raises:
            DownloadError: Transfer failed after all retry attempts.
            ChecksumMissingError: Manifest has no entry for the asset.
            ChecksumMismatchError: Digest differs from the manifest.
        """
        await self._retry.with_retry(
            "binary", partial(self._transport.download, bundle.binary_url, run.tmp_path)
        )
        checksums_text = await self._retry.with_retry(
            "checksums", partial(self._transport.request_text, bundle.checksums_url)
        )

        expected = parse_checksum_for_asset(checksums_text, run.asset)
        if expected is None:
            raise ChecksumMissingError(run.asset)

        actual = await sha256_file(run.tmp_path)
        if actual != expected:
            raise ChecksumMismatchError(
                build_checksum_mismatch_help(
                    asset=run.asset,
                    expected=expected,
                    actual=actual,
                    cache_dir=run.cache_paths.cache_dir,
                    platform=self._settings.platform,
                ),
                asset=run.asset,
                expected=expected,
                actual=actual,
            )
        return checksums_text
