"""Digest-validated, per-version cache of installed binaries.

Layout::

    <install_root>/cache/<version>/<asset name>
    <install_root>/cache/<version>/<manifest name>

A cached binary is copied out first and trusted only after the SHA-256 of the
copy matches the cached manifest entry. A mismatching entry is deleted. Entries
are written under a temporary name and renamed into place, so readers never see
a partially written file.
"""

from __future__ import annotations

import os
import shutil
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from .checksums import parse_checksum_for_asset, sha256_file
from .models import CachePaths

if TYPE_CHECKING:
    from collections.abc import Callable

logger = structlog.get_logger(__name__)

CACHE_DIRNAME = "cache"


def _tmp_name(path: Path) -> Path:
    return path.with_name(f"{path.name}.tmp-{os.getpid()}-{uuid.uuid4().hex[:8]}")


def cache_paths_for(
    install_root: Path, version: str, asset_name: str, manifest_name: str
) -> CachePaths:
    cache_dir = install_root / CACHE_DIRNAME / version
    return CachePaths(
        cache_dir=cache_dir,
        cache_binary_path=cache_dir / asset_name,
        cache_manifest_path=cache_dir / manifest_name,
    )


class VerifiedCache:
    """Reads and writes the verified binary cache."""

    def __init__(self, trace: Callable[[str], None] | None = None) -> None:
        self._trace = trace or (lambda _step: None)
        self._log = logger.bind(component="verified_cache")

    async def install_from_cache(
        self, paths: CachePaths, asset_name: str, output_path: Path
    ) -> bool:
        """Copy a verified cached binary to ``output_path``.

        Args:
            paths: Cache locations for the version being installed.
            asset_name: Binary asset name looked up in the cached manifest.
            output_path: Temporary install path to populate.

        Returns:
            True on a cache hit, False on a miss (including invalidation).
        """
        if not paths.cache_binary_path.exists() or not paths.cache_manifest_path.exists():
            return False

        try:
            manifest_text = paths.cache_manifest_path.read_text(encoding="utf-8")
            expected = parse_checksum_for_asset(manifest_text, asset_name)
            if expected is None:
                self._trace("cache-invalid-missing-checksum-entry")
                return False

            shutil.copyfile(paths.cache_binary_path, output_path)
            actual = await sha256_file(output_path)
            if actual != expected:
                self._trace("cache-invalid-checksum-mismatch")
                self._log.warning(
                    "cache_checksum_mismatch",
                    path=str(paths.cache_binary_path),
                    expected=expected[:12],
                    actual=actual[:12],
                )
                self.invalidate(paths)
                output_path.unlink(missing_ok=True)
                return False
        except OSError as e:
            self._trace("cache-read-failed")
            self._log.debug("cache_read_failed", error=str(e))
            output_path.unlink(missing_ok=True)
            return False

        self._log.info("cache_hit", path=str(paths.cache_binary_path))
        return True

    def persist(self, paths: CachePaths, manifest_text: str, source_binary: Path) -> bool:
        """Store a freshly verified binary and its manifest.

        Failures are logged and reported through the return value; caching is
        never allowed to fail an install.
        """
        try:
            paths.cache_dir.mkdir(parents=True, exist_ok=True)
            tmp_binary = _tmp_name(paths.cache_binary_path)
            tmp_manifest = _tmp_name(paths.cache_manifest_path)
            try:
                shutil.copyfile(source_binary, tmp_binary)
                tmp_manifest.write_text(manifest_text, encoding="utf-8")
                os.replace(tmp_binary, paths.cache_binary_path)
                os.replace(tmp_manifest, paths.cache_manifest_path)
            finally:
                tmp_binary.unlink(missing_ok=True)
                tmp_manifest.unlink(missing_ok=True)
        except OSError as e:
            self._trace("cache-store-failed")
            self._log.warning("cache_write_failed", error=str(e))
            return False
        return True

    def invalidate(self, paths: CachePaths) -> None:
        for path in (paths.cache_binary_path, paths.cache_manifest_path):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                self._log.warning("cache_invalidate_failed", path=str(path), error=str(e))

    def clear(self, install_root: Path, version: str | None = None) -> int:
        """Remove cached versions.

        Args:
            install_root: Install root containing the cache directory.
            version: Only clear this version. None = clear all.

        Returns:
            Number of version directories removed.
        """
        cache_root = install_root / CACHE_DIRNAME
        if not cache_root.exists():
            return 0

        targets = [cache_root / version] if version else list(cache_root.iterdir())
        removed = 0
        for path in targets:
            if not path.exists():
                continue
            try:
                if path.is_dir():
                    shutil.rmtree(path)
                else:
                    path.unlink()
                removed += 1
            except OSError as e:
                self._log.warning("cache_clear_failed", path=str(path), error=str(e))
        return removed
