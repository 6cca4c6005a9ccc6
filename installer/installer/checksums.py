"""Checksum manifest parsing and file digests.

Manifests are ``sha256sum``/``shasum`` output: one ``<hex64>  <name>`` or
``<hex64> *<name>`` entry per line.
"""

from __future__ import annotations

import asyncio
import hashlib
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

DIGEST_PREFIX_LENGTH = 12
HASH_CHUNK_SIZE = 65536  # 64 KB chunks

_MANIFEST_LINE = re.compile(r"^([a-fA-F0-9]{64})\s+\*?(.+)$")


def _manifest_entries(manifest_text: str):
    for raw_line in manifest_text.splitlines():
        line = raw_line.rstrip("\r").strip()
        if not line:
            continue
        match = _MANIFEST_LINE.match(line)
        if match is None:
            continue
        yield match.group(2).strip(), match.group(1).lower()


def parse_checksum_for_asset(manifest_text: str, asset_name: str) -> str | None:
    """Find the expected digest for ``asset_name`` in a checksum manifest.

    Args:
        manifest_text: Full manifest text.
        asset_name: Exact file name to look up.

    Returns:
        The lowercase hex digest of the first matching line, or None.
    """
    for filename, digest in _manifest_entries(manifest_text):
        if filename == asset_name:
            return digest
    return None


def parse_checksum_manifest(manifest_text: str) -> dict[str, str]:
    """Parse every entry of a manifest. The first entry for a name wins."""
    entries: dict[str, str] = {}
    for filename, digest in _manifest_entries(manifest_text):
        entries.setdefault(filename, digest)
    return entries


def _sha256_file_sync(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as source:
        for chunk in iter(lambda: source.read(HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


async def sha256_file(path: Path) -> str:
    """Compute the SHA-256 hex digest of a file without blocking the event loop."""
    return await asyncio.to_thread(_sha256_file_sync, path)


def build_checksum_mismatch_help(
    *,
    asset: str,
    expected: str,
    actual: str,
    cache_dir: Path,
    platform: str,
) -> str:
    """Build the user-facing message for a digest mismatch.

    The message carries truncated digests and a command that clears the cache
    directory for the affected version.
    """
    if platform == "win32":
        clear_cmd = f'Remove-Item -Recurse -Force "{cache_dir}"'
    else:
        clear_cmd = f'rm -rf "{cache_dir}"'
    return (
        f"checksum mismatch for {asset} "
        f"(expected {expected[:DIGEST_PREFIX_LENGTH]}..., got {actual[:DIGEST_PREFIX_LENGTH]}...). "
        f"clear the cache with `{clear_cmd}` (or `mdv-install cache clear`) and retry"
    )
