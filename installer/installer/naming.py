"""Release asset naming.

Maps a (platform, architecture) target onto the names of the files attached to
a release: the binary (``mdv-<platform>-<arch>[.exe]``) and its checksum
manifest (``checksums-<platform>-<arch>.txt``).
"""

from __future__ import annotations

import platform as _platform
import re
import sys

WINDOWS_PLATFORM = "win32"

SUPPORTED_TARGETS: tuple[tuple[str, str], ...] = (
    ("linux", "x64"),
    ("linux", "arm64"),
    ("darwin", "x64"),
    ("darwin", "arm64"),
    ("win32", "x64"),
    ("win32", "arm64"),
)

_ARCH_ALIASES = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv8": "arm64",
}

_BINARY_ASSET_PATTERN = re.compile(r"^mdv-([a-z0-9]+)-([a-z0-9_]+)(?:\.exe)?$")


def current_platform() -> str:
    """Return the release platform identifier of the running interpreter."""
    if sys.platform.startswith("linux"):
        return "linux"
    if sys.platform == "darwin":
        return "darwin"
    if sys.platform in ("win32", "cygwin"):
        return WINDOWS_PLATFORM
    return sys.platform


def current_arch() -> str:
    """Return the release architecture identifier of the running machine."""
    machine = _platform.machine().lower()
    return _ARCH_ALIASES.get(machine, machine)


def asset_name_for(platform: str, arch: str) -> str:
    ext = ".exe" if platform == WINDOWS_PLATFORM else ""
    return f"mdv-{platform}-{arch}{ext}"


def checksums_asset_name_for(platform: str, arch: str) -> str:
    return f"checksums-{platform}-{arch}.txt"


def checksums_asset_name_from_binary_asset(name: str) -> str | None:
    """Return the manifest name paired with a binary asset name.

    Args:
        name: Binary asset name such as ``mdv-linux-x64``.

    Returns:
        The checksum manifest name, or None when ``name`` is not a binary asset
        (the asset cannot be verified).
    """
    match = _BINARY_ASSET_PATTERN.match(name)
    if match is None:
        return None
    return checksums_asset_name_for(match.group(1), match.group(2))


def bin_name_for_platform(platform: str) -> str:
    return "mdv.exe" if platform == WINDOWS_PLATFORM else "mdv"
