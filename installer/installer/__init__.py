"""mdv installer core.

Acquires the platform-specific mdv release binary, verifies it against the
published SHA-256 manifest, caches it per version and installs it atomically.

Module Overview:
    naming: Release asset and checksum manifest names per platform/arch
    checksums: Manifest parsing, file digests, mismatch help text
    retry: Backoff computation and the retry policy
    releases: Tagged/latest release lookup and URL bundle resolution
    downloader: aiohttp transport with redirect and timeout discipline
    cache: Digest-validated per-version binary cache
    metadata: Persisted install metadata and staleness checks
    native_build: Opt-in cargo build fallback
    orchestrator: Install state machine
    config: Settings from environment variables and the YAML config file
"""

from installer.cache import VerifiedCache, cache_paths_for
from installer.checksums import (
    build_checksum_mismatch_help,
    parse_checksum_for_asset,
    parse_checksum_manifest,
    sha256_file,
)
from installer.config import InstallerSettings, load_settings, package_version
from installer.downloader import HttpDownloader, HttpTransport
from installer.errors import (
    ChecksumMismatchError,
    ChecksumMissingError,
    DownloadError,
    DownloadTimeoutError,
    HttpStatusError,
    InstallError,
    IntegrityError,
    ReleaseUnresolvableError,
    TooManyRedirectsError,
)
from installer.metadata import read_install_metadata, should_install_binary, write_install_metadata
from installer.models import (
    CachePaths,
    InstallMetadata,
    InstallOutcome,
    InstallSource,
    InstallStatus,
    InstallTuning,
    ReleaseAsset,
    ReleaseAssetBundle,
)
from installer.naming import (
    asset_name_for,
    bin_name_for_platform,
    checksums_asset_name_for,
    checksums_asset_name_from_binary_asset,
)
from installer.native_build import CargoBuilder, NativeBuilder
from installer.orchestrator import Installer, InstallState
from installer.releases import (
    GitHubReleaseClient,
    ReleaseFetcher,
    find_asset_url,
    resolve_release_asset_bundle,
    resolve_release_asset_url,
    should_use_fallback_url,
)
from installer.retry import RetryPolicy, compute_backoff_delay

__version__ = package_version()

__all__ = [
    "CachePaths",
    "CargoBuilder",
    "ChecksumMismatchError",
    "ChecksumMissingError",
    "DownloadError",
    "DownloadTimeoutError",
    "GitHubReleaseClient",
    "HttpDownloader",
    "HttpStatusError",
    "HttpTransport",
    "InstallError",
    "InstallMetadata",
    "InstallOutcome",
    "InstallSource",
    "InstallState",
    "InstallStatus",
    "InstallTuning",
    "Installer",
    "InstallerSettings",
    "IntegrityError",
    "NativeBuilder",
    "ReleaseAsset",
    "ReleaseAssetBundle",
    "ReleaseFetcher",
    "ReleaseUnresolvableError",
    "RetryPolicy",
    "TooManyRedirectsError",
    "VerifiedCache",
    "asset_name_for",
    "bin_name_for_platform",
    "build_checksum_mismatch_help",
    "cache_paths_for",
    "checksums_asset_name_for",
    "checksums_asset_name_from_binary_asset",
    "compute_backoff_delay",
    "find_asset_url",
    "load_settings",
    "package_version",
    "parse_checksum_for_asset",
    "parse_checksum_manifest",
    "read_install_metadata",
    "resolve_release_asset_bundle",
    "resolve_release_asset_url",
    "sha256_file",
    "should_install_binary",
    "should_use_fallback_url",
    "write_install_metadata",
]
