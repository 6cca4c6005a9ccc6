"""Release metadata lookup and asset URL resolution.

A release object is the GitHub Releases API shape: a mapping with an
``assets`` list of ``{"name": ..., "browser_download_url": ...}`` entries.
Resolution tries the release tagged with the package version first and the
latest release second.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

from .models import ReleaseAssetBundle

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from .downloader import HttpTransport

logger = structlog.get_logger(__name__)

LATEST_RELEASE = "latest"


class ReleaseFetcher(Protocol):
    """Capability to query release metadata by kind (``tags/v1.2.3`` or ``latest``)."""

    async def get_release(self, kind: str) -> Any: ...


class GitHubReleaseClient:
    """Fetch release metadata from the GitHub Releases API."""

    def __init__(
        self,
        transport: HttpTransport,
        api_base: str,
        *,
        auth_token: str | None = None,
    ) -> None:
        self._transport = transport
        self._api_base = api_base.rstrip("/")
        self._auth_token = auth_token

    async def get_release(self, kind: str) -> Any:
        url = f"{self._api_base}/releases/{kind}"
        logger.debug("release_query", url=url, authenticated=bool(self._auth_token))
        return await self._transport.request_json(url, self._auth_token)


def tagged_release_kind(version: str) -> str:
    return f"tags/v{version}"


def find_asset_url(release: Any, asset: str) -> str | None:
    """Return the download URL of the first usable asset named ``asset``.

    Entries with the right name but a missing or empty URL are skipped.
    """
    if not isinstance(release, dict):
        return None
    assets = release.get("assets")
    if not isinstance(assets, list):
        return None
    for item in assets:
        if not isinstance(item, dict) or item.get("name") != asset:
            continue
        url = item.get("browser_download_url")
        if isinstance(url, str) and url:
            return url
    return None


async def _query(get_release: Callable[[str], Awaitable[Any]], kind: str) -> Any:
    try:
        return await get_release(kind)
    except Exception as e:  # noqa: BLE001 - a failed query just moves resolution on
        logger.debug("release_query_failed", kind=kind, error=str(e))
        return None


async def resolve_release_asset_bundle(
    *,
    version: str,
    asset: str,
    checksums_asset: str,
    get_release: Callable[[str], Awaitable[Any]],
) -> ReleaseAssetBundle | None:
    """Resolve a binary/manifest URL pair from the tagged or latest release.

    Both URLs must come from the same release. A query that raises or lacks
    either asset counts as failed and resolution moves on to the next kind.

    Args:
        version: Package version (without the ``v`` prefix).
        asset: Binary asset name.
        checksums_asset: Checksum manifest asset name.
        get_release: Coroutine function returning the release for a kind.

    Returns:
        The bundle, or None when neither release has both assets.
    """
    for kind in (tagged_release_kind(version), LATEST_RELEASE):
        release = await _query(get_release, kind)
        binary_url = find_asset_url(release, asset)
        checksums_url = find_asset_url(release, checksums_asset)
        if binary_url and checksums_url:
            logger.debug("release_bundle_resolved", kind=kind, url=binary_url)
            return ReleaseAssetBundle(binary_url=binary_url, checksums_url=checksums_url)
        logger.debug(
            "release_bundle_incomplete",
            kind=kind,
            has_binary=binary_url is not None,
            has_checksums=checksums_url is not None,
        )
    return None


async def resolve_release_asset_url(
    *,
    version: str,
    asset: str,
    get_release: Callable[[str], Awaitable[Any]],
) -> str | None:
    """Single-asset variant of ``resolve_release_asset_bundle``."""
    for kind in (tagged_release_kind(version), LATEST_RELEASE):
        url = find_asset_url(await _query(get_release, kind), asset)
        if url:
            return url
    return None


def should_use_fallback_url(primary_url: str | None, fallback_url: str | None) -> bool:
    """Whether a fallback URL is worth downloading after the primary failed."""
    if not isinstance(fallback_url, str) or not fallback_url:
        return False
    if not isinstance(primary_url, str) or not primary_url:
        return True
    return fallback_url != primary_url
