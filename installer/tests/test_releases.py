"""Tests for release metadata lookup and URL resolution."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from installer.errors import HttpStatusError
from installer.models import ReleaseAssetBundle
from installer.releases import (
    GitHubReleaseClient,
    find_asset_url,
    resolve_release_asset_bundle,
    resolve_release_asset_url,
    should_use_fallback_url,
    tagged_release_kind,
)

ASSET = "mdv-linux-x64"
MANIFEST = "checksums-linux-x64.txt"


def release(*assets: tuple[str, Any]) -> dict[str, Any]:
    return {"assets": [{"name": name, "browser_download_url": url} for name, url in assets]}


def fetcher(releases: dict[str, Any]) -> AsyncMock:
    async def get_release(kind: str) -> Any:
        if kind not in releases:
            raise HttpStatusError(404, kind)
        return releases[kind]

    return AsyncMock(side_effect=get_release)


class TestFindAssetUrl:
    """Tests for find_asset_url."""

    def test_finds_named_asset(self) -> None:
        """RA-001: The named asset's download URL is returned."""
        data = release(("other", "https://x/other"), (ASSET, "https://x/bin"))
        assert find_asset_url(data, ASSET) == "https://x/bin"

    def test_skips_entries_without_url(self) -> None:
        """RA-002: Empty or missing URLs are skipped in favour of later entries."""
        data = {
            "assets": [
                {"name": ASSET},
                {"name": ASSET, "browser_download_url": ""},
                {"name": ASSET, "browser_download_url": 42},
                {"name": ASSET, "browser_download_url": "https://x/bin"},
            ]
        }
        assert find_asset_url(data, ASSET) == "https://x/bin"

    @pytest.mark.parametrize("data", [None, [], "text", {}, {"assets": None}, {"assets": ["x"]}])
    def test_malformed_release(self, data: Any) -> None:
        """RA-003: Malformed release objects yield None."""
        assert find_asset_url(data, ASSET) is None


class TestResolveReleaseAssetBundle:
    """Tests for tagged-then-latest bundle resolution."""

    @pytest.mark.asyncio
    async def test_tagged_release_wins(self) -> None:
        """RA-010: A complete tagged release is used without querying latest."""
        get_release = fetcher(
            {
                "tags/v1.2.3": release((ASSET, "https://t/bin"), (MANIFEST, "https://t/sum")),
                "latest": release((ASSET, "https://l/bin"), (MANIFEST, "https://l/sum")),
            }
        )

        bundle = await resolve_release_asset_bundle(
            version="1.2.3", asset=ASSET, checksums_asset=MANIFEST, get_release=get_release
        )

        assert bundle == ReleaseAssetBundle("https://t/bin", "https://t/sum")
        assert [c.args[0] for c in get_release.await_args_list] == ["tags/v1.2.3"]

    @pytest.mark.asyncio
    async def test_latest_when_tagged_fails(self) -> None:
        """RA-011: A failed tagged query falls through to latest."""
        get_release = fetcher(
            {"latest": release((ASSET, "https://l/bin"), (MANIFEST, "https://l/sum"))}
        )

        bundle = await resolve_release_asset_bundle(
            version="1.2.3", asset=ASSET, checksums_asset=MANIFEST, get_release=get_release
        )

        assert bundle == ReleaseAssetBundle("https://l/bin", "https://l/sum")

    @pytest.mark.asyncio
    async def test_urls_never_mixed_across_releases(self) -> None:
        """RA-012: Binary and manifest must come from the same release."""
        get_release = fetcher(
            {
                "tags/v1.2.3": release((ASSET, "https://t/bin")),
                "latest": release((MANIFEST, "https://l/sum")),
            }
        )

        bundle = await resolve_release_asset_bundle(
            version="1.2.3", asset=ASSET, checksums_asset=MANIFEST, get_release=get_release
        )

        assert bundle is None

    @pytest.mark.asyncio
    async def test_none_when_both_fail(self) -> None:
        """RA-013: No usable release gives None."""
        bundle = await resolve_release_asset_bundle(
            version="1.2.3", asset=ASSET, checksums_asset=MANIFEST, get_release=fetcher({})
        )

        assert bundle is None


class TestResolveReleaseAssetUrl:
    """Tests for the single-asset variant."""

    @pytest.mark.asyncio
    async def test_falls_back_to_latest(self) -> None:
        """RA-020: Latest is consulted when the tag lacks the asset."""
        get_release = fetcher(
            {"tags/v1.2.3": release(), "latest": release((ASSET, "https://l/bin"))}
        )

        url = await resolve_release_asset_url(version="1.2.3", asset=ASSET, get_release=get_release)

        assert url == "https://l/bin"


class TestShouldUseFallbackUrl:
    """Truth table for should_use_fallback_url."""

    @pytest.mark.parametrize(
        ("primary", "fallback", "expected"),
        [
            ("https://a", "https://b", True),
            ("https://a", "https://a", False),
            (None, "https://b", True),
            ("", "https://b", True),
            ("https://a", None, False),
            ("https://a", "", False),
            (None, None, False),
        ],
    )
    def test_truth_table(self, primary: str | None, fallback: str | None, expected: bool) -> None:
        """RA-030: Only a present, different fallback URL is used."""
        assert should_use_fallback_url(primary, fallback) is expected


class TestGitHubReleaseClient:
    """Tests for the GitHub Releases API client."""

    def test_tagged_kind(self) -> None:
        """RA-040: Tagged kind carries the v prefix."""
        assert tagged_release_kind("0.4.0") == "tags/v0.4.0"

    @pytest.mark.asyncio
    async def test_queries_release_endpoint_with_token(self) -> None:
        """RA-041: The client forwards the bearer token to the transport."""
        transport = AsyncMock()
        transport.request_json.return_value = {"assets": []}
        client = GitHubReleaseClient(
            transport, "https://api.github.com/repos/Dhruv2mars/mdv/", auth_token="tok"
        )

        result = await client.get_release("latest")

        assert result == {"assets": []}
        transport.request_json.assert_awaited_once_with(
            "https://api.github.com/repos/Dhruv2mars/mdv/releases/latest", "tok"
        )
