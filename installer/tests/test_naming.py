"""Tests for release asset naming."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from installer.models import ReleaseAsset
from installer.naming import (
    SUPPORTED_TARGETS,
    asset_name_for,
    bin_name_for_platform,
    checksums_asset_name_for,
    checksums_asset_name_from_binary_asset,
    current_arch,
    current_platform,
)


class TestAssetNames:
    """Tests for binary and manifest names."""

    def test_linux_binary_has_no_extension(self) -> None:
        """AN-001: Non-Windows binaries carry no extension."""
        assert asset_name_for("linux", "x64") == "mdv-linux-x64"
        assert asset_name_for("darwin", "arm64") == "mdv-darwin-arm64"

    def test_windows_binary_has_exe_extension(self) -> None:
        """AN-002: Windows binaries end in .exe."""
        assert asset_name_for("win32", "x64") == "mdv-win32-x64.exe"

    def test_manifest_name(self) -> None:
        """AN-003: Manifest names never carry .exe."""
        assert checksums_asset_name_for("win32", "arm64") == "checksums-win32-arm64.txt"
        assert checksums_asset_name_for("linux", "x64") == "checksums-linux-x64.txt"

    @pytest.mark.parametrize(("platform", "arch"), SUPPORTED_TARGETS)
    def test_manifest_derivable_from_binary_name(self, platform: str, arch: str) -> None:
        """AN-004: Binary name maps back to the same target's manifest."""
        binary = asset_name_for(platform, arch)
        assert checksums_asset_name_from_binary_asset(binary) == checksums_asset_name_for(
            platform, arch
        )

    @pytest.mark.parametrize(
        "name",
        ["", "mdv", "checksums-linux-x64.txt", "other-linux-x64", "mdv-linux-x64.tar.gz"],
    )
    def test_non_binary_names_have_no_manifest(self, name: str) -> None:
        """AN-005: Names outside the binary pattern cannot be verified."""
        assert checksums_asset_name_from_binary_asset(name) is None

    def test_release_asset_model(self) -> None:
        """AN-006: ReleaseAsset derives both names."""
        asset = ReleaseAsset(platform="win32", arch="x64")
        assert asset.name == "mdv-win32-x64.exe"
        assert asset.manifest_name == "checksums-win32-x64.txt"


class TestBinName:
    """Tests for the installed binary file name."""

    def test_posix(self) -> None:
        """AN-010: POSIX binary is named mdv."""
        assert bin_name_for_platform("linux") == "mdv"
        assert bin_name_for_platform("darwin") == "mdv"

    def test_windows(self) -> None:
        """AN-011: Windows binary is named mdv.exe."""
        assert bin_name_for_platform("win32") == "mdv.exe"


class TestCurrentTarget:
    """Tests for host platform/arch detection."""

    @pytest.mark.parametrize(
        ("machine", "expected"),
        [("x86_64", "x64"), ("AMD64", "x64"), ("aarch64", "arm64"), ("arm64", "arm64")],
    )
    def test_arch_aliases(self, machine: str, expected: str) -> None:
        """AN-020: Machine names are normalized."""
        with patch("installer.naming._platform.machine", return_value=machine):
            assert current_arch() == expected

    def test_unknown_arch_passes_through(self) -> None:
        """AN-021: Unknown machines are reported lowercased."""
        with patch("installer.naming._platform.machine", return_value="RISCV64"):
            assert current_arch() == "riscv64"

    @pytest.mark.parametrize(
        ("sys_platform", "expected"),
        [("linux", "linux"), ("darwin", "darwin"), ("win32", "win32"), ("cygwin", "win32")],
    )
    def test_platform(self, sys_platform: str, expected: str) -> None:
        """AN-022: sys.platform maps onto release platforms."""
        with patch("installer.naming.sys.platform", sys_platform):
            assert current_platform() == expected
