"""Tests for the cargo build fallback."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from installer.native_build import CargoBuilder


class TestCargoBuilder:
    """Tests for CargoBuilder."""

    def test_install_command(self, tmp_path: Path) -> None:
        """NB-001: cargo install targets the install root from git."""
        builder = CargoBuilder(tmp_path, "linux")

        assert builder.install_command() == [
            "cargo",
            "install",
            "mdv-cli",
            "--git",
            "https://github.com/Dhruv2mars/mdv.git",
            "--locked",
            "--root",
            str(tmp_path),
            "--config",
            "net.git-fetch-with-cli=true",
        ]

    def test_built_binary_path(self, tmp_path: Path) -> None:
        """NB-002: cargo places mdv-cli[.exe] under <root>/bin."""
        assert CargoBuilder(tmp_path, "linux").built_binary_path == tmp_path / "bin" / "mdv-cli"
        assert (
            CargoBuilder(tmp_path, "win32").built_binary_path == tmp_path / "bin" / "mdv-cli.exe"
        )

    @pytest.mark.asyncio
    async def test_no_toolchain(self, tmp_path: Path) -> None:
        """NB-010: Without cargo the build reports failure without running install."""
        builder = CargoBuilder(tmp_path, "linux")

        with patch.object(builder, "_run_command", AsyncMock(return_value=127)) as run:
            assert not await builder.build(tmp_path / "out")

        assert run.await_count == 1

    @pytest.mark.asyncio
    async def test_successful_build_copies_binary(self, tmp_path: Path) -> None:
        """NB-011: A successful cargo install is copied to the output path."""
        notify = MagicMock()
        builder = CargoBuilder(tmp_path, "linux", notify=notify)
        builder.built_binary_path.parent.mkdir(parents=True)
        builder.built_binary_path.write_bytes(b"built")
        output = tmp_path / "out"

        with patch.object(builder, "_run_command", AsyncMock(return_value=0)) as run:
            assert await builder.build(output)

        assert output.read_bytes() == b"built"
        notify.assert_called_once_with("cargo fallback install...")
        install_call = run.await_args_list[1]
        assert install_call.args[0] == builder.install_command()
        assert install_call.kwargs["env"]["CARGO_NET_GIT_FETCH_WITH_CLI"] == "true"

    @pytest.mark.asyncio
    async def test_build_env_from_constructor(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """NB-014: The build environment is the injected base plus the cargo git flag."""
        monkeypatch.setenv("MDV_PROCESS_ONLY", "1")
        builder = CargoBuilder(tmp_path, "linux", base_env={"PATH": "/opt/cargo/bin"})
        builder.built_binary_path.parent.mkdir(parents=True)
        builder.built_binary_path.write_bytes(b"built")

        with patch.object(builder, "_run_command", AsyncMock(return_value=0)) as run:
            assert await builder.build(tmp_path / "out")

        assert run.await_args_list[1].kwargs["env"] == {
            "PATH": "/opt/cargo/bin",
            "CARGO_NET_GIT_FETCH_WITH_CLI": "true",
        }

    @pytest.mark.asyncio
    async def test_failed_install(self, tmp_path: Path) -> None:
        """NB-012: A failing cargo install reports failure."""
        builder = CargoBuilder(tmp_path, "linux")

        with patch.object(builder, "_run_command", AsyncMock(side_effect=[0, 101])):
            assert not await builder.build(tmp_path / "out")

    @pytest.mark.asyncio
    async def test_missing_executable_returns_127(self, tmp_path: Path) -> None:
        """NB-013: A missing executable maps to exit status 127."""
        builder = CargoBuilder(tmp_path, "linux")

        code = await builder._run_command(
            ["mdv-definitely-not-a-real-command"], timeout=5, capture=True
        )

        assert code == 127
