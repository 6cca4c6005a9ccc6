"""Tests for the package manager definitions and registry."""

from __future__ import annotations

import pytest

from managers.base import ProbeResult
from managers.conda import CondaManager
from managers.pip import PipManager
from managers.pipx import PipxManager
from managers.registry import ManagerRegistry, get_registry, register_builtin_managers
from managers.uv import UvManager


class TestManagerCommands:
    """Tests for per-manager probe and update commands."""

    @pytest.mark.parametrize(
        ("manager", "probe", "update"),
        [
            (PipManager(), ["pip", "list", "--format=freeze"], ["pip", "install", "--upgrade", "pkg"]),
            (PipxManager(), ["pipx", "list", "--short"], ["pipx", "upgrade", "pkg"]),
            (UvManager(), ["uv", "tool", "list"], ["uv", "tool", "upgrade", "pkg"]),
            (CondaManager(), ["conda", "list"], ["conda", "update", "-y", "pkg"]),
        ],
    )
    def test_commands(self, manager, probe: list[str], update: list[str]) -> None:
        """PM-001: Each manager has its own listing and upgrade shape."""
        assert manager.probe_command() == probe
        assert manager.update_command("pkg").argv == update

    def test_pip_script_update(self) -> None:
        """PM-002: A pip script is run through the given interpreter."""
        command = PipManager().script_update_command(
            "/usr/bin/python3", "/opt/venv/bin/pip.py", "mdv-launcher"
        )

        assert command.command == "/usr/bin/python3"
        assert command.argv == [
            "/usr/bin/python3",
            "/opt/venv/bin/pip.py",
            "install",
            "--upgrade",
            "mdv-launcher",
        ]


class TestListsPackage:
    """Tests for PackageManager.lists_package."""

    def test_found(self) -> None:
        """PM-010: Successful output naming the package matches."""
        result = ProbeResult(returncode=0, stdout="rich==13.7.0\nMDV-Launcher==0.1.0\n")
        assert PipManager().lists_package(result, "mdv-launcher")

    def test_failed_probe(self) -> None:
        """PM-011: A non-zero probe never matches."""
        result = ProbeResult(returncode=1, stdout="mdv-launcher 0.1.0")
        assert not PipxManager().lists_package(result, "mdv-launcher")

    def test_absent(self) -> None:
        """PM-012: Output without the package does not match."""
        assert not UvManager().lists_package(ProbeResult(0, "ruff v0.4.0\n"), "mdv-launcher")


class TestManagerRegistry:
    """Tests for ManagerRegistry."""

    def test_builtins(self) -> None:
        """PM-020: The four built-in managers are registered."""
        registry = ManagerRegistry()
        register_builtin_managers(registry)

        assert sorted(registry.list_names()) == ["conda", "pip", "pipx", "uv"]
        assert "pipx" in registry
        assert "npm" not in registry

    def test_get_returns_instances(self) -> None:
        """PM-021: get returns a fresh manager or None."""
        registry = get_registry()

        assert isinstance(registry.get("uv"), UvManager)
        assert registry.get("brew") is None
        assert registry.get(None) is None

    def test_global_registry_singleton(self) -> None:
        """PM-022: get_registry returns the same instance."""
        assert get_registry() is get_registry()
