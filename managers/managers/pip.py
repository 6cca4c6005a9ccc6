"""pip package manager."""

from __future__ import annotations

from managers.base import PackageManager, UpdateCommand


class PipManager(PackageManager):
    """pip, the universal default.

    Executes:
    1. pip list --format=freeze - detect the installed package
    2. pip install --upgrade <package> - update it
    """

    @property
    def name(self) -> str:
        return "pip"

    @property
    def description(self) -> str:
        return "Python package installer (pip)"

    @property
    def list_args(self) -> list[str]:
        return ["list", "--format=freeze"]

    def update_args(self, package: str) -> list[str]:
        return ["install", "--upgrade", package]

    def script_update_command(self, runtime: str, script: str, package: str) -> UpdateCommand:
        """Run a pip entry script with the current interpreter instead of PATH lookup."""
        return UpdateCommand(command=runtime, args=[script, *self.update_args(package)])
