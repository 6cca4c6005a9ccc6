"""pipx package manager.

Official documentation:
- pipx: https://pypa.github.io/pipx/
"""

from __future__ import annotations

from managers.base import PackageManager


class PipxManager(PackageManager):
    """pipx installs each application in its own isolated virtual environment."""

    @property
    def name(self) -> str:
        return "pipx"

    @property
    def description(self) -> str:
        return "Python application installer (pipx)"

    @property
    def list_args(self) -> list[str]:
        return ["list", "--short"]

    def update_args(self, package: str) -> list[str]:
        return ["upgrade", package]
