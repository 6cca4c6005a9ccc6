"""uv tool manager."""

from __future__ import annotations

from managers.base import PackageManager


class UvManager(PackageManager):
    @property
    def name(self) -> str:
        return "uv"

    @property
    def description(self) -> str:
        return "uv tool installer"

    @property
    def list_args(self) -> list[str]:
        return ["tool", "list"]

    def update_args(self, package: str) -> list[str]:
        return ["tool", "upgrade", package]
