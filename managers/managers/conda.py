"""Conda package manager."""

from __future__ import annotations

from managers.base import PackageManager


class CondaManager(PackageManager):
    """Conda, for installs into a conda environment.

    Executes:
    1. conda list - detect the installed package
    2. conda update -y <package> - update it non-interactively
    """

    @property
    def name(self) -> str:
        return "conda"

    @property
    def description(self) -> str:
        return "Conda package manager"

    @property
    def list_args(self) -> list[str]:
        return ["list"]

    def update_args(self, package: str) -> list[str]:
        return ["update", "-y", package]
