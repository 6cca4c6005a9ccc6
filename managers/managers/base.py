"""Base class for package managers that can own a global mdv-launcher install."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ProbeResult:
    """Exit status and standard output of a probe command."""

    returncode: int
    stdout: str = ""


@dataclass(frozen=True)
class UpdateCommand:
    """A command that updates the globally installed package."""

    command: str
    args: list[str]

    @property
    def argv(self) -> list[str]:
        return [self.command, *self.args]


class PackageManager(ABC):
    """A package manager able to install and upgrade a global Python tool.

    Subclasses describe how to list global packages (for detection) and how
    to upgrade one.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the manager name (also its executable)."""
        ...

    @property
    def command(self) -> str:
        """Return the executable used to invoke the manager."""
        return self.name

    @property
    def description(self) -> str:
        return self.name

    @property
    @abstractmethod
    def list_args(self) -> list[str]:
        """Arguments that list globally installed packages."""
        ...

    @abstractmethod
    def update_args(self, package: str) -> list[str]:
        """Arguments that upgrade ``package`` globally."""
        ...

    def probe_command(self) -> list[str]:
        return [self.command, *self.list_args]

    def update_command(self, package: str) -> UpdateCommand:
        return UpdateCommand(command=self.command, args=self.update_args(package))

    def lists_package(self, result: ProbeResult, package: str) -> bool:
        """Whether a probe result shows ``package`` as installed."""
        return result.returncode == 0 and package.lower() in result.stdout.lower()
