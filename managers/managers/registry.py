"""Registry of supported package managers."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from managers.conda import CondaManager
from managers.pip import PipManager
from managers.pipx import PipxManager
from managers.uv import UvManager

if TYPE_CHECKING:
    from managers.base import PackageManager

logger = structlog.get_logger(__name__)

BUILTIN_MANAGERS: tuple[type[PackageManager], ...] = (
    PipManager,
    PipxManager,
    UvManager,
    CondaManager,
)


class ManagerRegistry:
    """Registry of package managers keyed by name."""

    def __init__(self) -> None:
        """Initialize an empty manager registry."""
        self._managers: dict[str, type[PackageManager]] = {}

    def register(self, manager_class: type[PackageManager]) -> None:
        """Register a package manager class.

        Args:
            manager_class: The manager class to register.
        """
        name = manager_class().name
        self._managers[name] = manager_class
        logger.debug("manager_registered", manager=name)

    def get(self, name: str | None) -> PackageManager | None:
        """Get a manager instance by name, or None if not supported."""
        if not name:
            return None
        manager_class = self._managers.get(name)
        if manager_class:
            return manager_class()
        return None

    def __contains__(self, name: object) -> bool:
        return name in self._managers

    def list_names(self) -> list[str]:
        return list(self._managers.keys())


def register_builtin_managers(registry: ManagerRegistry) -> None:
    for manager_class in BUILTIN_MANAGERS:
        registry.register(manager_class)


# Global registry instance
_registry: ManagerRegistry | None = None


def get_registry() -> ManagerRegistry:
    """Get the global manager registry with the built-in managers registered."""
    global _registry
    if _registry is None:
        _registry = ManagerRegistry()
        register_builtin_managers(_registry)
    return _registry
