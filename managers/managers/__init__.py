"""Package manager resolution for mdv-launcher.

This package contains one module per supported package manager, a registry,
and the resolver that picks the manager owning the global install.
"""

from __future__ import annotations

from managers.base import PackageManager, ProbeResult, UpdateCommand
from managers.conda import CondaManager
from managers.pip import PipManager
from managers.pipx import PipxManager
from managers.registry import ManagerRegistry, get_registry, register_builtin_managers
from managers.resolver import (
    DEFAULT_MANAGER,
    DETECTION_ORDER,
    PACKAGE_NAME,
    CommandProbe,
    SubprocessProbe,
    detect_installed_package_manager,
    package_manager_hint_from_env,
    resolve_update_command,
    should_run_update_command,
)
from managers.uv import UvManager

__all__ = [
    "DEFAULT_MANAGER",
    "DETECTION_ORDER",
    "PACKAGE_NAME",
    "CommandProbe",
    "CondaManager",
    "ManagerRegistry",
    "PackageManager",
    "PipManager",
    "PipxManager",
    "ProbeResult",
    "SubprocessProbe",
    "UpdateCommand",
    "UvManager",
    "detect_installed_package_manager",
    "get_registry",
    "package_manager_hint_from_env",
    "register_builtin_managers",
    "resolve_update_command",
    "should_run_update_command",
]
