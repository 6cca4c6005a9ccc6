"""Installer configuration.

Settings are assembled once, at the process boundary, from three layers
(highest precedence first):

    1. Environment variables (``MDV_*``, ``GITHUB_TOKEN``)
    2. The optional YAML file (``$MDV_CONFIG`` or ``$XDG_CONFIG_HOME/mdv/config.yaml``),
       ``install:`` section
    3. Built-in defaults

The resulting ``InstallerSettings`` is immutable and passed explicitly to every
component; nothing below this module reads the process environment.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_package_version
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field

from .models import InstallTuning
from .naming import bin_name_for_platform, current_arch, current_platform

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = structlog.get_logger(__name__)

DISTRIBUTION_NAME = "mdv-launcher"
REPO = "Dhruv2mars/mdv"
DEFAULT_RELEASE_BASE_URL = f"https://github.com/{REPO}"
DEFAULT_RELEASE_API_URL = f"https://api.github.com/repos/{REPO}"
DEFAULT_INSTALL_DIRNAME = ".mdv"
METADATA_FILENAME = "install-meta.json"

ENV_SKIP_DOWNLOAD = "MDV_SKIP_DOWNLOAD"
ENV_INSTALL_ROOT = "MDV_INSTALL_ROOT"
ENV_BIN = "MDV_BIN"
ENV_TIMEOUT_MS = "MDV_INSTALL_TIMEOUT_MS"
ENV_RETRY_ATTEMPTS = "MDV_INSTALL_RETRY_ATTEMPTS"
ENV_BACKOFF_MS = "MDV_INSTALL_BACKOFF_MS"
ENV_BACKOFF_JITTER_MS = "MDV_INSTALL_BACKOFF_JITTER_MS"
ENV_DEBUG = "MDV_INSTALL_DEBUG"
ENV_ALLOW_NATIVE_BUILD = "MDV_ALLOW_CARGO_FALLBACK"
ENV_GITHUB_TOKEN = "GITHUB_TOKEN"
ENV_RELEASE_BASE_URL = "MDV_RELEASE_BASE_URL"
ENV_RELEASE_API_URL = "MDV_RELEASE_API_URL"
ENV_PM_EXECPATH = "MDV_PM_EXECPATH"
ENV_PM_USER_AGENT = "MDV_PM_USER_AGENT"
ENV_CONFIG = "MDV_CONFIG"

_TUNING_ENV = {
    "retry_attempts": ENV_RETRY_ATTEMPTS,
    "timeout_ms": ENV_TIMEOUT_MS,
    "backoff_ms": ENV_BACKOFF_MS,
    "backoff_jitter_ms": ENV_BACKOFF_JITTER_MS,
}
_TRUTHY = frozenset({"1", "true", "yes", "on"})


def package_version() -> str:
    """Return the installed launcher version, or ``0.0.0`` when not installed."""
    try:
        return get_package_version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return "0.0.0"


class InstallerSettings(BaseModel):
    """Resolved configuration for one launcher/installer process."""

    model_config = ConfigDict(frozen=True)

    version: str = Field(default_factory=package_version, description="Package version")
    install_root: Path = Field(
        default_factory=lambda: Path.home() / DEFAULT_INSTALL_DIRNAME,
        description="Root of the bin/, cache/ and metadata files",
    )
    bin_override: Path | None = Field(default=None, description="Explicit binary to launch")
    skip_download: bool = Field(default=False, description="Skip release acquisition")
    debug: bool = Field(default=False, description="Emit timestamped install trace")
    allow_native_build: bool = Field(default=False, description="Allow cargo build fallback")
    github_token: str | None = Field(default=None, description="Bearer token for release API")
    release_base_url: str = Field(default=DEFAULT_RELEASE_BASE_URL)
    release_api_url: str = Field(default=DEFAULT_RELEASE_API_URL)
    package_manager_execpath: str | None = Field(default=None)
    package_manager_user_agent: str | None = Field(default=None)
    platform: str = Field(default_factory=current_platform)
    arch: str = Field(default_factory=current_arch)
    tuning: InstallTuning = Field(default_factory=InstallTuning)
    subprocess_env: dict[str, str] = Field(
        default_factory=dict,
        repr=False,
        description="Base environment for child processes such as the cargo build",
    )

    @property
    def bin_dir(self) -> Path:
        return self.install_root / "bin"

    @property
    def binary_path(self) -> Path:
        """Stable launch path of the installed binary."""
        return self.bin_dir / bin_name_for_platform(self.platform)

    @property
    def metadata_path(self) -> Path:
        return self.install_root / METADATA_FILENAME

    @property
    def cache_root(self) -> Path:
        return self.install_root / "cache"

    def release_download_url(self, asset_name: str) -> str:
        """Canonical download URL of an asset of this version's release."""
        base = self.release_base_url.rstrip("/")
        return f"{base}/releases/download/v{self.version}/{asset_name}"


class YamlConfigLoader:
    """YAML-based configuration loader."""

    def load(self, path: Path) -> dict[str, Any]:
        """Load configuration from a YAML file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            yaml.YAMLError: If the file is not valid YAML.
        """
        if not path.exists():
            logger.debug("config_file_not_found", path=str(path))
            raise FileNotFoundError(f"Configuration file not found: {path}")

        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            return {}
        return data


def default_config_path(env: Mapping[str, str]) -> Path:
    """Get the config file path following the XDG spec."""
    explicit = env.get(ENV_CONFIG)
    if explicit:
        return Path(explicit).expanduser()
    xdg_config_home = env.get("XDG_CONFIG_HOME")
    base = Path(xdg_config_home) if xdg_config_home else Path.home() / ".config"
    return base / "mdv" / "config.yaml"


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUTHY


def _load_file_layer(config_path: Path) -> dict[str, Any]:
    try:
        data = YamlConfigLoader().load(config_path)
    except FileNotFoundError:
        return {}
    except yaml.YAMLError as e:
        logger.warning("config_file_invalid", path=str(config_path), error=str(e))
        return {}
    section = data.get("install", {})
    return section if isinstance(section, dict) else {}


def load_settings(
    env: Mapping[str, str],
    *,
    config_path: Path | None = None,
    **overrides: Any,
) -> InstallerSettings:
    """Build installer settings from an environment mapping.

    Args:
        env: Environment variables (usually ``os.environ``).
        config_path: YAML file to read; defaults to the XDG location.
        **overrides: Field values that take precedence over every layer.

    Returns:
        Immutable ``InstallerSettings``.
    """
    file_layer = _load_file_layer(config_path or default_config_path(env))
    values: dict[str, Any] = {}

    for key in (
        "install_root",
        "bin_override",
        "release_base_url",
        "release_api_url",
        "skip_download",
        "debug",
        "allow_native_build",
    ):
        if file_layer.get(key) is not None:
            values[key] = file_layer[key]

    tuning_values: dict[str, Any] = {
        key: file_layer[key] for key in _TUNING_ENV if file_layer.get(key) is not None
    }
    for key, env_name in _TUNING_ENV.items():
        if env.get(env_name) is not None:
            tuning_values[key] = env[env_name]
    values["tuning"] = InstallTuning(**tuning_values)

    if env.get(ENV_INSTALL_ROOT):
        values["install_root"] = env[ENV_INSTALL_ROOT]
    if env.get(ENV_BIN):
        values["bin_override"] = env[ENV_BIN]
    if env.get(ENV_RELEASE_BASE_URL):
        values["release_base_url"] = env[ENV_RELEASE_BASE_URL]
    if env.get(ENV_RELEASE_API_URL):
        values["release_api_url"] = env[ENV_RELEASE_API_URL]
    for key, env_name in (
        ("skip_download", ENV_SKIP_DOWNLOAD),
        ("debug", ENV_DEBUG),
        ("allow_native_build", ENV_ALLOW_NATIVE_BUILD),
    ):
        if env.get(env_name) is not None:
            values[key] = _flag(env[env_name])
        elif key in values:
            values[key] = _flag(values[key])

    values["github_token"] = env.get(ENV_GITHUB_TOKEN) or None
    values["package_manager_execpath"] = env.get(ENV_PM_EXECPATH) or None
    values["package_manager_user_agent"] = env.get(ENV_PM_USER_AGENT) or None
    values["subprocess_env"] = dict(env)

    if "install_root" in values:
        values["install_root"] = Path(values["install_root"]).expanduser()
    if "bin_override" in values:
        values["bin_override"] = Path(values["bin_override"]).expanduser()

    values.update(overrides)
    return InstallerSettings(**values)
