"""Data models for the mdv installer.

This module defines Pydantic models for tuning and persisted install metadata,
and plain dataclasses for derived values (asset names, URL bundles, cache paths,
install outcomes).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path  # noqa: TC003 - needed at runtime by dataclasses
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ReleaseUnresolvableError
from .naming import asset_name_for, checksums_asset_name_for

# (default, minimum, maximum) for each tuning knob
RETRY_ATTEMPTS_BOUNDS = (3, 1, 10)
TIMEOUT_MS_BOUNDS = (15_000, 1_000, 120_000)
BACKOFF_MS_BOUNDS = (250, 50, 5_000)
BACKOFF_JITTER_MS_BOUNDS = (100, 0, 2_000)


def clamp_int(value: Any, default: int, minimum: int, maximum: int) -> int:
    """Coerce a configured value into an integer inside ``[minimum, maximum]``.

    Absent, non-numeric and non-finite values fall back to ``default``.
    Fractional values are floored before clamping.

    Args:
        value: Raw configured value (string, number or None).
        default: Value used when ``value`` cannot be interpreted.
        minimum: Lower bound (inclusive).
        maximum: Upper bound (inclusive).

    Returns:
        The clamped integer.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return max(minimum, min(maximum, math.floor(number)))


class InstallTuning(BaseModel):
    """Network tuning for release acquisition.

    Each field is clamped independently; out-of-range values are pulled to the
    nearest bound and unparseable values fall back to the default.
    """

    model_config = ConfigDict(frozen=True)

    retry_attempts: int = Field(
        default=RETRY_ATTEMPTS_BOUNDS[0], description="Attempts per network operation"
    )
    timeout_ms: int = Field(default=TIMEOUT_MS_BOUNDS[0], description="Per-request timeout")
    backoff_ms: int = Field(default=BACKOFF_MS_BOUNDS[0], description="Base backoff per attempt")
    backoff_jitter_ms: int = Field(
        default=BACKOFF_JITTER_MS_BOUNDS[0], description="Upper bound of random jitter"
    )

    @field_validator("retry_attempts", mode="before")
    @classmethod
    def _clamp_retry_attempts(cls, value: Any) -> int:
        return clamp_int(value, *RETRY_ATTEMPTS_BOUNDS)

    @field_validator("timeout_ms", mode="before")
    @classmethod
    def _clamp_timeout_ms(cls, value: Any) -> int:
        return clamp_int(value, *TIMEOUT_MS_BOUNDS)

    @field_validator("backoff_ms", mode="before")
    @classmethod
    def _clamp_backoff_ms(cls, value: Any) -> int:
        return clamp_int(value, *BACKOFF_MS_BOUNDS)

    @field_validator("backoff_jitter_ms", mode="before")
    @classmethod
    def _clamp_backoff_jitter_ms(cls, value: Any) -> int:
        return clamp_int(value, *BACKOFF_JITTER_MS_BOUNDS)


class InstallMetadata(BaseModel):
    """Record persisted under the install root after a successful install."""

    model_config = ConfigDict(populate_by_name=True)

    package_manager: str | None = Field(default=None, alias="packageManager")
    version: str | None = Field(default=None)
    saved_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC), alias="savedAt")


@dataclass(frozen=True)
class ReleaseAsset:
    """A platform/architecture target and the release file names derived from it."""

    platform: str
    arch: str

    @property
    def name(self) -> str:
        return asset_name_for(self.platform, self.arch)

    @property
    def manifest_name(self) -> str:
        return checksums_asset_name_for(self.platform, self.arch)


@dataclass(frozen=True)
class ReleaseAssetBundle:
    """Binary and checksum manifest URLs resolved from a single release query."""

    binary_url: str
    checksums_url: str


@dataclass(frozen=True)
class CachePaths:
    """Locations of the verified cache for one version and asset."""

    cache_dir: Path
    cache_binary_path: Path
    cache_manifest_path: Path


class InstallStatus(str, Enum):
    """Terminal status of an install run."""

    INSTALLED = "installed"
    SKIPPED = "skipped"
    UP_TO_DATE = "up_to_date"
    FAILED = "failed"


class InstallSource(str, Enum):
    """Where the installed binary came from."""

    CACHE = "cache"
    PRIMARY = "primary"
    FALLBACK = "fallback"
    NATIVE = "native"

    @property
    def network_verified(self) -> bool:
        """Whether the binary was verified against a freshly downloaded manifest."""
        return self in (InstallSource.PRIMARY, InstallSource.FALLBACK)


@dataclass
class InstallOutcome:
    """Result of a single install run."""

    status: InstallStatus
    binary_path: Path
    source: InstallSource | None = None
    message: str | None = None
    states: tuple[str, ...] = field(default_factory=tuple)
    resolution_error: ReleaseUnresolvableError | None = None

    @property
    def success(self) -> bool:
        return self.status is not InstallStatus.FAILED

    @property
    def exit_code(self) -> int:
        """Process exit code for this outcome."""
        return 0 if self.success else 1
