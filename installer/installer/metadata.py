"""Persisted install metadata and binary staleness checks."""

from __future__ import annotations

import json
import os
import uuid
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from .models import InstallMetadata

if TYPE_CHECKING:
    from pathlib import Path

logger = structlog.get_logger(__name__)


def read_install_metadata(path: Path) -> InstallMetadata | None:
    """Read install metadata, treating a missing or malformed file as absent."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.debug("install_metadata_unreadable", path=str(path), error=str(e))
        return None
    try:
        return InstallMetadata.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.debug("install_metadata_invalid", path=str(path), error=str(e))
        return None


def write_install_metadata(path: Path, metadata: InstallMetadata) -> None:
    """Write install metadata atomically.

    Raises:
        OSError: If the file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f"{path.name}.tmp-{os.getpid()}-{uuid.uuid4().hex[:8]}")
    tmp.write_text(
        metadata.model_dump_json(by_alias=True, exclude_none=True, indent=2) + "\n",
        encoding="utf-8",
    )
    os.replace(tmp, path)
    logger.debug("install_metadata_saved", path=str(path), version=metadata.version)


def should_install_binary(
    *,
    bin_exists: bool,
    installed_version: str | None,
    package_version: str | None,
) -> bool:
    """Whether the binary has to be (re)installed.

    A binary is stale when its recorded version differs from the current
    package version; with no known package version an existing binary is kept.
    """
    if not bin_exists:
        return True
    if not package_version:
        return False
    return installed_version != package_version
