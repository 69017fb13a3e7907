"""Timestamp version lifecycle.

This module creates strictly increasing version ids, lists and
resolves versions, and prunes the oldest versions beyond retention.
Version ids are canonical UTC timestamps, so lexicographic order
equals chronological order.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
import re
import shutil
from typing import Callable

from core.constants import VERSION_NAME_PATTERN, VERSION_TIMESTAMP_FORMAT
from core.errors import FileDbNotVersionedError, FileDbStoreError
from core.logging_config import get_logger
from core.types import PruneResult

_LOGGER = get_logger(__name__)
_VERSION_NAME_RE = re.compile(VERSION_NAME_PATTERN)


def is_version_name(name: str) -> bool:
    """Return whether a directory name is a valid version timestamp.

    Names that only resemble timestamps (e.g. month 13) are rejected.
    """
    if _VERSION_NAME_RE.match(name) is None:
        return False
    try:
        datetime.strptime(name, VERSION_TIMESTAMP_FORMAT)
    except ValueError:
        return False
    return True


def list_version_names(table_path: Path) -> list[str]:
    """List version directory names under a table root, oldest first."""
    if not table_path.is_dir():
        return []
    return sorted(
        entry.name
        for entry in table_path.iterdir()
        if entry.is_dir() and is_version_name(entry.name)
    )


def next_version_name(existing: list[str], now: datetime) -> str:
    """Compute a version id later than every existing one.

    Args:
        existing: Existing version ids.
        now: Current wall-clock time.

    Returns:
        ``now`` at second resolution, or the latest existing version plus
        one second when the clock has not advanced past it.
    """
    candidate = now.astimezone(timezone.utc).replace(microsecond=0, tzinfo=None)
    if existing:
        latest = datetime.strptime(max(existing), VERSION_TIMESTAMP_FORMAT)
        if candidate <= latest:
            candidate = latest + timedelta(seconds=1)
    return candidate.strftime(VERSION_TIMESTAMP_FORMAT)


class VersionManager:
    """Version folder manager for one table.

    All operations raise FileDbNotVersionedError when the table is
    configured as non-versioned.
    """

    def __init__(
        self,
        table_path: Path,
        versioned: bool,
        max_versions: int,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            table_path: Table root directory.
            versioned: Whether the table keeps versions.
            max_versions: Retention limit enforced by prune.
            clock: Optional time source, defaults to UTC now.
        """
        self._table_path = table_path
        self._versioned = versioned
        self._max_versions = max_versions
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def create_version(self) -> str:
        """Create a new version directory.

        Returns:
            The new version id.

        Raises:
            FileDbStoreError: If the directory cannot be created.
        """
        self._require_versioned("create_version")
        version = next_version_name(self.list_versions(), self._clock())
        version_path = self._table_path / version
        try:
            version_path.mkdir(parents=True, exist_ok=False)
        except OSError as error:
            raise FileDbStoreError(
                f"Failed to create version directory {version_path}: {error}. "
                "Check that no other writer is using this table."
            ) from error
        _LOGGER.info("version_created", table=str(self._table_path), version=version)
        return version

    def list_versions(self) -> list[str]:
        """Return version ids sorted oldest first."""
        self._require_versioned("list_versions")
        return list_version_names(self._table_path)

    def resolve_current(self) -> str | None:
        """Return the latest version id, or None when none exist."""
        versions = self.list_versions()
        return versions[-1] if versions else None

    def prune(self) -> PruneResult:
        """Delete the oldest versions beyond the retention limit.

        Deletion failures are logged and returned; they never raise.

        Returns:
            Removed and failed version ids.
        """
        versions = self.list_versions()
        excess = versions[: max(len(versions) - self._max_versions, 0)]
        removed: list[str] = []
        failed: list[tuple[str, str]] = []
        for version in excess:
            try:
                shutil.rmtree(self._table_path / version)
            except OSError as error:
                _LOGGER.error(
                    "version_prune_failed",
                    table=str(self._table_path),
                    version=version,
                    error=str(error),
                )
                failed.append((version, str(error)))
                continue
            _LOGGER.info("version_pruned", table=str(self._table_path), version=version)
            removed.append(version)
        return PruneResult(removed=tuple(removed), failed=tuple(failed))

    def _require_versioned(self, operation: str) -> None:
        if not self._versioned:
            raise FileDbNotVersionedError(
                f"{operation}() only works on versioned tables; "
                f"{self._table_path} is configured as non-versioned."
            )
