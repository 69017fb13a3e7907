"""Default synopsis hooks.

These hooks summarize listing-style records: the range of their
ModificationTimestamp values and the counts of each StandardStatus.
Field names are matched case-insensitively.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from core.types import FileEntry, VersionMetadata

MIN_TIMESTAMP_KEY = "minModificationTimestamp"
MAX_TIMESTAMP_KEY = "maxModificationTimestamp"
STATUS_COUNTS_KEY = "StandardStatuses"


def default_file_synopsis(entry: FileEntry, records: Any) -> FileEntry:
    """Add timestamp range and status counts of a file's records.

    Args:
        entry: File entry being written or rebuilt.
        records: The file's records.

    Returns:
        Entry with synopsis fields merged in; unchanged for non-array or
        empty data.
    """
    if not isinstance(records, list) or not records:
        return entry
    timestamps: list[datetime] = []
    status_counts: dict[str, int] = {}
    for record in records:
        if not isinstance(record, dict):
            continue
        for key, value in record.items():
            normalized = key.lower()
            if normalized == "modificationtimestamp":
                parsed = _parse_timestamp(value)
                if parsed is not None:
                    timestamps.append(parsed)
            elif normalized == "standardstatus" and value is not None:
                status = str(value)
                status_counts[status] = status_counts.get(status, 0) + 1
    synopsis = dict(entry.synopsis)
    if timestamps:
        synopsis[MIN_TIMESTAMP_KEY] = _format_timestamp(min(timestamps))
        synopsis[MAX_TIMESTAMP_KEY] = _format_timestamp(max(timestamps))
    if status_counts:
        synopsis[STATUS_COUNTS_KEY] = status_counts
    return replace(entry, synopsis=synopsis)


def default_version_synopsis(metadata: VersionMetadata) -> VersionMetadata:
    """Aggregate file-level timestamp ranges and status counts.

    Args:
        metadata: Draft version metadata.

    Returns:
        Metadata whose synopsis holds the version-wide aggregates.
    """
    timestamps: list[datetime] = []
    status_counts: dict[str, int] = {}
    for entry in metadata.files:
        for key in (MIN_TIMESTAMP_KEY, MAX_TIMESTAMP_KEY):
            parsed = _parse_timestamp(entry.synopsis.get(key))
            if parsed is not None:
                timestamps.append(parsed)
        file_counts = entry.synopsis.get(STATUS_COUNTS_KEY)
        if isinstance(file_counts, dict):
            for status, count in file_counts.items():
                status_counts[status] = status_counts.get(status, 0) + int(count)
    if not timestamps and not status_counts:
        return metadata
    synopsis: dict[str, Any] = (
        dict(metadata.synopsis) if isinstance(metadata.synopsis, dict) else {}
    )
    if timestamps:
        synopsis[MIN_TIMESTAMP_KEY] = _format_timestamp(min(timestamps))
        synopsis[MAX_TIMESTAMP_KEY] = _format_timestamp(max(timestamps))
    if status_counts:
        synopsis[STATUS_COUNTS_KEY] = status_counts
    return replace(metadata, synopsis=synopsis)


def _parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO8601 timestamp; naive values are taken as UTC."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _format_timestamp(value: datetime) -> str:
    """Render a UTC timestamp with millisecond precision."""
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
