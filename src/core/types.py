"""Shared typed models.

This module defines immutable data models used by the chunk writer,
metadata builder, version manager, and store facade to keep
interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Literal, Mapping

DataType = Literal["json-array", "json-object", "text", "xml"]


@dataclass(frozen=True)
class FileEntry:
    """One chunk file inside a version.

    Attributes:
        number: 1-based sequence number of the chunk.
        records_count: Number of records stored in the chunk.
        file_name: Fixed-width file name, e.g. 000001.json.
        synopsis: Caller-defined fields merged in by the file synopsis hook.
    """

    number: int
    records_count: int
    file_name: str
    synopsis: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class VersionMetadata:
    """Authoritative record of a version's files and counts.

    Attributes:
        version: Version identifier; None for non-versioned tables.
        files: Ordered chunk file entries.
        created_at: ISO8601 UTC creation timestamp.
        modified_at: ISO8601 UTC last-modified timestamp.
        total_records: Sum of records across all files.
        data_type: Inferred data type; None before the first write.
        synopsis: Version-level synopsis produced by the version hook.
        extra_fields: Informational top-level fields added by the version hook.
    """

    version: str | None
    files: tuple[FileEntry, ...]
    created_at: str
    modified_at: str
    total_records: int
    data_type: DataType | None
    synopsis: Any = None
    extra_fields: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DataFormat:
    """Result of on-disk layout detection.

    Attributes:
        versioned: Whether timestamp version folders were found.
        has_metadata: Whether the relevant metadata.json exists.
        data_type: Data type when it could be determined.
    """

    versioned: bool
    has_metadata: bool
    data_type: DataType | None


@dataclass(frozen=True)
class TableLayout:
    """Directory-level facts about a table, gathered without parsing files.

    Attributes:
        versioned: Whether timestamp version folders were found.
        has_metadata: Whether the relevant metadata.json file exists.
        has_data: Whether any metadata or chunk file exists.
        data_directory: Directory holding the data to read; the latest
            version folder, or the table root.
    """

    versioned: bool
    has_metadata: bool
    has_data: bool
    data_directory: Path


@dataclass(frozen=True)
class ChunkWriteResult:
    """Outcome of persisting one payload into chunk files.

    Attributes:
        files: Updated file entries for the version.
        records_added: Number of records added by this write.
        data_type: Data type of the written payload.
    """

    files: tuple[FileEntry, ...]
    records_added: int
    data_type: DataType


@dataclass(frozen=True)
class PruneResult:
    """Outcome of version retention.

    Attributes:
        removed: Version ids whose directories were deleted.
        failed: Version ids paired with the deletion error message.
    """

    removed: tuple[str, ...] = ()
    failed: tuple[tuple[str, str], ...] = ()


FileSynopsisFunction = Callable[[FileEntry, Any], FileEntry]
VersionSynopsisFunction = Callable[[VersionMetadata], VersionMetadata]
