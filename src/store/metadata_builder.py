"""Version metadata construction.

This module builds the authoritative metadata record of a version.
It supports a full scan of every chunk file, an incremental rebuild
that samples only the first and last files, and the caller-supplied
synopsis hooks applied on top of either.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from core.constants import DATA_TYPE_JSON_ARRAY
from core.errors import FileDbCorruptMetadataError
from core.logging_config import get_logger
from core.types import (
    ChunkWriteResult,
    DataType,
    FileEntry,
    FileSynopsisFunction,
    VersionMetadata,
    VersionSynopsisFunction,
)
from store.chunk_files import count_records, list_chunk_files, read_chunk_file

_LOGGER = get_logger(__name__)


def utc_now_iso() -> str:
    """Return the current UTC time as ISO8601 with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def empty_metadata(version: str | None) -> VersionMetadata:
    """Return metadata for a version that holds no files yet."""
    timestamp = utc_now_iso()
    return VersionMetadata(
        version=version,
        files=(),
        created_at=timestamp,
        modified_at=timestamp,
        total_records=0,
        data_type=None,
    )


def build_metadata(
    directory: Path,
    version: str | None,
    file_synopsis: FileSynopsisFunction | None = None,
    version_synopsis: VersionSynopsisFunction | None = None,
) -> VersionMetadata:
    """Reconstruct metadata from the chunk files of a directory.

    A full scan is used whenever a synopsis hook is registered, since
    hooks need every file's records; otherwise the incremental rebuild
    samples only boundary files.

    Args:
        directory: Version directory or non-versioned table root.
        version: Version id, or None for non-versioned tables.
        file_synopsis: Optional per-file hook.
        version_synopsis: Optional per-version hook.

    Returns:
        Rebuilt metadata.
    """
    if file_synopsis is not None or version_synopsis is not None:
        metadata = build_full(directory, version, file_synopsis)
    else:
        metadata = build_incremental(directory, version)
    return apply_version_synopsis(metadata, version_synopsis)


def build_full(
    directory: Path,
    version: str | None,
    file_synopsis: FileSynopsisFunction | None = None,
) -> VersionMetadata:
    """Read every chunk file to count records exactly.

    Raises:
        FileDbCorruptMetadataError: If chunk files hold mixed data types.
        FileDbStoreError: If a chunk file cannot be read.
    """
    file_names = list_chunk_files(directory)
    entries: list[FileEntry] = []
    data_type: DataType | None = None
    for index, file_name in enumerate(file_names, 1):
        file_type, payload = read_chunk_file(directory / file_name)
        if data_type is None:
            data_type = file_type
        elif file_type != data_type:
            raise FileDbCorruptMetadataError(
                f"Mixed data types in {directory}: {file_name} holds {file_type} "
                f"but earlier files hold {data_type}. Split the files into separate tables."
            )
        entry = FileEntry(number=index, records_count=count_records(payload), file_name=file_name)
        if file_synopsis is not None:
            entry = replace(entry, synopsis=dict(file_synopsis(entry, payload).synopsis))
        entries.append(entry)
    metadata = replace(
        empty_metadata(version),
        files=tuple(entries),
        total_records=sum(entry.records_count for entry in entries),
        data_type=data_type,
    )
    _LOGGER.info(
        "metadata_rebuilt",
        directory=str(directory),
        mode="full",
        file_count=len(entries),
        total_records=metadata.total_records,
    )
    return metadata


def build_incremental(directory: Path, version: str | None) -> VersionMetadata:
    """Rebuild metadata from the first and last chunk files only.

    Middle files are assumed to hold as many records as the first file.
    When the last file holds more records than the first, the sample is
    not trustworthy and a full scan is used instead.
    """
    file_names = list_chunk_files(directory)
    if len(file_names) <= 2:
        return build_full(directory, version)
    data_type, first_payload = read_chunk_file(directory / file_names[0])
    if data_type != DATA_TYPE_JSON_ARRAY:
        counts = [1] * len(file_names)
    else:
        first_count = count_records(first_payload)
        last_type, last_payload = read_chunk_file(directory / file_names[-1], data_type)
        last_count = count_records(last_payload)
        if not isinstance(last_payload, list) or last_count > first_count:
            _LOGGER.warning(
                "incremental_rebuild_rejected",
                directory=str(directory),
                first_count=first_count,
                last_count=last_count,
                last_type=last_type,
            )
            return build_full(directory, version)
        counts = [first_count] * (len(file_names) - 1) + [last_count]
    entries = tuple(
        FileEntry(number=index, records_count=count, file_name=file_name)
        for index, (file_name, count) in enumerate(zip(file_names, counts), 1)
    )
    metadata = replace(
        empty_metadata(version),
        files=entries,
        total_records=sum(counts),
        data_type=data_type,
    )
    _LOGGER.info(
        "metadata_rebuilt",
        directory=str(directory),
        mode="incremental",
        file_count=len(entries),
        total_records=metadata.total_records,
    )
    return metadata


def apply_version_synopsis(
    metadata: VersionMetadata,
    version_synopsis: VersionSynopsisFunction | None,
) -> VersionMetadata:
    """Run the version hook, keeping files and counts from the draft.

    Only ``synopsis`` and informational ``extra_fields`` are taken from
    the hook's result.
    """
    if version_synopsis is None:
        return metadata
    enhanced = version_synopsis(metadata)
    return replace(
        metadata,
        synopsis=enhanced.synopsis,
        extra_fields=dict(enhanced.extra_fields),
    )


def update_after_write(
    metadata: VersionMetadata,
    result: ChunkWriteResult,
    version_synopsis: VersionSynopsisFunction | None = None,
) -> VersionMetadata:
    """Fold a chunk write into a version's metadata.

    Args:
        metadata: Metadata before the write.
        result: Chunk writer outcome.
        version_synopsis: Optional per-version hook.

    Returns:
        Metadata with updated files, totals, type, and modification time.
    """
    updated = replace(
        metadata,
        files=result.files,
        total_records=sum(entry.records_count for entry in result.files),
        data_type=result.data_type,
        modified_at=utc_now_iso(),
    )
    return apply_version_synopsis(updated, version_synopsis)
