"""Paged chunk writer.

This module splits payloads into page-sized numbered chunk files.
Array writes top up a partial last file before starting new files,
which keeps repeated small appends from fragmenting a version.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from core.constants import DATA_TYPE_JSON_ARRAY
from core.errors import FileDbCorruptMetadataError, FileDbDataTypeMismatchError
from core.logging_config import get_logger
from core.types import ChunkWriteResult, DataType, FileEntry, FileSynopsisFunction
from store.chunk_files import chunk_file_name, read_chunk_file, write_chunk_file
from store.disk_space import ensure_free_space
from store.serializers import detect_data_type

_LOGGER = get_logger(__name__)


def write_payload(
    directory: Path,
    files: tuple[FileEntry, ...],
    established_type: DataType | None,
    payload: Any,
    page_size: int,
    free_space_threshold: int,
    file_synopsis: FileSynopsisFunction | None = None,
) -> ChunkWriteResult:
    """Persist a payload into a version directory.

    Args:
        directory: Version directory or non-versioned table root.
        files: Existing file entries of the version.
        established_type: Data type fixed by earlier writes, if any.
        payload: Array, object, text, or XML payload.
        page_size: Maximum records per chunk file.
        free_space_threshold: Minimum free bytes that must remain.
        file_synopsis: Optional hook applied to each written file.

    Returns:
        Updated file entries and the number of records written.

    Raises:
        FileDbDataTypeMismatchError: If the payload shape differs from
            the established data type.
        FileDbInsufficientSpaceError: If the disk space guard trips.
        FileDbStoreError: If a chunk file cannot be read or written.
    """
    data_type = detect_data_type(payload)
    if established_type is not None and established_type != data_type:
        raise FileDbDataTypeMismatchError(
            f"Cannot write {data_type} data into {directory}: "
            f"it already holds {established_type} data. "
            "Write to a new version or a different table."
        )
    ensure_free_space(directory, 0, free_space_threshold)
    if data_type != DATA_TYPE_JSON_ARRAY:
        entries = _write_whole(directory, data_type, payload, free_space_threshold, file_synopsis)
        records_added = 1
    else:
        records = list(payload)
        entries = _write_paged(
            directory, list(files), records, page_size, free_space_threshold, file_synopsis
        )
        records_added = len(records)
    _LOGGER.info(
        "payload_written",
        directory=str(directory),
        data_type=data_type,
        records_added=records_added,
        file_count=len(entries),
    )
    return ChunkWriteResult(
        files=tuple(entries), records_added=records_added, data_type=data_type
    )


def _write_whole(
    directory: Path,
    data_type: DataType,
    payload: Any,
    free_space_threshold: int,
    file_synopsis: FileSynopsisFunction | None,
) -> list[FileEntry]:
    """Write a non-array payload as the single chunk of a version."""
    file_name = chunk_file_name(1, data_type)
    write_chunk_file(directory / file_name, payload, free_space_threshold)
    entry = FileEntry(number=1, records_count=1, file_name=file_name)
    return [_apply_file_synopsis(entry, payload, file_synopsis)]


def _write_paged(
    directory: Path,
    entries: list[FileEntry],
    records: list[Any],
    page_size: int,
    free_space_threshold: int,
    file_synopsis: FileSynopsisFunction | None,
) -> list[FileEntry]:
    """Top up the last partial file, then write full pages for the rest."""
    if records and entries and entries[-1].records_count < page_size:
        last_entry = entries[-1]
        last_path = directory / last_entry.file_name
        _, existing = read_chunk_file(last_path, DATA_TYPE_JSON_ARRAY)
        if not isinstance(existing, list):
            raise FileDbCorruptMetadataError(
                f"Chunk file {last_path} does not hold a JSON array; "
                "metadata disagrees with the stored data."
            )
        room = max(page_size - len(existing), 0)
        chunk = existing + records[:room]
        records = records[room:]
        write_chunk_file(last_path, chunk, free_space_threshold)
        topped_up = FileEntry(
            number=last_entry.number,
            records_count=len(chunk),
            file_name=last_entry.file_name,
        )
        entries[-1] = _apply_file_synopsis(topped_up, chunk, file_synopsis)
        _LOGGER.debug("chunk_topped_up", file=str(last_path), records_count=len(chunk))
    if not entries and not records:
        entries.append(_write_new_chunk(directory, 1, [], free_space_threshold, file_synopsis))
    while records:
        number = entries[-1].number + 1 if entries else 1
        chunk, records = records[:page_size], records[page_size:]
        entry = _write_new_chunk(directory, number, chunk, free_space_threshold, file_synopsis)
        entries.append(entry)
    return entries


def _write_new_chunk(
    directory: Path,
    number: int,
    chunk: list[Any],
    free_space_threshold: int,
    file_synopsis: FileSynopsisFunction | None,
) -> FileEntry:
    """Write one fresh array chunk file and return its entry."""
    file_name = chunk_file_name(number, DATA_TYPE_JSON_ARRAY)
    write_chunk_file(directory / file_name, chunk, free_space_threshold)
    entry = FileEntry(number=number, records_count=len(chunk), file_name=file_name)
    return _apply_file_synopsis(entry, chunk, file_synopsis)


def _apply_file_synopsis(
    entry: FileEntry,
    payload: Any,
    file_synopsis: FileSynopsisFunction | None,
) -> FileEntry:
    """Run the file synopsis hook, keeping the entry's identity and counts."""
    if file_synopsis is None:
        return entry
    enhanced = file_synopsis(entry, payload)
    return FileEntry(
        number=entry.number,
        records_count=entry.records_count,
        file_name=entry.file_name,
        synopsis=dict(enhanced.synopsis),
    )
