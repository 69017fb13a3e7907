"""Pagination cursor over chunked versions.

This module streams records across a version's chunk files in order,
loading only the files a page touches, and remembers the position
between calls. Cursor state is process-local and never persisted.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

from core.constants import DATA_TYPE_JSON_ARRAY, NON_PAGINATED_DATA_TYPES
from core.errors import FileDbCorruptMetadataError
from core.types import FileEntry, VersionMetadata
from store.chunk_files import read_chunk_file

_NO_VERSION = object()


class PaginationCursor:
    """Read position within one version's chunk files.

    The position is a file index plus an offset inside that file. Reading
    a different version than the remembered one resets the cursor.
    """

    def __init__(self) -> None:
        self._version: object = _NO_VERSION
        self._file_index = 0
        self._file_offset = 0

    @property
    def position(self) -> tuple[int, int] | None:
        """Return (file index, offset) or None when not positioned."""
        if self._version is _NO_VERSION:
            return None
        return self._file_index, self._file_offset

    def reset(self) -> None:
        """Forget the position for every version."""
        self._version = _NO_VERSION
        self._file_index = 0
        self._file_offset = 0

    def is_positioned_for(self, version: str | None) -> bool:
        """Return whether the cursor holds a position for a version."""
        return self._version is not _NO_VERSION and self._version == version

    def seek(self, metadata: VersionMetadata, record_index: int) -> None:
        """Position the cursor at a 0-based record of a version."""
        self._file_index, self._file_offset = locate_record(metadata.files, record_index)
        self._version = metadata.version

    def read(
        self,
        directory: Path,
        metadata: VersionMetadata,
        next_page: bool,
        page_size: int | None,
    ) -> Any:
        """Read a page, or the whole value for non-array data.

        Args:
            directory: Directory holding the version's chunk files.
            metadata: Metadata of the version being read.
            next_page: Continue from the remembered position when True.
            page_size: Records to return; None returns every remaining record.

        Returns:
            List of records for array data (empty at end of data). For
            object, text, and XML data the whole value, or None when a
            ``next_page`` read follows an earlier read of the same version.
        """
        continuing = next_page and self.is_positioned_for(metadata.version)
        if metadata.data_type in NON_PAGINATED_DATA_TYPES:
            if continuing:
                return None
            self._version = metadata.version
            self._file_index, self._file_offset = len(metadata.files), 0
            if not metadata.files:
                return None
            _, value = read_chunk_file(directory / metadata.files[0].file_name, metadata.data_type)
            return value
        start = (self._file_index, self._file_offset) if continuing else (0, 0)
        records, end = read_page(directory, metadata.files, start, page_size)
        if next_page or page_size is not None:
            self._version = metadata.version
            self._file_index, self._file_offset = end
        else:
            self.reset()
        return records


def locate_record(files: tuple[FileEntry, ...], record_index: int) -> tuple[int, int]:
    """Translate a 0-based record index into (file index, offset)."""
    remaining = max(record_index, 0)
    for file_index, entry in enumerate(files):
        if remaining < entry.records_count:
            return file_index, remaining
        remaining -= entry.records_count
    return len(files), 0


def read_page(
    directory: Path,
    files: tuple[FileEntry, ...],
    start: tuple[int, int],
    page_size: int | None,
) -> tuple[list[Any], tuple[int, int]]:
    """Collect up to page_size records starting at a file position.

    Args:
        directory: Directory holding the chunk files.
        files: Ordered file entries.
        start: (file index, offset) to start from.
        page_size: Maximum records to return; None reads to the end.

    Returns:
        Records read and the position right after the last one.
    """
    file_index, offset = start
    records: list[Any] = []
    while file_index < len(files) and (page_size is None or len(records) < page_size):
        chunk = _read_array_chunk(directory, files[file_index])
        wanted = len(chunk) - offset if page_size is None else page_size - len(records)
        taken = chunk[offset : offset + wanted]
        records.extend(taken)
        offset += len(taken)
        if offset >= len(chunk):
            file_index, offset = file_index + 1, 0
    return records, (file_index, offset)


def iter_records(directory: Path, metadata: VersionMetadata) -> Iterator[Any]:
    """Yield a version's records one chunk file at a time."""
    if metadata.data_type in NON_PAGINATED_DATA_TYPES:
        for entry in metadata.files[:1]:
            _, value = read_chunk_file(directory / entry.file_name, metadata.data_type)
            yield value
        return
    for entry in metadata.files:
        yield from _read_array_chunk(directory, entry)


def _read_array_chunk(directory: Path, entry: FileEntry) -> list[Any]:
    """Read one array chunk file, rejecting non-array content."""
    path = directory / entry.file_name
    _, chunk = read_chunk_file(path, DATA_TYPE_JSON_ARRAY)
    if not isinstance(chunk, list):
        raise FileDbCorruptMetadataError(
            f"Chunk file {path} does not hold a JSON array; "
            "metadata disagrees with the stored data."
        )
    return chunk
