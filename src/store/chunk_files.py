"""Chunk file naming, discovery, and IO.

This module isolates reading and writing individual numbered chunk
files. It keeps the chunk writer and metadata builder focused on flow.
"""

from __future__ import annotations

import json
from pathlib import Path
import re
from typing import Any

from core.constants import (
    CHUNK_FILE_PATTERN,
    CHUNK_NUMBER_WIDTH,
    DATA_TYPE_JSON_ARRAY,
    DATA_TYPE_XML,
)
from core.errors import FileDbStoreError
from core.logging_config import get_logger
from core.types import DataType
from store.disk_space import ensure_free_space
from store.serializers import (
    data_type_for_extension,
    deserialize_payload,
    detect_data_type,
    file_extension,
    serialize_payload,
)

_LOGGER = get_logger(__name__)
_CHUNK_FILE_RE = re.compile(CHUNK_FILE_PATTERN)


def chunk_file_name(number: int, data_type: DataType | None) -> str:
    """Build the fixed-width file name for a chunk number."""
    return f"{number:0{CHUNK_NUMBER_WIDTH}d}.{file_extension(data_type)}"


def is_chunk_file_name(file_name: str) -> bool:
    """Return whether a name looks like a numbered chunk file."""
    return _CHUNK_FILE_RE.match(file_name) is not None


def list_chunk_files(directory: Path) -> list[str]:
    """List chunk file names in sequence order.

    Args:
        directory: Version directory or non-versioned table root.

    Returns:
        Sorted chunk file names; empty when the directory is missing.
    """
    if not directory.is_dir():
        return []
    return sorted(
        entry.name
        for entry in directory.iterdir()
        if entry.is_file() and is_chunk_file_name(entry.name)
    )


def read_chunk_file(file_path: Path, data_type: DataType | None = None) -> tuple[DataType, Any]:
    """Read one chunk file and infer its data type when unknown.

    Args:
        file_path: Chunk file path.
        data_type: Known data type, or None to infer from extension and content.

    Returns:
        Pair of data type and deserialized payload.

    Raises:
        FileDbStoreError: If the file cannot be read or parsed.
    """
    try:
        raw_text = file_path.read_text(encoding="utf-8")
    except OSError as error:
        raise FileDbStoreError(
            f"Failed to read chunk file {file_path}: {error}. "
            "Check file permissions or restore the file."
        ) from error
    resolved_type = data_type or data_type_for_extension(file_path.suffix)
    if resolved_type is None:
        resolved_type = DATA_TYPE_JSON_ARRAY
    try:
        payload = deserialize_payload(raw_text, resolved_type)
    except json.JSONDecodeError as error:
        raise FileDbStoreError(
            f"Failed to parse chunk file {file_path}: {error.msg}. "
            "The file is not valid JSON; restore it or remove the version."
        ) from error
    if data_type is None:
        resolved_type = detect_data_type(payload)
        if file_path.suffix.lower() == ".xml":
            resolved_type = DATA_TYPE_XML
    return resolved_type, payload


def write_chunk_file(file_path: Path, payload: Any, free_space_threshold: int) -> int:
    """Serialize and write one chunk file after the disk space guard.

    Args:
        file_path: Destination chunk file path.
        payload: Records or single value to write.
        free_space_threshold: Minimum free bytes that must remain.

    Returns:
        Number of bytes written.

    Raises:
        FileDbInsufficientSpaceError: If the disk space guard trips.
        FileDbStoreError: If the write fails.
    """
    serialized = serialize_payload(payload)
    encoded = serialized.encode("utf-8")
    ensure_free_space(file_path.parent, len(encoded), free_space_threshold)
    try:
        file_path.write_bytes(encoded)
    except OSError as error:
        raise FileDbStoreError(
            f"Failed to write chunk file {file_path}: {error}. "
            "Verify the version contents before reading it."
        ) from error
    _LOGGER.debug("chunk_written", file=str(file_path), byte_count=len(encoded))
    return len(encoded)


def count_records(payload: Any) -> int:
    """Count logical records in a chunk payload; non-arrays are one record."""
    if isinstance(payload, list):
        return len(payload)
    return 1
