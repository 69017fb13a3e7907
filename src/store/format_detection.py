"""On-disk layout detection for tables.

This module classifies a table directory as versioned or not and
with or without metadata, so trees written before metadata.json
existed are read without any migration step.
"""

from __future__ import annotations

from pathlib import Path

from core.errors import FileDbCorruptMetadataError
from core.logging_config import get_logger
from core.types import DataFormat, DataType, TableLayout
from store.chunk_files import list_chunk_files, read_chunk_file
from store.metadata_io import metadata_path, read_metadata_file
from store.versioning import list_version_names

_LOGGER = get_logger(__name__)


def detect_layout(table_path: Path) -> TableLayout:
    """Classify a table root from directory listings alone.

    No metadata or chunk file is opened, so a corrupt metadata.json
    cannot make layout resolution fail.

    Args:
        table_path: Table root directory.

    Returns:
        Layout facts; all-false for missing or empty tables.
    """
    if not table_path.is_dir():
        return TableLayout(False, False, False, table_path)
    if metadata_path(table_path).is_file():
        return TableLayout(False, True, True, table_path)
    versions = list_version_names(table_path)
    if versions:
        latest_path = table_path / versions[-1]
        return TableLayout(True, metadata_path(latest_path).is_file(), True, latest_path)
    return TableLayout(False, False, bool(list_chunk_files(table_path)), table_path)


def detect_data_format(table_path: Path) -> DataFormat:
    """Detect the storage layout and data type of a table root.

    The data type comes from metadata.json when it parses, otherwise
    from the first chunk file.

    Args:
        table_path: Table root directory.

    Returns:
        Detected format; all-false with no data type for missing tables.
    """
    layout = detect_layout(table_path)
    data_type: DataType | None = None
    if layout.has_metadata:
        try:
            metadata = read_metadata_file(layout.data_directory)
        except FileDbCorruptMetadataError as error:
            _LOGGER.warning(
                "metadata_corrupt_inferring_type",
                directory=str(layout.data_directory),
                error=str(error),
            )
            data_type = infer_data_type(layout.data_directory)
        else:
            data_type = metadata.data_type if metadata else None
    elif layout.has_data:
        data_type = infer_data_type(layout.data_directory)
    return DataFormat(
        versioned=layout.versioned,
        has_metadata=layout.has_metadata,
        data_type=data_type,
    )


def infer_data_type(directory: Path) -> DataType | None:
    """Infer a directory's data type from its first chunk file."""
    chunk_files = list_chunk_files(directory)
    if not chunk_files:
        return None
    data_type, _ = read_chunk_file(directory / chunk_files[0])
    return data_type
