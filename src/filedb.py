"""Public SDK surface for filedb.

This module provides a stable import path for library users.
It re-exports the table store, its config, and typed models.
"""

from __future__ import annotations

from core.byte_units import bytes_to_human_readable, human_readable_to_bytes
from core.config import FileDbConfig
from core.errors import (
    FileDbConfigError,
    FileDbCorruptMetadataError,
    FileDbDataTypeMismatchError,
    FileDbError,
    FileDbInsufficientSpaceError,
    FileDbNotFoundError,
    FileDbNotPreparedError,
    FileDbNotVersionedError,
    FileDbStoreError,
    FileDbUnsupportedOperationError,
)
from core.types import DataFormat, FileEntry, VersionMetadata
from store.file_database import FileDatabase
from store.synopsis import default_file_synopsis, default_version_synopsis

__all__ = [
    "DataFormat",
    "FileDatabase",
    "FileDbConfig",
    "FileDbConfigError",
    "FileDbCorruptMetadataError",
    "FileDbDataTypeMismatchError",
    "FileDbError",
    "FileDbInsufficientSpaceError",
    "FileDbNotFoundError",
    "FileDbNotPreparedError",
    "FileDbNotVersionedError",
    "FileDbStoreError",
    "FileDbUnsupportedOperationError",
    "FileEntry",
    "VersionMetadata",
    "bytes_to_human_readable",
    "default_file_synopsis",
    "default_version_synopsis",
    "human_readable_to_bytes",
]
