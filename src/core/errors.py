"""filedb exception hierarchy.

Errors form one tree rooted at FileDbError so callers can catch broadly.
Messages name what failed, where, and how to recover.
"""

from __future__ import annotations


class FileDbError(Exception):
    """Base exception for all filedb failures."""


class FileDbConfigError(FileDbError):
    """Raised for invalid configuration or invalid mode combinations."""


class FileDbUnsupportedOperationError(FileDbConfigError):
    """Raised when an operation is not available in the table's mode."""


class FileDbNotVersionedError(FileDbConfigError):
    """Raised when version management is used on a non-versioned table."""


class FileDbNotFoundError(FileDbError):
    """Raised when a table or version has no data to read."""


class FileDbDataTypeMismatchError(FileDbError):
    """Raised when a payload shape conflicts with the established data type."""


class FileDbInsufficientSpaceError(FileDbError):
    """Raised when the free disk space guard trips before a write."""


class FileDbCorruptMetadataError(FileDbError):
    """Raised when metadata.json is unparsable or internally inconsistent."""


class FileDbNotPreparedError(FileDbError):
    """Raised when metadata is requested before any read or write."""


class FileDbStoreError(FileDbError):
    """Raised for chunk file read and write failures."""
