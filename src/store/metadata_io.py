"""metadata.json persistence helpers.

This module isolates metadata JSON IO and payload validation.
It keeps the metadata builder focused on reconstruction logic.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, cast

from core.constants import JSON_INDENT, METADATA_FILE_NAME, SUPPORTED_DATA_TYPES
from core.errors import FileDbCorruptMetadataError, FileDbStoreError
from core.types import DataType, FileEntry, VersionMetadata

_FILE_KEYS = ("number", "recordsCount", "fileName")
_METADATA_KEYS = (
    "version",
    "files",
    "createdAt",
    "modifiedAt",
    "totalRecords",
    "synopsis",
    "dataType",
)


def metadata_path(directory: Path) -> Path:
    """Return the metadata.json path for a version directory or table root."""
    return directory / METADATA_FILE_NAME


def metadata_to_payload(metadata: VersionMetadata) -> dict[str, Any]:
    """Serialize metadata into the on-disk camelCase layout.

    Args:
        metadata: Version metadata.

    Returns:
        JSON-safe dictionary.
    """
    files = [
        {
            **dict(entry.synopsis),
            "number": entry.number,
            "recordsCount": entry.records_count,
            "fileName": entry.file_name,
        }
        for entry in metadata.files
    ]
    return {
        **dict(metadata.extra_fields),
        "version": metadata.version,
        "files": files,
        "createdAt": metadata.created_at,
        "modifiedAt": metadata.modified_at,
        "totalRecords": metadata.total_records,
        "synopsis": metadata.synopsis,
        "dataType": metadata.data_type,
    }


def metadata_from_payload(payload: dict[str, Any], source: Path) -> VersionMetadata:
    """Deserialize and validate a metadata payload.

    Args:
        payload: Parsed metadata.json object.
        source: File the payload came from, for error messages.

    Returns:
        Typed version metadata.

    Raises:
        FileDbCorruptMetadataError: If keys are missing, types are wrong,
            or totalRecords disagrees with the file counts.
    """
    try:
        files = tuple(_file_entry_from_payload(item) for item in payload["files"])
        total_records = int(payload["totalRecords"])
        data_type = payload.get("dataType")
        metadata = VersionMetadata(
            version=str(payload["version"]) if payload.get("version") else None,
            files=files,
            created_at=str(payload["createdAt"]),
            modified_at=str(payload.get("modifiedAt") or payload["createdAt"]),
            total_records=total_records,
            data_type=cast("DataType | None", data_type),
            synopsis=payload.get("synopsis"),
            extra_fields={
                key: value for key, value in payload.items() if key not in _METADATA_KEYS
            },
        )
    except (KeyError, TypeError, ValueError) as error:
        raise FileDbCorruptMetadataError(
            f"Invalid metadata at {source}: {error!r}. "
            "Delete metadata.json to rebuild it from chunk files."
        ) from error
    if data_type is not None and data_type not in SUPPORTED_DATA_TYPES:
        raise FileDbCorruptMetadataError(
            f"Invalid metadata at {source}: unknown dataType '{data_type}'."
        )
    counted = sum(entry.records_count for entry in files)
    if counted != total_records:
        raise FileDbCorruptMetadataError(
            f"Inconsistent metadata at {source}: totalRecords={total_records} "
            f"but files hold {counted} records."
        )
    return metadata


def read_metadata_file(directory: Path) -> VersionMetadata | None:
    """Load metadata.json from a directory when present.

    Args:
        directory: Version directory or non-versioned table root.

    Returns:
        Parsed metadata, or None when the file does not exist.

    Raises:
        FileDbCorruptMetadataError: If the file is unparsable or invalid.
    """
    path = metadata_path(directory)
    if not path.is_file():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as error:
        raise FileDbCorruptMetadataError(
            f"Failed to read metadata at {path}: {error}."
        ) from error
    except json.JSONDecodeError as error:
        raise FileDbCorruptMetadataError(
            f"Failed to parse metadata at {path}: {error.msg}. "
            "Delete metadata.json to rebuild it from chunk files."
        ) from error
    if not isinstance(payload, dict):
        raise FileDbCorruptMetadataError(
            f"Failed to parse metadata at {path}: expected JSON object at top level."
        )
    return metadata_from_payload(payload, path)


def write_metadata_file(directory: Path, metadata: VersionMetadata) -> Path:
    """Write metadata.json for a version directory or table root.

    Raises:
        FileDbStoreError: If the file cannot be written.
    """
    path = metadata_path(directory)
    payload = metadata_to_payload(metadata)
    try:
        path.write_text(
            json.dumps(payload, indent=JSON_INDENT, ensure_ascii=False), encoding="utf-8"
        )
    except OSError as error:
        raise FileDbStoreError(
            f"Failed to write metadata at {path}: {error}. "
            "Chunk files were written; rerun the write or rebuild metadata on read."
        ) from error
    return path


def _file_entry_from_payload(payload: dict[str, Any]) -> FileEntry:
    """Deserialize one file entry, keeping unknown keys as synopsis fields."""
    return FileEntry(
        number=int(payload["number"]),
        records_count=int(payload["recordsCount"]),
        file_name=str(payload["fileName"]),
        synopsis={key: value for key, value in payload.items() if key not in _FILE_KEYS},
    )
