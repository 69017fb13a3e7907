"""Payload shape detection and chunk serialization.

This module decides which data type a payload belongs to and
converts payloads to and from chunk file contents.
"""

from __future__ import annotations

import json
from typing import Any

from core.constants import (
    DATA_TYPE_EXTENSIONS,
    DATA_TYPE_JSON_ARRAY,
    DATA_TYPE_JSON_OBJECT,
    DATA_TYPE_TEXT,
    DATA_TYPE_XML,
    JSON_INDENT,
)
from core.types import DataType


def detect_data_type(payload: Any) -> DataType:
    """Infer the data type of an in-memory payload.

    Args:
        payload: Value about to be written or just read.

    Returns:
        Data type literal. Strings starting with ``<`` are XML; other
        scalars are stored as text.
    """
    if isinstance(payload, (list, tuple)):
        return DATA_TYPE_JSON_ARRAY
    if isinstance(payload, dict):
        return DATA_TYPE_JSON_OBJECT
    if isinstance(payload, str) and payload.strip().startswith("<"):
        return DATA_TYPE_XML
    return DATA_TYPE_TEXT


def serialize_payload(payload: Any) -> str:
    """Render a payload as chunk file text.

    JSON data is written with 4-space indentation; text and XML as-is.
    """
    if detect_data_type(payload) in (DATA_TYPE_JSON_ARRAY, DATA_TYPE_JSON_OBJECT):
        json_payload = list(payload) if isinstance(payload, tuple) else payload
        return json.dumps(json_payload, indent=JSON_INDENT, ensure_ascii=False)
    return str(payload)


def deserialize_payload(raw_text: str, data_type: DataType) -> Any:
    """Parse chunk file text for a known data type.

    Raises:
        json.JSONDecodeError: If JSON content is malformed.
    """
    if data_type in (DATA_TYPE_JSON_ARRAY, DATA_TYPE_JSON_OBJECT):
        return json.loads(raw_text)
    return raw_text


def file_extension(data_type: DataType | None) -> str:
    """Return the chunk file extension for a data type, JSON by default."""
    if data_type is None:
        return DATA_TYPE_EXTENSIONS[DATA_TYPE_JSON_ARRAY]
    return DATA_TYPE_EXTENSIONS[data_type]


def data_type_for_extension(extension: str) -> DataType | None:
    """Map a chunk file extension onto a data type hint.

    JSON files are ambiguous between arrays and objects, so the caller
    must parse them to decide.
    """
    normalized = extension.lower().lstrip(".")
    if normalized == "txt":
        return DATA_TYPE_TEXT
    if normalized == "xml":
        return DATA_TYPE_XML
    return None
