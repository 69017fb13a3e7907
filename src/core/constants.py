"""Core constants used across filedb modules.

This module centralizes on-disk names, formats, and defaults.
Keeping values here avoids magic literals in storage logic.
"""

from __future__ import annotations

DEFAULT_NAMESPACE = "default"
DEFAULT_PAGE_SIZE = 5000
DEFAULT_MAX_VERSIONS = 5
DEFAULT_FREE_SPACE_THRESHOLD = 100 * 1024 * 1024
METADATA_FILE_NAME = "metadata.json"
VERSION_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
VERSION_NAME_PATTERN = r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$"
CHUNK_FILE_PATTERN = r"^(\d{6})\.(json|txt|xml)$"
CHUNK_NUMBER_WIDTH = 6
JSON_INDENT = 4
DATA_TYPE_JSON_ARRAY = "json-array"
DATA_TYPE_JSON_OBJECT = "json-object"
DATA_TYPE_TEXT = "text"
DATA_TYPE_XML = "xml"
SUPPORTED_DATA_TYPES = (
    DATA_TYPE_JSON_ARRAY,
    DATA_TYPE_JSON_OBJECT,
    DATA_TYPE_TEXT,
    DATA_TYPE_XML,
)
NON_PAGINATED_DATA_TYPES = (DATA_TYPE_JSON_OBJECT, DATA_TYPE_TEXT, DATA_TYPE_XML)
DATA_TYPE_EXTENSIONS = {
    DATA_TYPE_JSON_ARRAY: "json",
    DATA_TYPE_JSON_OBJECT: "json",
    DATA_TYPE_TEXT: "txt",
    DATA_TYPE_XML: "xml",
}
