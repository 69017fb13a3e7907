"""Runtime configuration model for filedb.

This module owns all environment variable parsing and validation.
Store components consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.byte_units import human_readable_to_bytes
from core.constants import (
    DEFAULT_FREE_SPACE_THRESHOLD,
    DEFAULT_MAX_VERSIONS,
    DEFAULT_NAMESPACE,
    DEFAULT_PAGE_SIZE,
)
from core.errors import FileDbConfigError

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")
_AUTO_VALUES = ("", "auto")


@dataclass(frozen=True)
class FileDbConfig:
    """Validated table configuration.

    Attributes:
        base_path: Root directory holding all namespaces.
        namespace: Namespace subfolder under base_path.
        table_name: Optional slash-delimited table path under the namespace.
        page_size: Maximum records per chunk file for array data.
        max_versions: Number of versions kept before the oldest are pruned.
        use_metadata: Whether metadata.json is read and written; None auto-detects.
        versioned: Whether the table keeps timestamp versions; None auto-detects.
        free_space_threshold: Minimum free bytes required before writing.
    """

    base_path: Path
    namespace: str = DEFAULT_NAMESPACE
    table_name: str | None = None
    page_size: int = DEFAULT_PAGE_SIZE
    max_versions: int = DEFAULT_MAX_VERSIONS
    use_metadata: bool | None = True
    versioned: bool | None = True
    free_space_threshold: int = DEFAULT_FREE_SPACE_THRESHOLD

    def __post_init__(self) -> None:
        if not self.base_path or not str(self.base_path).strip():
            raise FileDbConfigError(
                "base_path is required. Set it explicitly or through FILEDB_BASE_PATH."
            )
        object.__setattr__(self, "base_path", Path(self.base_path).expanduser().resolve())
        if self.page_size < 1:
            raise FileDbConfigError(
                f"Invalid page_size {self.page_size}: expected a positive integer."
            )
        if self.max_versions < 1:
            raise FileDbConfigError(
                f"Invalid max_versions {self.max_versions}: expected a positive integer."
            )
        if self.free_space_threshold < 0:
            raise FileDbConfigError(
                f"Invalid free_space_threshold {self.free_space_threshold}: "
                "expected a non-negative byte count."
            )

    @classmethod
    def from_env(cls, base_path: str | Path | None = None) -> "FileDbConfig":
        """Build config from process environment variables.

        Args:
            base_path: Optional store root used instead of FILEDB_BASE_PATH.

        Returns:
            A validated config object.

        Raises:
            FileDbConfigError: If environment values are missing or invalid.
        """
        base_path_value = str(base_path) if base_path else os.getenv("FILEDB_BASE_PATH", "")
        if not base_path_value.strip():
            raise FileDbConfigError(
                "FILEDB_BASE_PATH is not set. Point it at the store root directory."
            )
        return cls(
            base_path=Path(base_path_value),
            namespace=os.getenv("FILEDB_NAMESPACE", DEFAULT_NAMESPACE),
            table_name=os.getenv("FILEDB_TABLE_NAME") or None,
            page_size=_parse_int("FILEDB_PAGE_SIZE", DEFAULT_PAGE_SIZE),
            max_versions=_parse_int("FILEDB_MAX_VERSIONS", DEFAULT_MAX_VERSIONS),
            use_metadata=_parse_optional_bool("FILEDB_USE_METADATA", True),
            versioned=_parse_optional_bool("FILEDB_VERSIONED", True),
            free_space_threshold=_parse_size(
                "FILEDB_FREE_SPACE_THRESHOLD", DEFAULT_FREE_SPACE_THRESHOLD
            ),
        )


def _parse_int(variable: str, default: int) -> int:
    """Parse an integer environment value.

    Args:
        variable: Environment variable name.
        default: Value used when the variable is unset.

    Returns:
        Parsed integer.

    Raises:
        FileDbConfigError: If value cannot be parsed into int.
    """
    raw_value = os.getenv(variable)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError as error:
        raise FileDbConfigError(
            f"Invalid {variable} value: expected integer, got '{raw_value}'. "
            f"Set {variable} to a numeric value."
        ) from error


def _parse_optional_bool(variable: str, default: bool | None) -> bool | None:
    """Parse a tri-state boolean; "auto" maps to None for auto-detection."""
    raw_value = os.getenv(variable)
    if raw_value is None:
        return default
    normalized = raw_value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    if normalized in _AUTO_VALUES:
        return None
    raise FileDbConfigError(
        f"Invalid {variable} value '{raw_value}'. Use true, false, or auto."
    )


def _parse_size(variable: str, default: int) -> int:
    """Parse a byte size given as a plain integer or a string like "100MB"."""
    raw_value = os.getenv(variable)
    if raw_value is None:
        return default
    if raw_value.strip().isdigit():
        return int(raw_value.strip())
    try:
        return human_readable_to_bytes(raw_value)
    except ValueError as error:
        raise FileDbConfigError(f"Invalid {variable} value: {error}") from error
