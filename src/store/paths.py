"""Table and version directory resolution.

This module maps (base path, namespace, table name, version) onto
filesystem directories. It performs no I/O.
"""

from __future__ import annotations

from pathlib import Path


def resolve_table_path(base_path: Path, namespace: str | None, table_name: str | None) -> Path:
    """Return the table root directory.

    Args:
        base_path: Store root directory.
        namespace: Optional namespace segment.
        table_name: Optional slash-delimited table path.

    Returns:
        Table directory path under base_path.
    """
    table_path = Path(base_path)
    if namespace:
        table_path = table_path / namespace
    if table_name:
        for segment in table_name.split("/"):
            if segment:
                table_path = table_path / segment
    return table_path


def resolve_version_path(table_path: Path, version: str | None) -> Path:
    """Return the directory holding a version's files.

    Non-versioned tables keep their files directly in the table root,
    signalled by ``version=None``.
    """
    if version is None:
        return table_path
    return table_path / version
