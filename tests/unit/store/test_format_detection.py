"""Unit tests for on-disk layout detection."""

from __future__ import annotations

import json
from pathlib import Path

from core.types import DataFormat
from store.format_detection import detect_data_format, detect_layout


def test_detect_missing_table_reports_nothing(tmp_path: Path) -> None:
    """A missing directory should not raise."""
    result = detect_data_format(tmp_path / "missing")

    assert result == DataFormat(versioned=False, has_metadata=False, data_type=None)


def test_detect_legacy_chunks_without_metadata(tmp_path: Path) -> None:
    """Root chunk files without metadata should be non-versioned legacy data."""
    for number in range(1, 4):
        (tmp_path / f"{number:06d}.json").write_text('[{"id": 1}]', encoding="utf-8")

    result = detect_data_format(tmp_path)

    assert result == DataFormat(versioned=False, has_metadata=False, data_type="json-array")


def test_detect_versioned_table_with_metadata(tmp_path: Path) -> None:
    """The latest version's metadata.json should decide the data type."""
    version_path = tmp_path / "2025-01-01T01:01:01Z"
    version_path.mkdir()
    (version_path / "000001.json").write_text('{"id": 1}', encoding="utf-8")
    metadata = {
        "version": "2025-01-01T01:01:01Z",
        "files": [{"number": 1, "recordsCount": 1, "fileName": "000001.json"}],
        "createdAt": "2025-01-01T01:01:01.000Z",
        "modifiedAt": "2025-01-01T01:01:01.000Z",
        "totalRecords": 1,
        "synopsis": None,
        "dataType": "json-object",
    }
    (version_path / "metadata.json").write_text(json.dumps(metadata), encoding="utf-8")

    result = detect_data_format(tmp_path)

    assert result == DataFormat(versioned=True, has_metadata=True, data_type="json-object")


def test_detect_versioned_table_without_metadata(tmp_path: Path) -> None:
    """Version folders without metadata should infer the type from chunks."""
    version_path = tmp_path / "2025-01-01T01:01:01Z"
    version_path.mkdir()
    (version_path / "000001.txt").write_text("hello", encoding="utf-8")

    result = detect_data_format(tmp_path)

    assert result == DataFormat(versioned=True, has_metadata=False, data_type="text")


def test_detect_layout_does_not_parse_corrupt_metadata(tmp_path: Path) -> None:
    """Layout facts should come from directory listings alone."""
    version_path = tmp_path / "2025-01-01T01:01:01Z"
    version_path.mkdir()
    (version_path / "000001.json").write_text("[1, 2]", encoding="utf-8")
    (version_path / "metadata.json").write_text("{", encoding="utf-8")

    layout = detect_layout(tmp_path)

    assert (layout.versioned, layout.has_metadata, layout.data_directory) == (
        True,
        True,
        version_path,
    )


def test_detect_data_format_infers_type_past_corrupt_metadata(tmp_path: Path) -> None:
    """Unparsable root metadata should fall back to the first chunk's type."""
    (tmp_path / "000001.json").write_text('{"id": 1}', encoding="utf-8")
    (tmp_path / "metadata.json").write_text("{", encoding="utf-8")

    result = detect_data_format(tmp_path)

    assert result == DataFormat(versioned=False, has_metadata=True, data_type="json-object")
