"""Unit tests for the FileDatabase table store."""

from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path

import pytest

from core.config import FileDbConfig
from core.errors import (
    FileDbConfigError,
    FileDbDataTypeMismatchError,
    FileDbInsufficientSpaceError,
    FileDbNotFoundError,
    FileDbNotPreparedError,
    FileDbNotVersionedError,
    FileDbUnsupportedOperationError,
)
from store.file_database import FileDatabase
from store.format_detection import detect_layout
from store.synopsis import default_file_synopsis, default_version_synopsis


def _fixed_clock() -> datetime:
    return datetime(2025, 1, 1, 1, 1, 1, tzinfo=timezone.utc)


def _store(tmp_path: Path, **overrides) -> FileDatabase:
    settings = {"table_name": "listings", "free_space_threshold": 0, **overrides}
    return FileDatabase(FileDbConfig(base_path=tmp_path, **settings), clock=_fixed_clock)


def _records(start: int, count: int) -> list[dict[str, int]]:
    return [{"id": index} for index in range(start, start + count)]


def _read_all_pages(store: FileDatabase, page_size: int) -> list[dict[str, int]]:
    store.reset_pagination()
    collected = store.read(page_size=page_size)
    while True:
        page = store.read(next_page=True, page_size=page_size)
        if not page:
            return collected
        collected.extend(page)


@pytest.mark.parametrize(("count", "page_size"), [(0, 3), (1, 1), (7, 3), (250, 100)])
def test_paged_reads_reconstruct_written_array(tmp_path: Path, count, page_size) -> None:
    """Concatenated pages should equal the written array in order."""
    store = _store(tmp_path, page_size=page_size)
    store.write(_records(0, count))

    assert _read_all_pages(store, page_size) == _records(0, count)


def test_write_splits_records_into_full_pages(tmp_path: Path) -> None:
    """Every file but the last should hold exactly page_size records."""
    store = _store(tmp_path, page_size=100)

    metadata = store.write(_records(0, 250))

    assert [entry.records_count for entry in metadata.files] == [100, 100, 50]


def test_metadata_total_matches_file_counts_after_appends(tmp_path: Path) -> None:
    """totalRecords should equal the sum of file counts after every write."""
    store = _store(tmp_path, page_size=100)
    store.write(_records(0, 30))
    store.write(_records(30, 90))

    metadata = store.write(_records(120, 5))

    assert metadata.total_records == sum(entry.records_count for entry in metadata.files) == 125


def test_metadata_file_is_written_with_camel_case_keys(tmp_path: Path) -> None:
    """metadata.json should be stored beside the chunks."""
    store = _store(tmp_path, page_size=100)
    metadata = store.write(_records(0, 3))

    payload = json.loads(
        (store.table_path / metadata.version / "metadata.json").read_text(encoding="utf-8")
    )

    assert (payload["totalRecords"], payload["dataType"]) == (3, "json-array")


def test_force_new_version_keeps_prior_version_readable(tmp_path: Path) -> None:
    """A forced version should leave the previous one intact."""
    store = _store(tmp_path, page_size=100)
    first = store.write(_records(0, 250))

    second = store.write(_records(1000, 150), force_new_version=True)
    prior = store.read(version=first.version)

    assert (
        [entry.records_count for entry in second.files] == [100, 50]
        and second.version > first.version
        and prior == _records(0, 250)
    )


def test_versions_are_strictly_increasing(tmp_path: Path) -> None:
    """Versions created within one second should still be ordered."""
    store = _store(tmp_path, max_versions=10)
    for index in range(4):
        store.write(_records(index, 1), force_new_version=True)

    versions = store.get_versions()

    assert versions == sorted(versions) and len(set(versions)) == 4


def test_retention_keeps_most_recent_versions(tmp_path: Path) -> None:
    """Only the max_versions most recent versions should remain."""
    store = _store(tmp_path, max_versions=2)
    created = [
        store.write(_records(index, 1), force_new_version=True).version for index in range(5)
    ]

    assert store.get_versions() == created[-2:]


def test_pagination_returns_disjoint_pages(tmp_path: Path) -> None:
    """Three 50-record pages should equal the first 150 records."""
    store = _store(tmp_path, page_size=100)
    store.write(_records(0, 250))
    store.reset_pagination()

    pages = [store.read(page_size=50)]
    pages.append(store.read(next_page=True, page_size=50))
    pages.append(store.read(next_page=True, page_size=50))

    assert [record for page in pages for record in page] == _records(0, 150)


def test_set_start_record_positions_next_page(tmp_path: Path) -> None:
    """The next paged read should start at the chosen 1-based record."""
    store = _store(tmp_path, page_size=10)
    store.write(_records(0, 30))

    store.set_start_record(15)

    assert store.read(next_page=True, page_size=2) == _records(14, 2)


def test_legacy_chunks_are_read_without_metadata(tmp_path: Path) -> None:
    """Chunk files written without metadata.json should still be readable."""
    table_path = tmp_path / "default" / "listings"
    table_path.mkdir(parents=True)
    expected = _records(0, 8)
    for number, chunk in enumerate((expected[0:3], expected[3:6], expected[6:8]), 1):
        (table_path / f"{number:06d}.json").write_text(json.dumps(chunk), encoding="utf-8")
    store = _store(tmp_path)

    detected = store.detect_data_format()

    assert detected.has_metadata is False and store.read() == expected


def test_corrupt_metadata_is_rebuilt_from_chunks(tmp_path: Path) -> None:
    """Unparsable metadata.json should fall back to a rebuild."""
    store = _store(tmp_path, page_size=2)
    metadata = store.write(_records(0, 5))
    (store.table_path / metadata.version / "metadata.json").write_text("{", encoding="utf-8")

    reopened = _store(tmp_path, page_size=2)

    assert reopened.read() == _records(0, 5)


def test_non_versioned_object_is_overwritten_in_place(tmp_path: Path) -> None:
    """Object writes on non-versioned tables should replace the value."""
    store = _store(tmp_path, versioned=False)
    store.write({"id": 1})
    first_read = store.read()

    store.write({"id": 2})

    assert (
        first_read == {"id": 1}
        and store.read() == {"id": 2}
        and store.has_data()
        and not any(path.is_dir() for path in store.table_path.iterdir())
    )


def test_text_round_trip(tmp_path: Path) -> None:
    """Text payloads should be read back verbatim."""
    store = _store(tmp_path)
    store.write("line one\nline two")

    assert store.read() == "line one\nline two"


def test_xml_round_trip_uses_xml_extension(tmp_path: Path) -> None:
    """XML payloads should be stored in .xml chunks."""
    store = _store(tmp_path)
    metadata = store.write("<feed><item/></feed>")

    assert (metadata.files[0].file_name, store.read()) == ("000001.xml", "<feed><item/></feed>")


def test_write_appends_to_current_latest_version(tmp_path: Path) -> None:
    """Consecutive writes on one instance should share a version."""
    store = _store(tmp_path)
    first = store.write(_records(0, 2))

    second = store.write(_records(2, 2))

    assert (second.version, second.total_records) == (first.version, 4)


def test_write_to_explicit_version_appends(tmp_path: Path) -> None:
    """An explicit version should be reopened for append."""
    store = _store(tmp_path)
    first = store.write(_records(0, 2))
    store.write(_records(100, 1), force_new_version=True)

    reopened = store.write(_records(2, 1), version=first.version)

    assert reopened.total_records == 3 and store.read(version=first.version) == _records(0, 3)


def test_write_to_unknown_version_fails(tmp_path: Path) -> None:
    """Unknown explicit versions should be reported as not found."""
    store = _store(tmp_path)
    store.write(_records(0, 1))

    with pytest.raises(FileDbNotFoundError):
        store.write(_records(1, 1), version="2030-01-01T00:00:00Z")


def test_type_mismatch_leaves_version_intact(tmp_path: Path) -> None:
    """A rejected write should not change the existing data."""
    store = _store(tmp_path)
    store.write(_records(0, 2))

    with pytest.raises(FileDbDataTypeMismatchError):
        store.write({"id": 9})

    assert store.read() == _records(0, 2)


def test_failed_write_discards_the_version_it_created(tmp_path: Path, monkeypatch) -> None:
    """A write failing in a new version should not leave an empty version."""
    store = _store(tmp_path)
    store.write(_records(0, 1))
    monkeypatch.setattr("store.disk_space.free_disk_space", lambda _path: 0)

    with pytest.raises(FileDbInsufficientSpaceError):
        store.write(_records(1, 1), force_new_version=True)

    assert len(store.get_versions()) == 1


def test_force_new_version_rejected_when_non_versioned(tmp_path: Path) -> None:
    """force_new_version only applies to versioned tables."""
    store = _store(tmp_path, versioned=False)

    with pytest.raises(FileDbUnsupportedOperationError):
        store.write(_records(0, 1), force_new_version=True)


def test_version_argument_rejected_when_non_versioned(tmp_path: Path) -> None:
    """Reading a version of a non-versioned table is a configuration error."""
    store = _store(tmp_path, versioned=False)
    store.write(_records(0, 1))

    with pytest.raises(FileDbConfigError):
        store.read(version="2025-01-01T01:01:01Z")


def test_get_latest_version_rejected_when_non_versioned(tmp_path: Path) -> None:
    """Version lookups should fail on non-versioned tables."""
    store = _store(tmp_path, versioned=False)

    with pytest.raises(FileDbNotVersionedError):
        store.get_latest_version()


def test_get_metadata_before_prepare_fails(tmp_path: Path) -> None:
    """Metadata is only available after a read or write."""
    store = _store(tmp_path)

    with pytest.raises(FileDbNotPreparedError):
        store.get_metadata()


def test_read_empty_table_fails(tmp_path: Path) -> None:
    """Reading a table with no data should be reported as not found."""
    store = _store(tmp_path)

    assert store.has_data() is False
    with pytest.raises(FileDbNotFoundError):
        store.read()


def test_read_sets_current_version(tmp_path: Path) -> None:
    """Reads should record which version was prepared."""
    store = _store(tmp_path)
    metadata = store.write(_records(0, 1))
    reader = _store(tmp_path)

    reader.read()

    assert reader.get_current_version() == metadata.version == reader.get_latest_version()


def test_auto_mode_detects_non_versioned_layout(tmp_path: Path) -> None:
    """Auto-detection should follow the layout already on disk."""
    _store(tmp_path, versioned=False).write(_records(0, 2))
    store = _store(tmp_path, versioned=None, use_metadata=None)

    assert (store.get_versions(), store.read()) == ([], _records(0, 2))


def test_use_metadata_false_skips_metadata_file(tmp_path: Path) -> None:
    """Tables without metadata should rebuild counts from chunks."""
    store = _store(tmp_path, use_metadata=False, page_size=2)
    metadata = store.write(_records(0, 3))

    assert (
        not (store.table_path / metadata.version / "metadata.json").exists()
        and _store(tmp_path, use_metadata=False).read() == _records(0, 3)
    )


def test_default_synopsis_hooks_populate_metadata(tmp_path: Path) -> None:
    """Registered hooks should add file and version synopsis fields."""
    store = _store(tmp_path)
    store.set_file_synopsis_function(default_file_synopsis)
    store.set_version_synopsis_function(default_version_synopsis)

    metadata = store.write(
        [
            {"ModificationTimestamp": "2025-01-01T00:00:00Z", "StandardStatus": "Active"},
            {"ModificationTimestamp": "2025-01-03T00:00:00Z", "StandardStatus": "Pending"},
        ]
    )

    assert metadata.synopsis == {
        "minModificationTimestamp": "2025-01-01T00:00:00.000Z",
        "maxModificationTimestamp": "2025-01-03T00:00:00.000Z",
        "StandardStatuses": {"Active": 1, "Pending": 1},
    }


def test_iter_records_streams_latest_version(tmp_path: Path) -> None:
    """Streaming reads should yield every record of the latest version."""
    store = _store(tmp_path, page_size=3)
    store.write(_records(0, 7))

    assert list(store.iter_records()) == _records(0, 7)


def test_auto_mode_rebuilds_corrupt_versioned_metadata(tmp_path: Path) -> None:
    """Auto-detected versioned tables should recover from bad metadata.json."""
    store = _store(tmp_path, page_size=2)
    metadata = store.write(_records(0, 5))
    (store.table_path / metadata.version / "metadata.json").write_text("{", encoding="utf-8")

    reopened = _store(tmp_path, versioned=None, use_metadata=None)

    assert (reopened.get_versions(), reopened.read()) == ([metadata.version], _records(0, 5))


def test_auto_mode_rebuilds_corrupt_flat_metadata(tmp_path: Path) -> None:
    """Auto-detected non-versioned tables should recover from bad metadata.json."""
    store = _store(tmp_path, versioned=False)
    store.write({"id": 1})
    (store.table_path / "metadata.json").write_text("{", encoding="utf-8")

    reopened = _store(tmp_path, versioned=None, use_metadata=None)

    assert reopened.read() == {"id": 1}


def test_flat_table_rebuilds_corrupt_root_metadata(tmp_path: Path) -> None:
    """A corrupt root metadata.json should be rebuilt from the root chunks."""
    store = _store(tmp_path, versioned=False, page_size=2)
    store.write(_records(0, 3))
    (store.table_path / "metadata.json").write_text("[]", encoding="utf-8")

    reopened = _store(tmp_path, versioned=False, page_size=2)

    assert reopened.read() == _records(0, 3)


def test_has_data_is_false_for_empty_latest_version(tmp_path: Path) -> None:
    """An empty version folder should not count as readable data."""
    store = _store(tmp_path)
    (store.table_path / "2025-01-01T01:01:01Z").mkdir(parents=True)

    assert store.has_data() is False
    with pytest.raises(FileDbNotFoundError):
        store.read()


def test_auto_mode_scans_layout_once_per_read(tmp_path: Path, monkeypatch) -> None:
    """Mode resolution should list the table directory once per call."""
    _store(tmp_path).write(_records(0, 2))
    calls: list[Path] = []

    def _counting_detect_layout(table_path: Path):
        calls.append(table_path)
        return detect_layout(table_path)

    monkeypatch.setattr("store.file_database.detect_layout", _counting_detect_layout)
    _store(tmp_path, versioned=None, use_metadata=None).read()

    assert len(calls) == 1
