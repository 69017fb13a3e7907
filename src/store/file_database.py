"""File-backed table store.

This module exposes FileDatabase, the public surface of the store.
It composes path resolution, version management, chunk writing,
metadata building, and the pagination cursor into read and write
operations on one table.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
import shutil
from typing import Any, Callable, Iterator

from core.config import FileDbConfig
from core.errors import (
    FileDbConfigError,
    FileDbCorruptMetadataError,
    FileDbError,
    FileDbNotFoundError,
    FileDbNotPreparedError,
    FileDbUnsupportedOperationError,
)
from core.logging_config import get_logger
from core.types import (
    DataFormat,
    FileSynopsisFunction,
    VersionMetadata,
    VersionSynopsisFunction,
)
from store.chunk_files import list_chunk_files
from store.chunk_writer import write_payload
from store.format_detection import detect_data_format, detect_layout
from store.metadata_builder import (
    apply_version_synopsis,
    build_full,
    build_metadata,
    empty_metadata,
    update_after_write,
)
from store.metadata_io import metadata_path, read_metadata_file, write_metadata_file
from store.pagination import PaginationCursor, iter_records
from store.paths import resolve_table_path, resolve_version_path
from store.versioning import VersionManager

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class _PreparedState:
    """Resolved mode, target version, and loaded metadata."""

    versioned: bool
    use_metadata: bool
    version: str | None
    directory: Path
    metadata: VersionMetadata


class FileDatabase:
    """Versioned or non-versioned table stored as chunked files.

    An instance is used by a single thread of control; overlapping calls
    on one instance, or several writers on one table, are not supported.
    """

    def __init__(
        self,
        config: FileDbConfig,
        file_synopsis: FileSynopsisFunction | None = None,
        version_synopsis: VersionSynopsisFunction | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize a table store.

        Args:
            config: Validated table configuration.
            file_synopsis: Optional per-file synopsis hook.
            version_synopsis: Optional per-version synopsis hook.
            clock: Optional UTC time source for new version ids.
        """
        self._config = config
        self._table_path = resolve_table_path(
            config.base_path, config.namespace, config.table_name
        )
        self._file_synopsis = file_synopsis
        self._version_synopsis = version_synopsis
        self._clock = clock
        self._cursor = PaginationCursor()
        self._current_version: str | None = None
        self._state: _PreparedState | None = None

    @property
    def table_path(self) -> Path:
        """Return the table root directory."""
        return self._table_path

    def write(
        self,
        data: Any,
        version: str | None = None,
        force_new_version: bool = False,
    ) -> VersionMetadata:
        """Write a payload into the table.

        Versioned tables write into the explicit ``version`` when given,
        otherwise into this instance's current version when it is still
        the latest, otherwise into a new version.

        Args:
            data: Array, object, text, or XML payload.
            version: Existing version to reopen for append.
            force_new_version: Always start a new version.

        Returns:
            Metadata of the written version.

        Raises:
            FileDbUnsupportedOperationError: If force_new_version is used
                on a non-versioned table.
            FileDbConfigError: If version is used on a non-versioned table.
            FileDbNotFoundError: If the explicit version does not exist.
            FileDbDataTypeMismatchError: If the payload shape differs from
                the version's data type.
            FileDbInsufficientSpaceError: If the disk space guard trips.
        """
        versioned, use_metadata = self._resolve_mode()
        if force_new_version and not versioned:
            raise FileDbUnsupportedOperationError(
                f"Cannot use force_new_version on non-versioned table {self._table_path}."
            )
        if version is not None and not versioned:
            raise FileDbConfigError(
                f"Cannot write to version '{version}': table {self._table_path} "
                "is non-versioned. Omit the version argument."
            )
        if version is not None and force_new_version:
            raise FileDbConfigError(
                "Pass either version or force_new_version, not both."
            )
        state, created_version = self._prepare_write(
            versioned, use_metadata, version, force_new_version
        )
        try:
            result = write_payload(
                state.directory,
                state.metadata.files,
                state.metadata.data_type,
                data,
                self._config.page_size,
                self._config.free_space_threshold,
                self._file_synopsis,
            )
        except FileDbError:
            if created_version is not None:
                self._discard_version(state.directory, created_version)
            raise
        metadata = update_after_write(state.metadata, result, self._version_synopsis)
        if state.use_metadata:
            write_metadata_file(state.directory, metadata)
        self._state = replace(state, metadata=metadata)
        if created_version is not None:
            self._prune_versions()
        _LOGGER.info(
            "write_completed",
            table=str(self._table_path),
            version=state.version,
            records_added=result.records_added,
            total_records=metadata.total_records,
            file_count=len(metadata.files),
        )
        return metadata

    def read(
        self,
        version: str | None = None,
        next_page: bool = False,
        page_size: int | None = None,
    ) -> Any:
        """Read data from the table.

        Args:
            version: Version to read; latest when omitted.
            next_page: Continue from the cursor's position in this version.
            page_size: Records per page. Without it, a plain read returns
                every record and a ``next_page`` read uses the configured
                page size.

        Returns:
            Records list for array data; the whole value for object, text,
            and XML data (None once exhausted by ``next_page`` reads).

        Raises:
            FileDbNotFoundError: If the table or version holds no data.
            FileDbConfigError: If version is used on a non-versioned table.
        """
        if page_size is not None and page_size < 1:
            raise FileDbConfigError(f"Invalid page_size {page_size}: expected a positive integer.")
        state = self._prepare_read(version)
        effective_page_size = page_size
        if effective_page_size is None and next_page:
            effective_page_size = self._config.page_size
        return self._cursor.read(state.directory, state.metadata, next_page, effective_page_size)

    def iter_records(self, version: str | None = None) -> Iterator[Any]:
        """Stream a version's records one chunk file at a time.

        Args:
            version: Version to read; latest when omitted.

        Returns:
            Iterator over records (a single value for non-array data).
        """
        state = self._prepare_read(version)
        return iter_records(state.directory, state.metadata)

    def get_versions(self) -> list[str]:
        """Return version ids oldest first; empty for non-versioned tables."""
        if not self._resolve_mode()[0]:
            return []
        return self._version_manager(True).list_versions()

    def get_latest_version(self) -> str | None:
        """Return the latest version id, or None when none exist.

        Raises:
            FileDbNotVersionedError: If the table is non-versioned.
        """
        return self._version_manager(self._resolve_mode()[0]).resolve_current()

    def get_current_version(self) -> str | None:
        """Return the version last prepared by this instance."""
        return self._current_version

    def get_metadata(self) -> VersionMetadata:
        """Return metadata of the last prepared version.

        Raises:
            FileDbNotPreparedError: If nothing was read or written yet.
        """
        if self._state is None:
            raise FileDbNotPreparedError(
                "Metadata is not loaded yet. Call read() or write() first."
            )
        return self._state.metadata

    def load_metadata(self, version: str | None = None) -> VersionMetadata:
        """Prepare a version for reading and return its metadata.

        Args:
            version: Version to load; latest when omitted.

        Returns:
            Loaded or rebuilt metadata.

        Raises:
            FileDbNotFoundError: If the table or version holds no data.
        """
        return self._prepare_read(version).metadata

    def has_data(self) -> bool:
        """Return whether read() would find chunk files to return."""
        if self._resolve_mode()[0]:
            versions = self._version_manager(True).list_versions()
            if versions:
                latest_path = resolve_version_path(self._table_path, versions[-1])
                return bool(list_chunk_files(latest_path))
        return bool(list_chunk_files(self._table_path))

    def detect_data_format(self) -> DataFormat:
        """Detect the table's on-disk layout."""
        return detect_data_format(self._table_path)

    def reset_pagination(self) -> None:
        """Clear the pagination cursor for every version."""
        self._cursor.reset()

    def set_start_record(self, start_record: int, version: str | None = None) -> None:
        """Position the cursor so the next ``next_page`` read starts there.

        Args:
            start_record: 1-based record number.
            version: Version to position in; latest when omitted.
        """
        if start_record < 1:
            raise FileDbConfigError(
                f"Invalid start_record {start_record}: record numbers start at 1."
            )
        state = self._prepare_read(version)
        self._cursor.seek(state.metadata, start_record - 1)

    def set_file_synopsis_function(self, function: FileSynopsisFunction | None) -> None:
        """Register the per-file synopsis hook."""
        self._file_synopsis = function

    def set_version_synopsis_function(self, function: VersionSynopsisFunction | None) -> None:
        """Register the per-version synopsis hook."""
        self._version_synopsis = function

    def _prepare_write(
        self,
        versioned: bool,
        use_metadata: bool,
        version: str | None,
        force_new_version: bool,
    ) -> tuple[_PreparedState, str | None]:
        """Resolve the write target and load its metadata.

        Returns:
            Prepared state and the version id created by this call, if any.
        """
        if not versioned:
            self._table_path.mkdir(parents=True, exist_ok=True)
            state = self._load_state(False, use_metadata, None)
            self._current_version = None
            return state, None
        manager = self._version_manager(True)
        versions = manager.list_versions()
        if version is not None:
            if version not in versions:
                raise FileDbNotFoundError(
                    f"Version '{version}' not found in {self._table_path}. "
                    "Use get_versions() to discover valid version ids."
                )
            target = version
        elif (
            not force_new_version
            and self._current_version is not None
            and versions
            and self._current_version == versions[-1]
        ):
            target = self._current_version
        else:
            target = manager.create_version()
            self._current_version = target
            directory = resolve_version_path(self._table_path, target)
            state = _PreparedState(True, use_metadata, target, directory, empty_metadata(target))
            self._state = state
            return state, target
        self._current_version = target
        return self._load_state(True, use_metadata, target), None

    def _prepare_read(self, version: str | None) -> _PreparedState:
        """Resolve the read target and load or rebuild its metadata."""
        versioned, use_metadata = self._resolve_mode()
        if not versioned and version is not None:
            raise FileDbConfigError(
                f"Cannot read version '{version}': table {self._table_path} "
                "is non-versioned. Omit the version argument."
            )
        target: str | None = None
        if versioned:
            versions = self._version_manager(True).list_versions()
            if not versions and version is None and self._has_root_data():
                _LOGGER.info("legacy_layout_detected", table=str(self._table_path))
                versioned = False
            elif not versions:
                raise FileDbNotFoundError(
                    f"No versions found in {self._table_path}. Write data before reading."
                )
            elif version is not None and version not in versions:
                raise FileDbNotFoundError(
                    f"Version '{version}' not found in {self._table_path}. "
                    "Use get_versions() to discover valid version ids."
                )
            else:
                target = version or versions[-1]
        if not versioned and not self._has_root_data():
            raise FileDbNotFoundError(
                f"No data found in {self._table_path}. Write data before reading."
            )
        state = self._load_state(versioned, use_metadata, target)
        if not state.metadata.files:
            raise FileDbNotFoundError(
                f"No data files found in {state.directory}. Write data before reading."
            )
        self._current_version = target
        return state

    def _load_state(
        self,
        versioned: bool,
        use_metadata: bool,
        version: str | None,
    ) -> _PreparedState:
        """Return prepared state, reusing cached metadata for the same target."""
        directory = resolve_version_path(self._table_path, version)
        cached = self._state
        if cached is not None and cached.directory == directory and cached.version == version:
            state = replace(cached, versioned=versioned, use_metadata=use_metadata)
        else:
            metadata = self._load_metadata(directory, version, use_metadata)
            state = _PreparedState(versioned, use_metadata, version, directory, metadata)
        self._state = state
        return state

    def _load_metadata(
        self,
        directory: Path,
        version: str | None,
        use_metadata: bool,
    ) -> VersionMetadata:
        """Load metadata.json, or rebuild metadata from chunk files."""
        if use_metadata:
            try:
                metadata = read_metadata_file(directory)
            except FileDbCorruptMetadataError as error:
                if not list_chunk_files(directory):
                    raise
                _LOGGER.warning(
                    "metadata_corrupt_rebuilding",
                    directory=str(directory),
                    error=str(error),
                )
                rebuilt = build_full(directory, version, self._file_synopsis)
                return apply_version_synopsis(rebuilt, self._version_synopsis)
            if metadata is not None:
                return replace(metadata, version=version)
        if not list_chunk_files(directory):
            return empty_metadata(version)
        return build_metadata(directory, version, self._file_synopsis, self._version_synopsis)

    def _prune_versions(self) -> None:
        """Apply retention after a write that created a version."""
        result = self._version_manager(True).prune()
        if result.failed:
            _LOGGER.error(
                "version_retention_incomplete",
                table=str(self._table_path),
                failed=[version for version, _ in result.failed],
            )

    def _discard_version(self, directory: Path, version: str) -> None:
        """Remove a version created by a write that failed."""
        try:
            shutil.rmtree(directory)
        except OSError as error:
            _LOGGER.error(
                "failed_version_cleanup_error",
                table=str(self._table_path),
                version=version,
                error=str(error),
            )
            return
        _LOGGER.warning("failed_version_discarded", table=str(self._table_path), version=version)
        self._current_version = None
        self._state = None

    def _resolve_mode(self) -> tuple[bool, bool]:
        """Return (versioned, use_metadata), auto-detecting unset values.

        Detection only lists directories, so a corrupt metadata.json is
        left for _load_metadata to rebuild. Empty tables default to
        versioned with metadata.
        """
        versioned = self._config.versioned
        use_metadata = self._config.use_metadata
        if versioned is None or use_metadata is None:
            layout = detect_layout(self._table_path)
            if versioned is None:
                versioned = layout.versioned or not layout.has_data
            if use_metadata is None:
                use_metadata = layout.has_metadata or not layout.has_data
        return versioned, use_metadata

    def _has_root_data(self) -> bool:
        """Return whether non-versioned data sits directly in the table root."""
        return metadata_path(self._table_path).is_file() or bool(
            list_chunk_files(self._table_path)
        )

    def _version_manager(self, versioned: bool) -> VersionManager:
        return VersionManager(
            self._table_path,
            versioned,
            self._config.max_versions,
            clock=self._clock,
        )
