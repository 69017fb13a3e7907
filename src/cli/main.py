"""filedb CLI entry points.
This module exposes table commands for the filedb console script.
It maps argparse commands onto FileDatabase calls.
"""

from __future__ import annotations

import argparse
from dataclasses import asdict, replace
import json
from pathlib import Path
from typing import Any, Sequence

from core.byte_units import human_readable_to_bytes
from core.config import FileDbConfig
from core.errors import FileDbConfigError, FileDbError
from store.file_database import FileDatabase
from store.metadata_io import metadata_to_payload

_MODE_CHOICES = {"versioned": True, "flat": False, "auto": None}


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="filedb", description="File-backed table store CLI")
    parser.add_argument("--base-path", help="Override FILEDB_BASE_PATH for this command")
    parser.add_argument("--namespace", help="Namespace under the base path")
    parser.add_argument("--table", help="Table name, may contain '/' separated segments")
    parser.add_argument("--page-size", type=int, help="Records per chunk file and page")
    parser.add_argument(
        "--mode",
        choices=tuple(_MODE_CHOICES),
        help="Table layout: versioned, flat (non-versioned), or auto-detect",
    )
    parser.add_argument(
        "--free-space-threshold",
        type=_parse_size_argument,
        help="Minimum free disk space kept before writing, e.g. 100MB",
    )
    parser.add_argument(
        "--no-metadata",
        action="store_true",
        help="Ignore metadata.json and rebuild metadata from chunk files",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_versions_command(subparsers)
    _add_inspect_command(subparsers)
    _add_read_command(subparsers)
    _add_write_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the filedb CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        store = _build_store(args)
        if args.command == "versions":
            return _run_versions_command(store)
        if args.command == "inspect":
            return _run_inspect_command(store, args)
        if args.command == "read":
            return _run_read_command(store, args)
        if args.command == "write":
            return _run_write_command(store, args)
    except FileDbError as error:
        print(f"filedb_error={error}")
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_store(args: argparse.Namespace) -> FileDatabase:
    """Build a table store from environment config plus CLI overrides.

    Args:
        args: Parsed CLI args.

    Returns:
        Configured table store.
    """
    config = FileDbConfig.from_env(base_path=args.base_path)
    overrides: dict[str, Any] = {}
    if args.namespace:
        overrides["namespace"] = args.namespace
    if args.table:
        overrides["table_name"] = args.table
    if args.page_size:
        overrides["page_size"] = args.page_size
    if args.mode:
        overrides["versioned"] = _MODE_CHOICES[args.mode]
    if args.no_metadata:
        overrides["use_metadata"] = False
    if args.free_space_threshold is not None:
        overrides["free_space_threshold"] = args.free_space_threshold
    return FileDatabase(replace(config, **overrides))


def _run_versions_command(store: FileDatabase) -> int:
    """Handle versions command.

    Args:
        store: Table store.

    Returns:
        Exit code.
    """
    versions = store.get_versions()
    for index, version in enumerate(versions):
        marker = "latest" if index == len(versions) - 1 else "-"
        print(f"{version}\t{marker}")
    return 0


def _run_inspect_command(store: FileDatabase, args: argparse.Namespace) -> int:
    """Handle inspect command.

    Args:
        store: Table store.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    report: dict[str, Any] = {
        "table": str(store.table_path),
        "format": asdict(store.detect_data_format()),
        "versions": store.get_versions(),
    }
    if store.has_data():
        metadata = store.load_metadata(args.version)
        report["metadata"] = metadata_to_payload(metadata)
    print(json.dumps(report, indent=2, ensure_ascii=False))
    return 0


def _run_read_command(store: FileDatabase, args: argparse.Namespace) -> int:
    """Handle read command.

    Args:
        store: Table store.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    if args.page is not None:
        page_size = args.limit or store.load_metadata(args.version).total_records or 1
        store.set_start_record((args.page - 1) * page_size + 1, version=args.version)
        data = store.read(version=args.version, next_page=True, page_size=page_size)
    else:
        data = store.read(version=args.version, page_size=args.limit)
    if isinstance(data, str):
        print(data)
    else:
        print(json.dumps(data, indent=2, ensure_ascii=False))
    return 0


def _run_write_command(store: FileDatabase, args: argparse.Namespace) -> int:
    """Handle write command.

    Args:
        store: Table store.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    payload = _load_source(Path(args.source).expanduser())
    metadata = store.write(
        payload,
        version=args.version,
        force_new_version=args.force_new_version,
    )
    print(f"version={metadata.version or '-'}")
    print(f"data_type={metadata.data_type}")
    print(f"total_records={metadata.total_records}")
    print(f"file_count={len(metadata.files)}")
    return 0


def _load_source(source_path: Path) -> Any:
    """Read a write source; .json files are parsed, others kept as text.

    Raises:
        FileDbConfigError: If the file cannot be read or holds invalid JSON.
    """
    try:
        raw_text = source_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as error:
        raise FileDbConfigError(
            f"Failed to read source file {source_path}: {error}. "
            "Pass an existing UTF-8 file to write."
        ) from error
    if source_path.suffix.lower() != ".json":
        return raw_text
    try:
        return json.loads(raw_text)
    except json.JSONDecodeError as error:
        raise FileDbConfigError(
            f"Failed to parse source file {source_path}: {error.msg} at line {error.lineno}. "
            "Fix the JSON or rename the file to store it as text."
        ) from error


def _add_versions_command(subparsers: Any) -> None:
    """Register versions subcommand."""
    subparsers.add_parser("versions", help="List table versions, oldest first")


def _add_inspect_command(subparsers: Any) -> None:
    """Register inspect subcommand."""
    parser = subparsers.add_parser("inspect", help="Report layout and metadata of a table")
    parser.add_argument("--version", help="Optional specific version id; latest by default")


def _add_read_command(subparsers: Any) -> None:
    """Register read subcommand."""
    parser = subparsers.add_parser("read", help="Print table data as JSON or raw text")
    parser.add_argument("--version", help="Optional specific version id; latest by default")
    parser.add_argument("--limit", type=int, help="Maximum records to print")
    parser.add_argument("--page", type=int, help="1-based page number of --limit records")


def _add_write_command(subparsers: Any) -> None:
    """Register write subcommand."""
    parser = subparsers.add_parser("write", help="Store a JSON, text, or XML file")
    parser.add_argument("source", help="File to store; .json files are parsed as JSON")
    parser.add_argument("--version", help="Existing version to append to")
    parser.add_argument(
        "--force-new-version",
        action="store_true",
        help="Start a new version instead of appending",
    )


def _parse_size_argument(raw_value: str) -> int:
    """Parse a byte count given as digits or with a unit suffix."""
    if raw_value.strip().isdigit():
        return int(raw_value.strip())
    try:
        return human_readable_to_bytes(raw_value)
    except ValueError as error:
        raise argparse.ArgumentTypeError(str(error)) from error
