from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, cast

from storesync.app import diff_snapshots, import_records, preview_records
from storesync.config import configure_logging
from storesync.domain.diff import summarize_diff
from storesync.domain.errors import UnknownDataTypeError
from storesync.domain.model import DataType, FlatRecord, MergeMode, Snapshot

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile and merge store data snapshots")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    diff = subparsers.add_parser("diff", help="Diff an incoming snapshot against an existing one")
    diff.add_argument("existing", type=Path, help="JSON file holding the stored snapshot")
    diff.add_argument("incoming", type=Path, help="JSON file holding the imported snapshot")
    diff.add_argument(
        "--types",
        nargs="+",
        required=True,
        help="Data types that took part in this import (e.g. sales purchase)",
    )
    diff.add_argument("--json", action="store_true", help="Print the full diff as JSON")

    import_cmd = subparsers.add_parser("import", help="Merge flat records into storage")
    import_cmd.add_argument("records", type=Path, help="JSON file holding a list of records")
    import_cmd.add_argument(
        "--data-type",
        type=str,
        required=True,
        help="Data type of the records (e.g. purchase)",
    )
    import_cmd.add_argument(
        "--mode",
        type=str,
        choices=[mode.value for mode in MergeMode],
        default=None,
        help="Merge mode (defaults to STORESYNC_MERGE_MODE or smart)",
    )

    preview = subparsers.add_parser("preview", help="Show what a smart import would change")
    preview.add_argument("records", type=Path, help="JSON file holding a list of records")
    preview.add_argument(
        "--data-type",
        type=str,
        required=True,
        help="Data type of the records (e.g. purchase)",
    )

    return parser.parse_args(list(argv))


def _read_json(path: Path) -> object:
    try:
        with path.open(encoding="utf-8") as handle:
            return json.load(handle)
    except OSError as exc:
        raise ValueError(f"Cannot read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc


def _load_snapshot(path: Path) -> Snapshot:
    payload = _read_json(path)
    if not isinstance(payload, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return Snapshot.from_mapping(cast("Mapping[str, object]", payload))


def _load_records(path: Path) -> list[FlatRecord]:
    payload = _read_json(path)
    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a JSON array")
    rows = cast("list[Mapping[str, object]]", payload)
    return [FlatRecord.from_mapping(row) for row in rows]


def _parse_data_type(value: str) -> DataType:
    try:
        return DataType(value)
    except ValueError as exc:
        raise ValueError(f"Unknown data type: {value}") from exc


def _emit(payload: object) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))  # noqa: T201


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        if parsed_args.command == "diff":
            existing = _load_snapshot(parsed_args.existing)
            incoming = _load_snapshot(parsed_args.incoming)
            imported_types = [_parse_data_type(value) for value in parsed_args.types]
        else:
            data_type = _parse_data_type(parsed_args.data_type)
            records = _load_records(parsed_args.records)
    except (ValueError, UnknownDataTypeError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "diff":
            result = diff_snapshots(existing, incoming, imported_types)
            if parsed_args.json:
                _emit(result.to_dict())
            else:
                log.info("Diff: %s", summarize_diff(result))
        elif parsed_args.command == "import":
            summary = import_records(data_type, records, mode=parsed_args.mode)
            _emit(summary.to_dict())
            if summary.errors:
                sys.exit(3)
        elif parsed_args.command == "preview":
            preview = preview_records(data_type, records)
            _emit(preview.counts())
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)
