"""Command-line interface for trip-sync.

Subcommands:

- ``merge``  -- merge two dataset JSON files without touching the store.
- ``import`` -- merge a partner's sync code or backup file into the store.
- ``export`` -- print this copy's sync code or write a backup file.

All user-facing messages go to stderr; stdout carries only data (merged
JSON, sync codes, ``--json`` reports) so it can be piped.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from . import __version__
from .config import resolve_config, storage_path
from .config_schema import UnifiedConfig
from .file_handler import validate_output_dir, write_file
from .logger import setup_logging
from .snapshot import LoadedSnapshot, SnapshotError
from .store import StoreError, TripStore
from .sync import format_merge_report, merge_with_report, report_to_json
from .transfer import (
    TransferError,
    decode_sync_code,
    encode_sync_code,
    read_backup,
    write_backup,
)

logger = logging.getLogger(__name__)


def _print_report(result, as_json: bool, dry_run: bool = False) -> None:
    if as_json:
        payload = report_to_json(result.report)
        payload["dry_run"] = dry_run
        print(json.dumps(payload, indent=2))
    else:
        print(format_merge_report(result.report, dry_run=dry_run), file=sys.stderr)


def _confirm(prompt: str) -> bool:
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def cmd_merge(args: argparse.Namespace, config: UnifiedConfig) -> int:
    """Merge two files and write the result to --output or stdout."""
    local = read_backup(args.local, lenient=True)
    remote = read_backup(args.remote)
    _report_load_rejections(local, "local")
    _report_load_rejections(remote, "remote")
    result = merge_with_report(local, remote)

    text = json.dumps(
        result.dataset.to_json_dict(), indent=2, ensure_ascii=False
    )
    if args.output:
        write_file(Path(args.output), text + "\n")
        print(f"Merged dataset written to {args.output}", file=sys.stderr)
    else:
        print(text)
    if not args.json:
        print(format_merge_report(result.report), file=sys.stderr)
    else:
        print(json.dumps(report_to_json(result.report), indent=2), file=sys.stderr)
    return 0


def cmd_import(args: argparse.Namespace, config: UnifiedConfig) -> int:
    """Merge a remote snapshot into the local store."""
    if args.code == "-":
        remote = decode_sync_code(sys.stdin.read())
    elif args.code is not None:
        remote = decode_sync_code(args.code)
    else:
        remote = read_backup(args.file)

    store = TripStore(storage_path(config), config.storage.key)
    local = store.load_snapshot()
    _report_load_rejections(local, "local")
    _report_load_rejections(remote, "remote")
    preview = merge_with_report(local, remote)

    if args.dry_run:
        _print_report(preview, args.json, dry_run=True)
        return 0

    if not preview.report.changed:
        print("Nothing new from remote; store left unchanged.", file=sys.stderr)
        _print_report(preview, args.json)
        return 0

    store.ensure_no_local_loss(preview)

    if config.transfer.confirm and not args.yes:
        print(format_merge_report(preview.report, dry_run=True), file=sys.stderr)
        if not _confirm("Merge these changes into your trip?"):
            print("Aborted.", file=sys.stderr)
            return 1

    store.save(preview.dataset)
    print(f"Merged into {store.path}", file=sys.stderr)
    _print_report(preview, args.json)
    return 0


def cmd_export(args: argparse.Namespace, config: UnifiedConfig) -> int:
    """Print the sync code or write a backup file."""
    store = TripStore(storage_path(config), config.storage.key)
    dataset = store.load()
    if args.code:
        print(encode_sync_code(dataset))
        return 0
    directory = validate_output_dir(args.dir or config.transfer.export_dir)
    path = write_backup(dataset, directory)
    print(f"Backup written to {path}", file=sys.stderr)
    return 0


def _report_load_rejections(snapshot: LoadedSnapshot, side: str) -> None:
    for r in snapshot.rejected:
        print(
            f"Skipped malformed {side} record {r.collection}[{r.index}]"
            f" (id={r.record_id}): {r.reason}",
            file=sys.stderr,
        )


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trip-sync",
        description="Merge two travellers' copies of the same trip plan",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Share your copy
  trip-sync export --code

  # Merge your partner's code into your trip (asks first)
  trip-sync import --code 'JTdCJTIy...'

  # Preview merging a backup file
  trip-sync import --file my_trip_backup_2026-03-20.json --dry-run

  # Merge two files without touching the store
  trip-sync merge mine.json theirs.json -o merged.json
        """,
    )
    parser.add_argument("--config", help="Path to a YAML config file")
    parser.add_argument(
        "--storage-dir",
        help="Directory holding the dataset (overrides TRIP_SYNC_STORAGE_DIR and config files)",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also append log lines to this file")
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Log line format (default: text)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"trip-sync version {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    p_merge = sub.add_parser("merge", help="Merge two dataset JSON files")
    p_merge.add_argument("local", help="Your dataset file (wins ties)")
    p_merge.add_argument("remote", help="The other dataset file")
    p_merge.add_argument("-o", "--output", help="Write merged JSON here")
    p_merge.add_argument(
        "--json", action="store_true", help="Print the report as JSON"
    )
    p_merge.set_defaults(func=cmd_merge)

    p_import = sub.add_parser(
        "import", help="Merge a sync code or backup file into the store"
    )
    source = p_import.add_mutually_exclusive_group(required=True)
    source.add_argument("--code", help="Sync code pasted from your partner ('-' reads stdin)")
    source.add_argument("--file", help="Backup JSON file")
    p_import.add_argument(
        "--dry-run", action="store_true", help="Show what would change"
    )
    p_import.add_argument(
        "-y", "--yes", action="store_true", help="Do not ask for confirmation"
    )
    p_import.add_argument(
        "--json", action="store_true", help="Print the report as JSON"
    )
    p_import.set_defaults(func=cmd_import)

    p_export = sub.add_parser("export", help="Share this copy of the trip")
    p_export.add_argument(
        "--code", action="store_true", help="Print a sync code instead of a file"
    )
    p_export.add_argument("--dir", help="Directory for the backup file")
    p_export.set_defaults(func=cmd_export)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, configure logging and run the chosen subcommand."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(
            {
                "storage_dir": args.storage_dir,
                "log_file": args.log_file,
                "log_format": args.log_format,
            },
            config_path=args.config,
        )
    except (FileNotFoundError, ValidationError, yaml.YAMLError) as exc:
        print(f"Error: invalid configuration: {exc}", file=sys.stderr)
        return 1

    setup_logging(
        debug=args.debug,
        log_file=config.logging.file,
        log_format=config.logging.format,
        default_level=config.logging.level,
    )

    try:
        return args.func(args, config)
    except (TransferError, StoreError, SnapshotError, ValueError) as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def run() -> None:
    """Console-script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
