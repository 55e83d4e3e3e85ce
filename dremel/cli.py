"""Command-line interface for Dremel shredding and assembly.

WHY: Users need a simple way to look at how their nested JSON data is
striped, to persist the stripes, and to rebuild records from them. The
CLI wires together schema loading, shredding, the formatters, and the
assembler behind three commands.

HOW: argparse with subcommands:
  shred     records file → formatter outputs saved next to the records
  assemble  JSON column document → one JSON record per line on stdout
  fsm       schema → FSM transition listing on stdout
Status messages go to stderr; data goes to stdout or files. Library
errors are reported as a single "Error: ..." line with exit status 1.

RULES:
- Schema: --field (repeatable) and/or --schema FILE; shred falls back to
  the companion {stem}-schema.txt / {stem}-schema.json next to the records
- --formats: comma-separated formatter keys (default: config, else all)
- Output naming: {stem}{suffix}, numeric suffix for conflicts (-columns-2.json)
- --verify re-assembles the stripes and checks that re-shredding them
  reproduces the same stripes
- Logging is configured once in main() from DREMEL_LOG_LEVEL (or --verbose)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

import jsonschema

from dremel.config import DREMEL_STRICT, default_formats, log_level
from dremel.core.assembler import AssemblyError, assemble_records
from dremel.core.fsm import build_fsm
from dremel.core.ir import ShreddedColumns
from dremel.core.schema import ColumnDescriptor, SchemaError, parse_schema
from dremel.core.shredder import ShredError, shred_records
from dremel.core.sources import load_records, load_schema_paths, resolve_companion_schema
from dremel.formatters import FORMATTERS
from dremel.formatters.base import FormatterOutput
from dremel.formatters.json_columns import loads_columns

logger = logging.getLogger(__name__)


class UsageError(Exception):
    """Raised for invalid command-line input detected after parsing."""


def _status(msg: str) -> None:
    """Print a status message to stderr.

    WHY: Status output must not pollute stdout so the CLI can be piped.
    """
    print(msg, file=sys.stderr, flush=True)


def _resolve_output_path(
    stem: str,
    suffix: str,
    output_dir: Path,
) -> Path:
    """Resolve the output file path, adding numeric suffix on conflict.

    RULES:
    - First attempt: {stem}{suffix} (e.g. orders-columns.json)
    - Conflict: split suffix at last dot, insert counter before extension
      (e.g. orders-columns-2.json)
    - Counter starts at 2 and increments
    """
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    dot_idx = suffix.rfind(".")
    if dot_idx > 0:
        suffix_name = suffix[:dot_idx]
        suffix_ext = suffix[dot_idx:]
    else:
        suffix_name = suffix
        suffix_ext = ""

    counter = 2
    while True:
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(
    output: FormatterOutput,
    stem: str,
    output_dir: Path,
) -> Path:
    """Save a single formatter output to disk and return its path."""
    path = _resolve_output_path(stem, output.suffix, output_dir)

    if isinstance(output.content, bytes):
        path.write_bytes(output.content)
    else:
        path.write_text(output.content, encoding="utf-8")

    return path


def _file_stem(path: Path) -> str:
    stem = path.name
    while "." in stem:
        stem = stem.rsplit(".", 1)[0]
    return stem


def _load_schema(
    schema_path: Optional[str],
    fields: Optional[List[str]],
    records_path: Optional[Path] = None,
) -> ColumnDescriptor:
    """Build the schema from --schema / --field, or the companion schema file.

    Paths from --schema come first, then --field paths, in the given order.
    """
    paths: List[str] = []

    if schema_path:
        paths.extend(load_schema_paths(schema_path))
        _status("  Schema: {} (explicit)".format(schema_path))
    elif not fields and records_path is not None:
        companion = resolve_companion_schema(records_path)
        if companion is not None:
            paths.extend(load_schema_paths(companion))
            _status("  Schema: {} (auto-discovered)".format(companion))

    if fields:
        paths.extend(fields)

    if not paths:
        raise UsageError("No schema given: use --schema FILE or --field PATH")

    return parse_schema(paths)


def _select_formats(formats_arg: Optional[str]) -> List[str]:
    if formats_arg:
        keys = [k.strip() for k in formats_arg.split(",") if k.strip()]
    else:
        keys = default_formats() or list(FORMATTERS)

    unknown = [k for k in keys if k not in FORMATTERS]
    if unknown:
        raise UsageError(
            "Unknown format(s): {}. Available: {}".format(
                ", ".join(unknown), ", ".join(sorted(FORMATTERS))
            )
        )
    return keys


def _verify_roundtrip(columns: ShreddedColumns, strict: bool) -> int:
    """Assemble the stripes and check that re-shredding gives the same stripes.

    Returns:
        Number of records assembled.

    Raises:
        AssemblyError: If the round trip does not reproduce the stripes.
    """
    rebuilt = list(assemble_records(columns.columns, columns.schema))
    reshredded = shred_records(rebuilt, columns.schema, strict=strict)
    if reshredded.columns != columns.columns:
        mismatched = [
            path for path in columns.columns
            if reshredded.columns.get(path) != columns.columns[path]
        ]
        raise AssemblyError(
            "Round trip changed column(s): {}".format(", ".join(mismatched))
        )
    return len(rebuilt)


def _run_shred(args: argparse.Namespace) -> None:
    records_path = Path(args.records).resolve()
    if not records_path.is_file():
        raise UsageError("File not found: {}".format(records_path))

    format_keys = _select_formats(args.formats)

    output_dir = Path(args.output_dir).resolve() if args.output_dir else records_path.parent
    if not output_dir.is_dir():
        raise UsageError("Output directory not found: {}".format(output_dir))

    _status("Input: {}".format(records_path.name))
    schema = _load_schema(args.schema, args.field, records_path)
    _status("  Columns: {}".format(len(schema.leaves())))

    records = load_records(records_path)
    columns = shred_records(
        records, schema, strict=args.strict, skip_invalid=args.skip_invalid,
    )
    skipped = len(records) - columns.record_count
    _status("Shredded {} records{}".format(
        columns.record_count,
        " ({} skipped)".format(skipped) if skipped else "",
    ))

    if args.verify:
        count = _verify_roundtrip(columns, args.strict)
        _status("  Round trip verified ({} records)".format(count))

    stem = _file_stem(records_path)
    for key in format_keys:
        formatter = FORMATTERS[key]()
        for output in formatter.format(columns):
            saved = _save_output(output, stem, output_dir)
            _status("  Saved: {} ({})".format(saved.name, formatter.name))


def _run_assemble(args: argparse.Namespace) -> None:
    columns_path = Path(args.columns)
    if not columns_path.is_file():
        raise UsageError("File not found: {}".format(columns_path))

    columns = loads_columns(columns_path.read_text(encoding="utf-8"))
    records = assemble_records(columns.columns, columns.schema, fields=args.select)

    out = open(args.output, "w", encoding="utf-8") if args.output else sys.stdout
    count = 0
    try:
        for record in records:
            out.write(json.dumps(record, ensure_ascii=False) + "\n")
            count += 1
    finally:
        if out is not sys.stdout:
            out.close()
    _status("Assembled {} records".format(count))


def _run_fsm(args: argparse.Namespace) -> None:
    schema = _load_schema(args.schema, args.field)
    fsm = build_fsm(schema, args.select)
    for line in fsm.describe():
        print(line)


def _add_schema_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--schema",
        default=None,
        help="Schema file: one field path per line, or a JSON array of paths.",
    )
    parser.add_argument(
        "--field",
        action="append",
        default=None,
        help="Field path such as 'doc.links[*].url'. Can be specified multiple times.",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    WHY: Separating parser construction from main() makes the CLI
    testable: tests can inspect the parser without running anything.
    """
    parser = argparse.ArgumentParser(
        prog="dremel",
        description="Shred nested JSON records into Dremel column stripes "
                    "and assemble them back.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    shred = subparsers.add_parser("shred", help="Shred a records file into column stripes.")
    shred.add_argument("records", help="JSON array or JSON Lines file of records.")
    _add_schema_arguments(shred)
    shred.add_argument(
        "--formats",
        default=None,
        help="Comma-separated list of output formats. "
             "Available: {}. Default: all.".format(", ".join(sorted(FORMATTERS))),
    )
    shred.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save output files (default: same as records file).",
    )
    shred.add_argument(
        "--strict",
        action=argparse.BooleanOptionalAction,
        default=DREMEL_STRICT,
        help="Reject record fields not declared in the schema (default: %(default)s).",
    )
    shred.add_argument(
        "--skip-invalid",
        action="store_true",
        help="Skip records that do not match the schema instead of failing.",
    )
    shred.add_argument(
        "--verify",
        action="store_true",
        help="Re-assemble the stripes and check the round trip.",
    )
    shred.set_defaults(handler=_run_shred)

    assemble = subparsers.add_parser("assemble", help="Assemble records from a JSON column document.")
    assemble.add_argument("columns", help="Column document written by the json_columns format.")
    assemble.add_argument(
        "--select",
        action="append",
        default=None,
        help="Only assemble this field path (leaf or group). Can be repeated.",
    )
    assemble.add_argument(
        "--output",
        default=None,
        help="Write JSON Lines to this file instead of stdout.",
    )
    assemble.set_defaults(handler=_run_assemble)

    fsm = subparsers.add_parser("fsm", help="Print the assembly FSM for a schema.")
    _add_schema_arguments(fsm)
    fsm.add_argument(
        "--select",
        action="append",
        default=None,
        help="Build the FSM for a projection onto this field path. Can be repeated.",
    )
    fsm.set_defaults(handler=_run_fsm)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else log_level(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        args.handler(args)
    except (UsageError, SchemaError, ShredError, AssemblyError,
            jsonschema.ValidationError, ValueError, OSError) as exc:
        message: Any = exc.message if isinstance(exc, jsonschema.ValidationError) else exc
        logger.debug("Command %s failed", args.command, exc_info=True)
        print("Error: {}".format(message), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
