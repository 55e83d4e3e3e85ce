"""Helper functions for loading schema paths and records from files.

WHY: The core works on already-parsed records and plain path strings. The
CLI still has to get them from disk: a schema file listing one path per
line, and records stored as a JSON array or as JSON Lines. Keeping that
I/O here leaves shredding and assembly free of file handling.

HOW: resolve_companion_schema() discovers a schema file next to the
records file by naming convention. load_schema_paths() reads text or JSON
schema files. load_records() detects JSON array vs JSON Lines from the
first non-blank character.

RULES:
- Companion schema: {stem}-schema.txt or {stem}-schema.json next to the records
- Text schema files: one path per line, strip whitespace, ignore blank lines
  and lines starting with '#'
- JSON schema files: a JSON array of path strings
- Records: a JSON array of objects, or one JSON object per line
- All files are UTF-8
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def resolve_companion_schema(records_path: str | Path) -> Path | None:
    """Discover a schema file next to a records file.

    WHY: Users keep the schema alongside the data it describes
    (orders.json + orders-schema.txt) so it does not have to be passed
    on every invocation.

    HOW: Strip all extensions from the records filename and look for
    {stem}-schema.txt, then {stem}-schema.json.

    Returns:
        The schema path, or None when no companion file exists.
    """
    records = Path(records_path)
    stem = records.name
    while "." in stem:
        stem = stem.rsplit(".", 1)[0]

    for suffix in ("-schema.txt", "-schema.json"):
        candidate = records.parent / f"{stem}{suffix}"
        if candidate.is_file():
            return candidate
    return None


def load_schema_paths(path: str | Path) -> list[str]:
    """Load schema field paths from a text or JSON file.

    RULES:
    - ``.json`` files must hold a JSON array of strings
    - Other files: one path per line, '#' comments and blank lines skipped

    Raises:
        ValueError: If a JSON schema file is not an array of strings.
    """
    schema_path = Path(path)
    text = schema_path.read_text(encoding="utf-8")

    if schema_path.suffix.lower() == ".json":
        declared = json.loads(text)
        if not isinstance(declared, list) or not all(isinstance(p, str) for p in declared):
            raise ValueError(
                f"Schema file {schema_path} must contain a JSON array of path strings"
            )
        return declared

    paths: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        paths.append(stripped)
    return paths


def load_records(path: str | Path) -> list[Any]:
    """Load records from a JSON array file or a JSON Lines file.

    WHY: Exported datasets come in both shapes; JSON Lines is common for
    large dumps because it streams, a plain array for hand-written samples.

    HOW: If the first non-whitespace character is '[' the whole file is
    parsed as one JSON array. Otherwise each non-blank line is one record.

    Raises:
        ValueError: If the content is not valid JSON (line number included
            for JSON Lines input).
    """
    text = Path(path).read_text(encoding="utf-8")
    stripped = text.lstrip()

    if not stripped:
        return []

    if stripped.startswith("["):
        parsed = json.loads(text)
        if not isinstance(parsed, list):
            raise ValueError(f"Records file {path} must hold a JSON array")
        return parsed

    records: list[Any] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            records.append(json.loads(line))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON on line {lineno} of {path}: {exc.msg}") from None
    return records
