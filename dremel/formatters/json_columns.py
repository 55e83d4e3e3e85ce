"""JSON column document formatter and loader.

WHY: Stripes need a persisted form that can be fed back into the
assembler (``python -m dremel assemble``) and inspected with ordinary
JSON tools. The document carries the schema paths so it is
self-describing.

HOW: The formatter writes ``{"version", "schema", "record_count",
"columns"}`` where each column is a list of ``[value, r, d]`` triples.
The output is validated with jsonschema against columns_schema.json
before returning; load_columns_document() validates on the way back in
and rebuilds a ShreddedColumns.

RULES:
- "schema" lists the leaf paths in schema order (enough to rebuild the tree)
- "columns" has exactly one key per leaf path
- Values must be JSON scalars
- Validation is mandatory in both directions; raises on invalid documents
- Output suffix: "-columns.json"
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import jsonschema

from dremel.config import json_indent
from dremel.core.ir import ColumnEntry, ShreddedColumns
from dremel.core.schema import parse_schema
from dremel.formatters.base import BaseFormatter, FormatterOutput

_SCHEMA_PATH = Path(__file__).resolve().parent / "columns_schema.json"

DOCUMENT_VERSION = 1


def _load_schema() -> dict[str, Any]:
    """Load the column document JSON schema from disk.

    Cached at module level after first call to avoid repeated I/O.
    """
    with open(_SCHEMA_PATH, encoding="utf-8") as f:
        return json.load(f)


_CACHED_SCHEMA: dict[str, Any] | None = None


def _get_schema() -> dict[str, Any]:
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        _CACHED_SCHEMA = _load_schema()
    return _CACHED_SCHEMA


def columns_to_document(columns: ShreddedColumns) -> Dict[str, Any]:
    """Convert ShreddedColumns to the (unvalidated) JSON document dict."""
    leaves = columns.schema.leaves()
    return {
        "version": DOCUMENT_VERSION,
        "schema": [leaf.path for leaf in leaves],
        "record_count": columns.record_count,
        "columns": {
            leaf.path: [list(entry) for entry in columns.columns.get(leaf.path, [])]
            for leaf in leaves
        },
    }


def load_columns_document(document: Dict[str, Any]) -> ShreddedColumns:
    """Validate a parsed column document and rebuild ShreddedColumns.

    Raises:
        jsonschema.ValidationError: If the document does not match the schema.
        dremel.core.schema.SchemaError: If the schema paths are invalid.
        ValueError: If the column keys do not match the schema leaves.
    """
    jsonschema.validate(instance=document, schema=_get_schema())

    schema = parse_schema(document["schema"])
    expected = [leaf.path for leaf in schema.leaves()]
    if sorted(expected) != sorted(document["columns"]):
        raise ValueError(
            "Column keys {} do not match schema leaves {}".format(
                sorted(document["columns"]), expected
            )
        )

    columns: Dict[str, List[ColumnEntry]] = {}
    for path in expected:
        columns[path] = [
            ColumnEntry(value, r, d) for value, r, d in document["columns"][path]
        ]
    return ShreddedColumns(
        schema=schema,
        columns=columns,
        record_count=document["record_count"],
    )


def loads_columns(content: str) -> ShreddedColumns:
    """Parse and validate a JSON column document string."""
    return load_columns_document(json.loads(content))


class JSONColumnsFormatter(BaseFormatter):
    """Formatter that writes the self-describing JSON column document."""

    @property
    def name(self) -> str:
        return "JSON columns"

    def format(self, columns: ShreddedColumns) -> List[FormatterOutput]:
        """Serialize the stripes to JSON.

        Raises:
            jsonschema.ValidationError: If the generated document does not
                conform to columns_schema.json (e.g. non-scalar values).
        """
        document = columns_to_document(columns)
        jsonschema.validate(instance=document, schema=_get_schema())

        content = json.dumps(document, indent=json_indent(), ensure_ascii=False)

        return [
            FormatterOutput(
                suffix="-columns.json",
                content=content + "\n",
                media_type="application/json",
            )
        ]
