"""Plain text stripe tables, one table per leaf column.

WHY: The quickest way to understand (or debug) shredding is to look at
each stripe as a small table of value / r / d rows, the view used when
explaining repetition and definition levels by hand.

HOW: For every leaf in schema order, print a header line with the path
and its max levels, then one aligned row per entry. Nulls are shown with
the configured null marker; non-string scalars are shown as JSON.

RULES:
- One table per column, schema order, blank line between tables
- Header: "<path>  (max r=<R>, max d=<D>)"
- Column headers: value, r, d
- Null display comes from config.DREMEL_NULL_DISPLAY
- Output suffix: "-columns.txt"
- Media type: "text/plain"
"""

from __future__ import annotations

import json
from typing import Any, List, Optional

from dremel.config import DREMEL_NULL_DISPLAY
from dremel.core.ir import ColumnEntry, ShreddedColumns
from dremel.formatters.base import BaseFormatter, FormatterOutput


def _display(value: Any, null_display: str) -> str:
    if value is None:
        return null_display
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _render_table(header: str, entries: List[ColumnEntry], null_display: str) -> str:
    rows = [("value", "r", "d")]
    rows.extend(
        (_display(e.value, null_display), str(e.repetition_level), str(e.definition_level))
        for e in entries
    )
    widths = [max(len(row[i]) for row in rows) for i in range(3)]

    lines = [header]
    for row in rows:
        line = "  ".join(cell.ljust(width) for cell, width in zip(row, widths))
        lines.append(line.rstrip())
    return "\n".join(lines)


class ColumnTableFormatter(BaseFormatter):
    """Formatter that renders each column stripe as a text table."""

    def __init__(self, null_display: Optional[str] = None) -> None:
        self.null_display = DREMEL_NULL_DISPLAY if null_display is None else null_display

    @property
    def name(self) -> str:
        return "Column table"

    def format(self, columns: ShreddedColumns) -> List[FormatterOutput]:
        tables: List[str] = []
        for leaf in columns.schema.leaves():
            header = "{}  (max r={}, max d={})".format(
                leaf.path, leaf.max_repetition_level, leaf.max_definition_level
            )
            tables.append(_render_table(header, columns.columns.get(leaf.path, []), self.null_display))

        content = "\n\n".join(tables)
        if content:
            content += "\n"

        return [
            FormatterOutput(
                suffix="-columns.txt",
                content=content,
                media_type="text/plain",
            )
        ]
