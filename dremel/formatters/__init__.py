"""Output formatter registry.

WHY: The CLI needs a single lookup to find the right formatter by name.
A central dict makes it trivial to add new formats: create the formatter
class, import it here, add one line.

HOW: FORMATTERS maps string keys to formatter *classes* (not instances).
Callers instantiate as needed: ``formatter = FORMATTERS["json_columns"]()``.

RULES:
- Keys are snake_case identifiers (used in CLI flags and config)
- Values are BaseFormatter subclasses (not instances)
- Every formatter listed here must be importable without side effects
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dremel.formatters.column_table import ColumnTableFormatter
from dremel.formatters.fsm_listing import FSMListingFormatter
from dremel.formatters.json_columns import JSONColumnsFormatter

if TYPE_CHECKING:
    from dremel.formatters.base import BaseFormatter

FORMATTERS: dict[str, type[BaseFormatter]] = {
    "column_table": ColumnTableFormatter,
    "json_columns": JSONColumnsFormatter,
    "fsm_listing": FSMListingFormatter,
}
