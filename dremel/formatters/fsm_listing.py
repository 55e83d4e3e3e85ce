"""FSM transition listing.

WHY: The assembly FSM is the least obvious part of the pipeline. Printing
its transitions next to the stripes shows why the assembler jumps back to
an earlier column when a repeated group restarts.

HOW: Builds the FSM for the columns' schema and writes one line per
(leaf, repetition level) pair: ``path --level--> target``.

RULES:
- Leaves in schema order, levels ascending
- The terminal state is printed as END
- Output suffix: "-fsm.txt"
- Media type: "text/plain"
"""

from __future__ import annotations

from typing import List

from dremel.core.fsm import build_fsm
from dremel.core.ir import ShreddedColumns
from dremel.formatters.base import BaseFormatter, FormatterOutput


class FSMListingFormatter(BaseFormatter):
    """Formatter that lists every FSM transition for the schema."""

    @property
    def name(self) -> str:
        return "FSM listing"

    def format(self, columns: ShreddedColumns) -> List[FormatterOutput]:
        fsm = build_fsm(columns.schema)
        content = "\n".join(fsm.describe()) + "\n"
        return [
            FormatterOutput(
                suffix="-fsm.txt",
                content=content,
                media_type="text/plain",
            )
        ]
