"""Column stream data structures shared by the shredder, assembler, and formatters.

WHY: The shredder produces, and the assembler and formatters consume, the
same columnar representation. Keeping it in one small module makes it the
stable contract between the stages, the way a file format would be.

HOW: Two structures:
  ColumnEntry      one (value, repetition_level, definition_level) triple
  ShreddedColumns  the schema root plus one ordered entry list per leaf

RULES:
- Columns are keyed by leaf path (ColumnDescriptor.path), in schema order
- value is None exactly when definition_level < the leaf's max definition level
- Entries within a column are never reordered
- Every record contributes at least one entry to every column
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple

from dremel.core.schema import ColumnDescriptor


class ColumnEntry(NamedTuple):
    """One value of a column stripe with its repetition and definition levels."""

    value: Any
    repetition_level: int
    definition_level: int


@dataclass
class ShreddedColumns:
    """All column stripes produced from a batch of records.

    Attributes:
        schema: Root ColumnDescriptor the columns were shredded against.
        columns: Leaf path → ordered list of ColumnEntry.
        record_count: Number of records the stripes hold.
    """

    schema: ColumnDescriptor
    columns: Dict[str, List[ColumnEntry]] = field(default_factory=dict)
    record_count: int = 0

    @classmethod
    def empty(cls, schema: ColumnDescriptor) -> "ShreddedColumns":
        return cls(
            schema=schema,
            columns={leaf.path: [] for leaf in schema.leaves()},
            record_count=0,
        )

    @property
    def paths(self) -> List[str]:
        return list(self.columns)

    def append_record(self, record_columns: Dict[str, List[ColumnEntry]]) -> None:
        """Append the entries of one shredded record to every column."""
        for path, entries in record_columns.items():
            self.columns[path].extend(entries)
        self.record_count += 1

    def extend(self, other: "ShreddedColumns") -> None:
        """Concatenate another batch after this one, in record order.

        Both batches must have been shredded against the same schema object.
        """
        if other.schema is not self.schema:
            raise ValueError("Cannot concatenate columns shredded against different schemas")
        for path, entries in other.columns.items():
            self.columns[path].extend(entries)
        self.record_count += other.record_count
