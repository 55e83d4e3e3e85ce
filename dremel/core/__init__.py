"""Core schema, shredding, FSM, and assembly modules.

WHY: The core package is the stable heart of the library: the column
descriptor tree, the column stripe IR, and the two transformations
between nested records and stripes. Formatters and the CLI build on it.

HOW: schema.py compiles field paths into ColumnDescriptor trees, ir.py
defines the stripe structures, shredder.py writes stripes, fsm.py and
assembler.py read them back. sources.py is the only module that touches
files.

RULES:
- No file I/O outside sources.py
- Schema and FSM objects are immutable once built and safe to share
- Errors propagate to the caller; nothing here retries or swallows them
"""

from dremel.core.assembler import AssemblyError, ColumnReader, RecordAssembler, assemble_records
from dremel.core.fsm import END, FSM, build_fsm
from dremel.core.ir import ColumnEntry, ShreddedColumns
from dremel.core.schema import ColumnDescriptor, SchemaError, common_ancestor, parse_schema
from dremel.core.shredder import ShredError, shred, shred_record, shred_records

__all__ = [
    "AssemblyError",
    "ColumnDescriptor",
    "ColumnEntry",
    "ColumnReader",
    "END",
    "FSM",
    "RecordAssembler",
    "SchemaError",
    "ShredError",
    "ShreddedColumns",
    "assemble_records",
    "build_fsm",
    "common_ancestor",
    "parse_schema",
    "shred",
    "shred_record",
    "shred_records",
]
