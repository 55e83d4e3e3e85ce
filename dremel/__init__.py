"""Dremel-style columnar shredding and record assembly for nested records.

WHY: Nested records (mappings inside lists inside mappings) do not fit a
flat column layout on their own. Dremel's repetition and definition levels
make the flattening lossless, and a small finite-state machine makes the
reverse direction a single sequential pass over each column.

HOW: Three-stage pipeline: compile field paths into a schema tree
(core.schema), shred records into column stripes (core.shredder), and
assemble them back with an FSM (core.fsm, core.assembler). Formatters
render stripes and FSMs; the CLI wires it all to files.

RULES:
- The stripe IR (core.ir) is the contract between shredding and everything else
- assemble(shred(records)) == records for records that conform to the schema
- Empty lists, nulls, and missing keys are all encoded as "absent"
"""

__version__ = "0.1.0"
