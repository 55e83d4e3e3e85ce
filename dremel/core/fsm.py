"""Finite-state machine that drives the column read order during assembly.

WHY: Column stripes carry no explicit structure. When the assembler has
read a value, the only hint about what comes next is the repetition level
of the *next* value in the same column. The FSM turns that hint into the
next column to read, so assembly never has to re-derive nesting from the
schema while it runs.

HOW: build_fsm() walks the leaves in schema order. For each leaf it finds
the barrier (the next leaf, or END) and the repetition level it shares with
it. Levels above that barrier level belong to repeated groups the leaf is
inside of: a back edge jumps to the first column of the group that is
restarting, a self loop repeats the leaf itself. Levels at or below the
barrier level move on to the barrier.

RULES:
- Every leaf has exactly one transition for every level in [0, max_repetition_level]
- Back edges take priority over gap-fill defaults
- Barrier edges only cover [0, barrier_level]
- Among preceding leaves landing on the same back level, the earliest wins
- A projection (subset of leaves) gets its own FSM; leaves stay in schema order
"""

from __future__ import annotations

import enum
import logging
from typing import Dict, Iterable, List, Optional, Union

from dremel.core.schema import ColumnDescriptor, SchemaError, common_ancestor

logger = logging.getLogger(__name__)


class Terminal(enum.Enum):
    """Terminal FSM state, reached when a record is complete."""

    END = "END"

    def __repr__(self) -> str:
        return "END"


END = Terminal.END

Target = Union[ColumnDescriptor, Terminal]


class FSM:
    """Transition table: (leaf, next repetition level) → next leaf or END.

    Each leaf owns a list indexed by repetition level. Instances are
    immutable once built and can be shared across assemblers.
    """

    def __init__(self, leaves: List[ColumnDescriptor], table: Dict[ColumnDescriptor, List[Target]]) -> None:
        self._leaves = list(leaves)
        self._table = table
        self._index = {leaf: i for i, leaf in enumerate(self._leaves)}

    @property
    def leaves(self) -> List[ColumnDescriptor]:
        return list(self._leaves)

    @property
    def first(self) -> ColumnDescriptor:
        return self._leaves[0]

    def index(self, leaf: ColumnDescriptor) -> int:
        """Position of ``leaf`` in schema order within this FSM."""
        return self._index[leaf]

    def transitions(self, leaf: ColumnDescriptor) -> List[Target]:
        """Targets for ``leaf`` indexed by repetition level."""
        return list(self._table[leaf])

    def next(self, leaf: ColumnDescriptor, repetition_level: int) -> Target:
        """Return the column to read after ``leaf`` for the given level.

        Raises:
            KeyError: If the leaf is not part of this FSM or the level is
                outside [0, leaf.max_repetition_level].
        """
        row = self._table[leaf]
        if repetition_level < 0 or repetition_level >= len(row):
            raise KeyError(
                "No transition from {} at repetition level {}".format(leaf.path, repetition_level)
            )
        return row[repetition_level]

    def describe(self) -> List[str]:
        """Human-readable lines ``path --level--> target``, schema order."""
        lines: List[str] = []
        for leaf in self._leaves:
            for level, target in enumerate(self._table[leaf]):
                name = "END" if target is END else target.path
                lines.append("{} --{}--> {}".format(leaf.path, level, name))
        return lines


def select_leaves(schema: ColumnDescriptor, fields: Optional[Iterable[str]] = None) -> List[ColumnDescriptor]:
    """Resolve a field selection to leaf descriptors in schema order.

    ``None`` selects every leaf. A selected group selects all of its
    leaves. Unknown paths raise SchemaError.
    """
    all_leaves = schema.leaves()
    if fields is None:
        return all_leaves

    wanted = set()  # type: set
    for path in fields:
        node = schema.find(path)
        wanted.update(node.leaves() if not node.is_leaf else [node])
    if not wanted:
        raise SchemaError("Field selection is empty")
    return [leaf for leaf in all_leaves if leaf in wanted]


def build_fsm(schema: ColumnDescriptor, fields: Optional[Iterable[str]] = None) -> FSM:
    """Construct the assembly FSM for a schema or a projection of it.

    Args:
        schema: Root ColumnDescriptor from parse_schema().
        fields: Optional leaf or group paths to project onto. Defaults to
            every leaf of the schema.

    Returns:
        An FSM whose table is total over each leaf's repetition levels.
    """
    leaves = select_leaves(schema, fields)
    table: Dict[ColumnDescriptor, List[Target]] = {}

    for i, leaf in enumerate(leaves):
        max_level = leaf.max_repetition_level
        barrier: Target = leaves[i + 1] if i + 1 < len(leaves) else END
        if barrier is END:
            barrier_level = 0
        else:
            barrier_level = common_ancestor(leaf, barrier).max_repetition_level

        row: List[Optional[Target]] = [None] * (max_level + 1)

        # Back edges, nearest first; later (earlier-in-schema) writes win.
        for pre in reversed(leaves[:i]):
            if pre.max_repetition_level > barrier_level:
                back_level = common_ancestor(pre, leaf).max_repetition_level
                row[back_level] = pre

        # Gap fill from the top down.
        for level in range(max_level, barrier_level, -1):
            if row[level] is None:
                row[level] = leaf if level == max_level else row[level + 1]

        for level in range(0, barrier_level + 1):
            row[level] = barrier

        table[leaf] = row  # type: ignore[assignment]
        logger.debug(
            "FSM %s: %s",
            leaf.path,
            ", ".join(
                "{}->{}".format(level, "END" if t is END else t.path)
                for level, t in enumerate(row)
            ),
        )

    return FSM(leaves, table)
