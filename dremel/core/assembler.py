"""Record assembly: column stripes + FSM → nested records.

WHY: Shredding is only useful if the original records can be rebuilt
exactly, and rebuilt from any subset of columns without touching the
others. The assembler reads each stripe strictly once, front to back, and
uses the FSM to decide which stripe to read next.

HOW: RecordAssembler keeps an explicit stack of open containers, one frame
per present schema node on the current path, each tagged with the
definition level it was opened at (the record itself sits at level 0).
For every entry it:
  1. moves to the entry's definition level, opening maps/lists on the way
  2. stores the value when the entry is fully defined
  3. peeks the next repetition level in the same stripe and asks the FSM
     for the next column
  4. on a back edge, closes the element of the repeated group that is
     restarting, so the next value lands in a fresh element
Reaching END closes everything and yields the record.

RULES:
- Stripes are consumed in order and never rewound
- No recursion: nesting depth is bounded only by the schema
- Any inconsistency between stripes and FSM raises AssemblyError
- Records already yielded stay valid when a later record fails
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, NamedTuple, Optional

from dremel.core.fsm import END, FSM, build_fsm
from dremel.core.ir import ColumnEntry
from dremel.core.schema import ColumnDescriptor

logger = logging.getLogger(__name__)


class AssemblyError(ValueError):
    """Raised when column stripes and the FSM fall out of step.

    WHY: Stripes are single-pass, so a desynchronised stream cannot be
    repaired locally. It signals upstream shredding or storage corruption.

    RULES:
    - Fatal for the record being assembled
    - Message names the column and the inconsistency
    """


class ColumnReader:
    """Single-pass reader over one column stripe with one entry of lookahead."""

    def __init__(self, descriptor: ColumnDescriptor, entries: Iterable[ColumnEntry]) -> None:
        self.descriptor = descriptor
        self._entries = iter(entries)
        self._next: Optional[ColumnEntry] = None
        self._exhausted = False
        self._advance()

    def _advance(self) -> None:
        try:
            value, r, d = next(self._entries)
        except StopIteration:
            self._next = None
            self._exhausted = True
            return
        self._next = ColumnEntry(value, r, d)

    @property
    def has_data(self) -> bool:
        return not self._exhausted

    def read(self) -> ColumnEntry:
        if self._exhausted:
            raise AssemblyError(
                "Column {!r} exhausted in the middle of a record".format(self.descriptor.path)
            )
        entry = self._next
        self._advance()
        return entry

    def peek_repetition_level(self) -> int:
        """Repetition level of the next entry, or 0 when the stripe is exhausted."""
        if self._exhausted:
            return 0
        return self._next.repetition_level


class _Frame(NamedTuple):
    descriptor: ColumnDescriptor
    container: Dict[str, Any]
    level: int


class RecordAssembler:
    """Rebuilds records from a set of column readers driven by an FSM."""

    def __init__(self, fsm: FSM, readers: Mapping[ColumnDescriptor, ColumnReader]) -> None:
        self.fsm = fsm
        self.readers = readers
        self._stack: List[_Frame] = []
        self._record: Dict[str, Any] = {}

    @property
    def has_data(self) -> bool:
        return self.readers[self.fsm.first].has_data

    def _reset(self) -> None:
        self._record = {}
        self._stack = [_Frame(self.fsm.first.ancestors()[0], self._record, 0)]

    def move_to_level(self, target_definition_level: int, descriptor: ColumnDescriptor) -> Dict[str, Any]:
        """Make the path to ``descriptor`` open down to ``target_definition_level``.

        Frames that are not on the descriptor's path are closed first; the
        missing ancestors between the deepest shared frame and the target
        level are then opened, creating maps and list elements in their
        parent containers. Returns the innermost open container.
        """
        path = descriptor.ancestors()

        keep = 1
        while (keep < len(self._stack) and keep < len(path) - 1
               and self._stack[keep].descriptor is path[keep]):
            keep += 1
        del self._stack[keep:]

        deepest = min(target_definition_level, descriptor.max_definition_level - 1)
        for level in range(len(self._stack), deepest + 1):
            node = path[level]
            parent = self._stack[-1].container
            if node.is_repeated:
                elements = parent.setdefault(node.name, [])
                if not isinstance(elements, list):
                    raise AssemblyError("Cannot open list {!r}: slot is occupied".format(node.path))
                container: Dict[str, Any] = {}
                elements.append(container)
            else:
                container = parent.setdefault(node.name, {})
                if not isinstance(container, dict):
                    raise AssemblyError("Cannot open record {!r}: slot is occupied".format(node.path))
            self._stack.append(_Frame(node, container, level))

        return self._stack[-1].container

    def return_to_level(self, level: int) -> None:
        """Close every open container opened deeper than ``level``."""
        if level < 0 or level >= len(self._stack):
            raise AssemblyError(
                "No open container at definition level {} (open depth {})".format(
                    level, len(self._stack) - 1
                )
            )
        del self._stack[level + 1:]

    def _store(self, descriptor: ColumnDescriptor, container: Dict[str, Any], value: Any) -> None:
        if descriptor.is_repeated:
            container.setdefault(descriptor.name, []).append(value)
        else:
            container[descriptor.name] = value

    def _check_entry(self, descriptor: ColumnDescriptor, entry: ColumnEntry) -> None:
        if not 0 <= entry.definition_level <= descriptor.max_definition_level:
            raise AssemblyError(
                "Column {!r}: definition level {} outside [0, {}]".format(
                    descriptor.path, entry.definition_level, descriptor.max_definition_level
                )
            )
        if not 0 <= entry.repetition_level <= descriptor.max_repetition_level:
            raise AssemblyError(
                "Column {!r}: repetition level {} outside [0, {}]".format(
                    descriptor.path, entry.repetition_level, descriptor.max_repetition_level
                )
            )
        defined = entry.definition_level == descriptor.max_definition_level
        if defined and entry.value is None:
            raise AssemblyError(
                "Column {!r}: null value at full definition level".format(descriptor.path)
            )
        if not defined and entry.value is not None:
            raise AssemblyError(
                "Column {!r}: value {!r} below full definition level".format(
                    descriptor.path, entry.value
                )
            )

    def assemble_record(self) -> Dict[str, Any]:
        """Assemble the next record from the readers.

        Raises:
            AssemblyError: If the stripes are inconsistent with the FSM.
        """
        self._reset()
        descriptor = self.fsm.first

        first = self.readers[descriptor]
        if first.has_data and first.peek_repetition_level() != 0:
            raise AssemblyError(
                "Record must start at repetition level 0 in column {!r}".format(descriptor.path)
            )

        while descriptor is not END:
            reader = self.readers[descriptor]
            entry = reader.read()
            self._check_entry(descriptor, entry)

            container = self.move_to_level(entry.definition_level, descriptor)
            if entry.definition_level == descriptor.max_definition_level:
                self._store(descriptor, container, entry.value)

            next_level = reader.peek_repetition_level()
            try:
                next_descriptor = self.fsm.next(descriptor, next_level)
            except KeyError as exc:
                raise AssemblyError(str(exc)) from None

            if next_descriptor is not END and self.fsm.index(next_descriptor) <= self.fsm.index(descriptor):
                restarting = descriptor.repeated_ancestor(next_level)
                self.return_to_level(restarting.max_definition_level - 1)
                following = self.readers[next_descriptor]
                if not following.has_data or following.peek_repetition_level() != next_level:
                    raise AssemblyError(
                        "Column {!r} is not at repetition level {} after {!r}".format(
                            next_descriptor.path, next_level, descriptor.path
                        )
                    )

            descriptor = next_descriptor

        self.return_to_level(0)
        return self._record


def assemble_records(
    columns: Mapping[str, Iterable[ColumnEntry]],
    schema: ColumnDescriptor,
    fields: Optional[Iterable[str]] = None,
    fsm: Optional[FSM] = None,
) -> Iterator[Dict[str, Any]]:
    """Lazily reassemble records from column stripes.

    Args:
        columns: Leaf path → iterable of ColumnEntry (e.g. ShreddedColumns.columns).
        schema: Root ColumnDescriptor the stripes were shredded against.
        fields: Optional leaf/group paths to project onto; only those
            stripes are read and only those fields appear in the output.
        fsm: Prebuilt FSM to reuse; built from ``schema``/``fields`` if omitted.

    Yields:
        One reconstructed record (nested dicts/lists) per shredded record.

    Raises:
        AssemblyError: On missing stripes or stripe/FSM desynchronisation.
    """
    if fsm is None:
        fsm = build_fsm(schema, fields)

    readers: Dict[ColumnDescriptor, ColumnReader] = {}
    for leaf in fsm.leaves:
        if leaf.path not in columns:
            raise AssemblyError("Missing column stripe {!r}".format(leaf.path))
        readers[leaf] = ColumnReader(leaf, columns[leaf.path])

    assembler = RecordAssembler(fsm, readers)
    count = 0
    while assembler.has_data:
        yield assembler.assemble_record()
        count += 1

    leftover = [leaf.path for leaf, reader in readers.items() if reader.has_data]
    if leftover:
        raise AssemblyError(
            "Trailing entries after {} records in column(s): {}".format(count, ", ".join(leftover))
        )
    logger.debug("Assembled %d records from %d columns", count, len(readers))
