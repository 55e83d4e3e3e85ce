"""Record shredding: nested records → per-column (value, r, d) stripes.

WHY: Columnar storage keeps each leaf field in its own stripe. Flattening
a nested record into stripes loses structure unless every value carries
two small integers: the repetition level (which repeated ancestor started
a new element) and the definition level (how many ancestors are present).

HOW: shred() recurses over the schema tree in declaration order, carrying
the ambient repetition level. The node passed to shred() is known to be
present, so its max definition level is the current definition level.
Absent subtrees write one null per leaf at the current levels.

RULES:
- Every leaf receives at least one entry per record (eager nulls)
- First element of a repeated field inherits the caller's repetition level;
  later elements use the field's own max repetition level
- A singular field behaves like a repeated field with one element
- Missing keys, JSON null, and empty lists are all treated as absent
- A record that fails to shred contributes nothing to the output
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List

from dremel.core.ir import ColumnEntry, ShreddedColumns
from dremel.core.schema import ColumnDescriptor

logger = logging.getLogger(__name__)


class ShredError(ValueError):
    """Raised when a record's shape does not match the schema.

    WHY: A scalar where the schema declares a list (or the reverse) cannot
    be encoded with repetition/definition levels without losing data.

    RULES:
    - Message names the offending field path
    - The record's partial output is discarded by the caller
    """


def _is_scalar(value: Any) -> bool:
    return not isinstance(value, (Mapping, list, tuple))


def _write_nulls(node: ColumnDescriptor, repetition_level: int, definition_level: int,
                 columns: Dict[str, List[ColumnEntry]]) -> None:
    """Write one null entry for every leaf under an absent ``node``."""
    for leaf in node.leaves() if not node.is_leaf else [node]:
        columns[leaf.path].append(ColumnEntry(None, repetition_level, definition_level))


def _write_value(leaf: ColumnDescriptor, value: Any, repetition_level: int,
                 columns: Dict[str, List[ColumnEntry]]) -> None:
    if not _is_scalar(value):
        raise ShredError(
            "Field {!r} expects a scalar, got {}".format(leaf.path, type(value).__name__)
        )
    columns[leaf.path].append(
        ColumnEntry(value, repetition_level, leaf.max_definition_level)
    )


def shred(record: Mapping, descriptor: ColumnDescriptor, repetition_level: int,
          columns: Dict[str, List[ColumnEntry]], strict: bool = False) -> None:
    """Shred one present (sub-)record into ``columns``.

    Args:
        record: Mapping holding the fields of ``descriptor``.
        descriptor: Schema node the record is an instance of.
        repetition_level: Ambient repetition level for the first value
            written under this node.
        columns: Leaf path → entry list to append to.
        strict: Reject keys the schema does not declare.

    Raises:
        ShredError: If the record does not match the schema shape.
    """
    if not isinstance(record, Mapping):
        raise ShredError(
            "Field {!r} expects a record, got {}".format(
                descriptor.path or "<root>", type(record).__name__
            )
        )

    if strict:
        unknown = [key for key in record if key not in descriptor.children]
        if unknown:
            raise ShredError(
                "Undeclared field(s) {} under {!r}".format(
                    ", ".join(repr(k) for k in unknown), descriptor.path or "<root>"
                )
            )

    definition_level = descriptor.max_definition_level

    for name, child in descriptor.children.items():
        value = record.get(name)

        if child.is_repeated:
            if value is not None and not isinstance(value, (list, tuple)):
                raise ShredError(
                    "Repeated field {!r} expects a list, got {}".format(
                        child.path, type(value).__name__
                    )
                )
            if not value:
                _write_nulls(child, repetition_level, definition_level, columns)
                continue
            for position, element in enumerate(value):
                child_r = repetition_level if position == 0 else child.max_repetition_level
                if child.is_leaf:
                    if element is None:
                        raise ShredError(
                            "Repeated field {!r} contains a null element".format(child.path)
                        )
                    _write_value(child, element, child_r, columns)
                else:
                    shred(element, child, child_r, columns, strict=strict)
            continue

        if value is None:
            _write_nulls(child, repetition_level, definition_level, columns)
        elif child.is_leaf:
            _write_value(child, value, repetition_level, columns)
        else:
            shred(value, child, repetition_level, columns, strict=strict)


def shred_record(record: Mapping, schema: ColumnDescriptor,
                 strict: bool = False) -> Dict[str, List[ColumnEntry]]:
    """Shred a single top-level record.

    Returns:
        Leaf path → entries for this record only, in schema order.
    """
    columns: Dict[str, List[ColumnEntry]] = {leaf.path: [] for leaf in schema.leaves()}
    shred(record, schema, 0, columns, strict=strict)
    return columns


def shred_records(records: Iterable[Mapping], schema: ColumnDescriptor,
                  strict: bool = False, skip_invalid: bool = False) -> ShreddedColumns:
    """Shred a sequence of records into column stripes.

    Args:
        records: Top-level records (already-parsed mappings).
        schema: Root ColumnDescriptor.
        strict: Reject keys the schema does not declare.
        skip_invalid: Log and skip records that raise ShredError instead
            of propagating the error.

    Returns:
        ShreddedColumns holding every successfully shredded record.
    """
    result = ShreddedColumns.empty(schema)
    for index, record in enumerate(records):
        try:
            record_columns = shred_record(record, schema, strict=strict)
        except ShredError as exc:
            if not skip_invalid:
                raise
            logger.warning("Skipping record %d: %s", index, exc)
            continue
        result.append_record(record_columns)

    logger.debug("Shredded %d records into %d columns", result.record_count, len(result.columns))
    return result
