"""Schema model: the column descriptor tree built from field paths.

WHY: Shredding, FSM construction, and assembly all need the same view of
the record structure: which fields exist, which repeat, and how many
repeated/optional ancestors sit above every leaf. Computing those levels
once, up front, keeps the other components free of structural parsing.

HOW: parse_schema() splits each dot-separated path into segments, strips
the trailing "[*]" repetition marker, and merges shared prefixes into one
tree of ColumnDescriptor nodes. Levels are assigned as nodes are created,
from the parent's levels.

RULES:
- Every field is implicitly optional: definition level +1 at every node
- Repetition level +1 only at repeated ("[*]") nodes
- Root has repetition level 0 and definition level 0
- Sibling order is declaration order (first path that mentions a field wins)
- A field cannot be both repeated and non-repeated, nor both leaf and group
- The tree is never mutated after parse_schema() returns
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional

logger = logging.getLogger(__name__)

REPEATED_MARKER = "[*]"

_SEGMENT_RE = re.compile(r"^(?P<name>[^.\[\]]+)(?P<repeated>\[\*\])?$")


class SchemaError(ValueError):
    """Raised when schema paths are malformed or conflict with each other.

    WHY: A bad schema makes every later stage meaningless, so it must be
    rejected before any record is processed.

    RULES:
    - Raised only while building the schema (or comparing foreign nodes)
    - Message names the offending path or field
    """


@dataclass(eq=False)
class ColumnDescriptor:
    """One node of the schema tree.

    Nodes compare by identity; they are used directly as dict keys by the
    FSM and the assembler.

    Attributes:
        name: Field name (empty string for the root).
        is_repeated: True when the path segment carried "[*]".
        max_repetition_level: Number of repeated nodes from root to here.
        max_definition_level: Number of nodes from root to here (depth).
        parent: Enclosing node, None for the root.
        children: Child nodes keyed by field name, in declaration order.
    """

    name: str
    is_repeated: bool = False
    max_repetition_level: int = 0
    max_definition_level: int = 0
    parent: Optional["ColumnDescriptor"] = field(default=None, repr=False)
    children: Dict[str, "ColumnDescriptor"] = field(default_factory=dict, repr=False)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def depth(self) -> int:
        return self.max_definition_level

    @property
    def path(self) -> str:
        """Dotted path with repetition markers, e.g. ``doc.links[*].url``."""
        parts: List[str] = []
        node: Optional[ColumnDescriptor] = self
        while node is not None and node.parent is not None:
            parts.append(node.name + (REPEATED_MARKER if node.is_repeated else ""))
            node = node.parent
        return ".".join(reversed(parts))

    def ancestors(self) -> List["ColumnDescriptor"]:
        """Nodes from the root down to and including this node."""
        chain: List[ColumnDescriptor] = []
        node: Optional[ColumnDescriptor] = self
        while node is not None:
            chain.append(node)
            node = node.parent
        chain.reverse()
        return chain

    def repeated_ancestor(self, repetition_level: int) -> "ColumnDescriptor":
        """Return the node on this path whose repetition level first equals
        ``repetition_level``.

        For ``repetition_level > 0`` this is the repeated field that starts
        a new element at that level; its definition level is where the
        assembler has to reopen the enclosing list.
        """
        if repetition_level > self.max_repetition_level:
            raise SchemaError(
                "{} has no repeated ancestor at level {}".format(self.path, repetition_level)
            )
        for node in self.ancestors():
            if node.max_repetition_level == repetition_level:
                return node
        raise SchemaError(
            "{} has no ancestor at repetition level {}".format(self.path, repetition_level)
        )

    def leaves(self) -> List["ColumnDescriptor"]:
        """All leaf columns under this node, depth-first in schema order."""
        return list(_iter_leaves(self))

    def find(self, path: str) -> "ColumnDescriptor":
        """Look up a descendant by dotted path (repetition markers optional)."""
        node = self
        for segment in path.split("."):
            name = segment[:-len(REPEATED_MARKER)] if segment.endswith(REPEATED_MARKER) else segment
            try:
                node = node.children[name]
            except KeyError:
                raise SchemaError("Unknown field path: {!r}".format(path)) from None
        return node

    def add_child(self, name: str, is_repeated: bool) -> "ColumnDescriptor":
        child = ColumnDescriptor(
            name=name,
            is_repeated=is_repeated,
            max_repetition_level=self.max_repetition_level + (1 if is_repeated else 0),
            max_definition_level=self.max_definition_level + 1,
            parent=self,
        )
        self.children[name] = child
        return child


def _iter_leaves(node: ColumnDescriptor) -> Iterator[ColumnDescriptor]:
    if node.is_leaf and not node.is_root:
        yield node
        return
    for child in node.children.values():
        yield from _iter_leaves(child)


def _split_path(path: str) -> List[tuple]:
    """Split a path into (name, is_repeated) segments, validating syntax."""
    if not isinstance(path, str) or not path.strip():
        raise SchemaError("Empty schema path: {!r}".format(path))

    segments = []
    for raw in path.strip().split("."):
        match = _SEGMENT_RE.match(raw.strip())
        if match is None:
            raise SchemaError(
                "Malformed segment {!r} in schema path {!r}".format(raw, path)
            )
        segments.append((match.group("name"), match.group("repeated") is not None))
    return segments


def parse_schema(paths: Iterable[str]) -> ColumnDescriptor:
    """Build the column descriptor tree from an ordered sequence of paths.

    Args:
        paths: Dot-separated field paths; a segment ending in "[*]" marks
            a repeated field, e.g. ``["doc.links[*].url", "doc.links[*].language"]``.

    Returns:
        The root ColumnDescriptor. Each unique path contributes one leaf.

    Raises:
        SchemaError: On empty input, malformed paths, or conflicting
            declarations of the same field.
    """
    root = ColumnDescriptor(name="")
    declared_leaves = set()  # type: set
    seen_any = False

    for path in paths:
        seen_any = True
        segments = _split_path(path)
        node = root
        for position, (name, is_repeated) in enumerate(segments):
            is_last = position == len(segments) - 1
            child = node.children.get(name)
            if child is None:
                if id(node) in declared_leaves:
                    raise SchemaError(
                        "Field {!r} is declared as a leaf and as a group (path {!r})".format(
                            node.path, path
                        )
                    )
                child = node.add_child(name, is_repeated)
            elif child.is_repeated != is_repeated:
                raise SchemaError(
                    "Field {!r} is declared both repeated and non-repeated (path {!r})".format(
                        child.path, path
                    )
                )
            node = child

            if is_last:
                if not node.is_leaf:
                    raise SchemaError(
                        "Field {!r} is declared as a leaf and as a group (path {!r})".format(
                            node.path, path
                        )
                    )
                if id(node) in declared_leaves:
                    logger.debug("Duplicate schema path %r merged", path)
                declared_leaves.add(id(node))

    if not seen_any:
        raise SchemaError("Schema must declare at least one path")

    logger.debug(
        "Parsed schema with %d leaf columns: %s",
        len(root.leaves()),
        ", ".join(leaf.path for leaf in root.leaves()),
    )
    return root


def common_ancestor(a: ColumnDescriptor, b: ColumnDescriptor) -> ColumnDescriptor:
    """Lowest node that is an ancestor of (or equal to) both ``a`` and ``b``.

    Walks the deeper node up to the other's depth, then steps both up
    together until they meet.

    Raises:
        SchemaError: If the nodes belong to different schema trees.
    """
    while a.depth > b.depth:
        a = a.parent
    while b.depth > a.depth:
        b = b.parent
    while a is not b:
        if a.parent is None or b.parent is None:
            raise SchemaError("Columns belong to different schemas")
        a = a.parent
        b = b.parent
    return a
