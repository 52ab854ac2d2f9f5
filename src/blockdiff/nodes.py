"""Typed tree nodes for blockdiff.

All nodes are frozen dataclasses with slots for:
- Immutability: trees are write-once, then read-only for the whole comparison
- Ownership: a script owns its chain; no block is shared between scripts
- Memory efficiency: __slots__ reduces memory footprint on large projects

Node Hierarchy:
TreeNode   loaded node, still carrying ids, coordinates and raw slots
Block      canonical node used for hashing, rendering and matching
├── Literal (scalar input value)
└── Script  (a fingerprinted root Block owned by one target)

Thread Safety:
All nodes are frozen (immutable) and safe to share across threads.

"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

# =============================================================================
# Loaded (pre-canonical) nodes
# =============================================================================


@dataclass(frozen=True, slots=True)
class TreeNode:
    """A block as reconstructed from the flat graph.

    Block-valued inputs are replaced by nested ``TreeNode`` sub-trees (or
    ``None`` when the reference was truncated). Structural inputs are moved
    out of ``inputs`` into ``children``.

    Attributes:
        block_id: Id of the block in its owning target
        opcode: Block opcode
        fields: Raw field map (name -> [value, optional id])
        inputs: Input map (name -> raw primitive array, TreeNode or None)
        mutation: Raw mutation metadata, if any
        children: ``(slot, node)`` pairs in structural slot order
        next: Following statement in the chain
        parent: Raw parent pointer (dropped by canonicalization)
        x: Canvas x coordinate of a top-level block
        y: Canvas y coordinate of a top-level block
        shadow: Whether the record is a shadow block

    """

    block_id: str
    opcode: str
    fields: dict[str, Any]
    inputs: dict[str, Any]
    mutation: dict[str, Any] | None = None
    children: tuple[tuple[str, TreeNode], ...] = ()
    next: TreeNode | None = None
    parent: str | None = None
    x: float | None = None
    y: float | None = None
    shadow: bool = False


# =============================================================================
# Canonical nodes
# =============================================================================


@dataclass(frozen=True, slots=True)
class Literal:
    """Scalar input value.

    ``kind`` is the native primitive code: 4-8 numbers, 9 color, 10 text,
    11 broadcast, 12 variable, 13 list. For references (11-13) ``value`` is
    the referenced name; the raw id is not kept.

    """

    kind: int
    value: Any


@dataclass(frozen=True, slots=True)
class Block:
    """Canonical block node.

    Fields, inputs and mutation are ``(name, value)`` tuples sorted by name
    so equal content always yields equal nodes. Input values are
    :class:`Literal`, nested expression :class:`Block` sub-trees, or None.

    """

    opcode: str
    fields: tuple[tuple[str, Any], ...] = ()
    inputs: tuple[tuple[str, Literal | Block | None], ...] = ()
    mutation: tuple[tuple[str, Any], ...] = ()
    children: tuple[tuple[str, Block], ...] = ()
    next: Block | None = None

    def chain(self) -> Iterator[Block]:
        """Yield this block and every following block in the ``next`` chain."""
        node: Block | None = self
        while node is not None:
            yield node
            node = node.next

    def child(self, slot: str) -> Block | None:
        """Return the structural child in ``slot``, if present."""
        for name, node in self.children:
            if name == slot:
                return node
        return None


@dataclass(frozen=True, slots=True)
class Script:
    """A fingerprinted script owned by one target.

    Attributes:
        target_name: Name of the owning target
        top_id: Id of the root block in the source graph
        root: Canonical root block
        fingerprint: Id-independent content hash of ``root``

    """

    target_name: str
    top_id: str
    root: Block
    fingerprint: str

    def block_count(self) -> int:
        """Count statement and condition blocks (expressions excluded)."""
        total = 0
        stack = [self.root]
        while stack:
            for node in stack.pop().chain():
                total += 1
                stack.extend(child for _, child in node.children)
        return total


__all__ = [
    "Block",
    "Literal",
    "Script",
    "TreeNode",
]
