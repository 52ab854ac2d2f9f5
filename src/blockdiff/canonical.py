"""Canonical form for blocks and collection entries.

Strips everything that can change without changing the program: raw ids,
parent pointers, canvas coordinates, shadow flags, field ids, reference ids
and the XML bookkeeping keys of mutations. What remains is
``{opcode, fields, inputs, mutation, children, next}`` with every map sorted
by key, which is what fingerprints, renderings and equality checks see.

Example:
    >>> tree, _ = build_tree(blocks, "root")
    >>> block = canonicalize(tree)
    >>> block.opcode
    'event_whenflagclicked'

Thread Safety:
    All functions are pure. Safe to call from any thread.

"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from operator import itemgetter
from typing import Any

from blockdiff.config import get_diff_config
from blockdiff.nodes import Block, Literal, TreeNode

# Mutation keys that only mirror the XML serialization of the editor
_MUTATION_BOOKKEEPING = frozenset({"tagName", "children"})


def canonicalize(node: TreeNode) -> Block:
    """Convert a loaded tree into its canonical form.

    The ``next`` chain is converted tail-first (no recursion per statement);
    children and expression inputs recurse by nesting depth only.

    Args:
        node: Root of a loaded tree (usually a script root).

    Returns:
        Canonical Block with the same shape and no volatile data.

    """
    chain: list[TreeNode] = []
    current: TreeNode | None = node
    while current is not None:
        chain.append(current)
        current = current.next

    result = _canonical_block(chain.pop(), None)
    for item in reversed(chain):
        result = _canonical_block(item, result)
    return result


def _canonical_block(item: TreeNode, next_block: Block | None) -> Block:
    return Block(
        opcode=item.opcode,
        fields=_canonical_fields(item.fields),
        inputs=_canonical_inputs(item.inputs),
        mutation=_canonical_mutation(item.mutation),
        children=tuple((slot, canonicalize(child)) for slot, child in item.children),
        next=next_block,
    )


def _canonical_fields(fields: Mapping[str, Any]) -> tuple[tuple[str, Any], ...]:
    # Native fields are [value] or [value, id]; the id is volatile
    items = []
    for name, raw in fields.items():
        value = raw[0] if isinstance(raw, list | tuple) and raw else raw
        items.append((name, canonical_value(value)))
    return tuple(sorted(items, key=itemgetter(0)))


def _canonical_inputs(inputs: Mapping[str, Any]) -> tuple[tuple[str, Literal | Block | None], ...]:
    items: list[tuple[str, Literal | Block | None]] = []
    for name, value in inputs.items():
        if isinstance(value, TreeNode):
            items.append((name, canonicalize(value)))
        elif isinstance(value, list | tuple):
            items.append((name, _literal(value)))
        elif value is None:
            items.append((name, None))
        else:
            items.append((name, Literal(kind=0, value=canonical_value(value))))
    return tuple(sorted(items, key=itemgetter(0)))


def _literal(raw: list[Any] | tuple[Any, ...]) -> Literal:
    # [kind, value] or [kind, name, id(, x, y)] for references
    kind = raw[0] if raw and isinstance(raw[0], int) and not isinstance(raw[0], bool) else 0
    value = raw[1] if len(raw) > 1 else None
    return Literal(kind=kind, value=canonical_value(value))


def _canonical_mutation(mutation: Mapping[str, Any] | None) -> tuple[tuple[str, Any], ...]:
    if not mutation:
        return ()
    items = [
        (key, canonical_value(value))
        for key, value in mutation.items()
        if key not in _MUTATION_BOOKKEEPING
    ]
    return tuple(sorted(items, key=itemgetter(0)))


def canonical_value(value: Any, volatile_keys: frozenset[str] | None = None) -> Any:
    """Structural normal form of a JSON-like value.

    Mappings become key-sorted dicts without ``volatile_keys``; lists and
    tuples become lists; integral floats become ints (the document format
    does not distinguish ``1`` from ``1.0``). Everything else is unchanged.

    Args:
        value: Any JSON-compatible value.
        volatile_keys: Keys to drop from mappings. None keeps every key.

    Returns:
        Normalized copy of ``value``.

    """
    if isinstance(value, Mapping):
        return {
            key: canonical_value(value[key], volatile_keys)
            for key in sorted(value, key=str)
            if volatile_keys is None or key not in volatile_keys
        }
    if isinstance(value, list | tuple):
        return [canonical_value(item, volatile_keys) for item in value]
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return value


def canonical_entry(value: Any) -> Any:
    """Canonical form of a keyed-collection entry under the active config."""
    return canonical_value(value, get_diff_config().volatile_keys)


def canonical_json(value: Any) -> str:
    """Deterministic JSON text of an already canonical value."""
    return json.dumps(value, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def canonically_equal(a: Any, b: Any) -> bool:
    """Compare two collection entries by canonical content.

    Compares serialized forms so ``true`` and ``1`` stay distinct.
    """
    return canonical_json(canonical_entry(a)) == canonical_json(canonical_entry(b))


__all__ = [
    "canonical_entry",
    "canonical_json",
    "canonical_value",
    "canonically_equal",
    "canonicalize",
]
