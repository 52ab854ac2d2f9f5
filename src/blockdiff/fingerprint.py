"""Id-independent content fingerprints for canonical block trees.

    fingerprint(node) = H(opcode, sorted fields, inputs, mutation,
                          [fingerprint(child) for child in children],
                          fingerprint(next) or sentinel)

``H`` is a cryptographic hash (sha256 by default) over deterministic JSON
with sorted keys, truncated to ``fingerprint_length`` hex characters. Since
canonical blocks carry no ids, two trees built from unrelated id namespaces
hash identically, while any change of opcode, field value, input, mutation
or nesting changes the fingerprint.

Fingerprints are memoized per call, and the ``next`` chain is processed
tail-first so a thousand-statement script costs no recursion depth.

Thread Safety:
    All functions are pure. Safe to call from any thread.

"""

from __future__ import annotations

from typing import Any

from blockdiff.canonical import canonical_json
from blockdiff.config import DiffConfig, get_diff_config
from blockdiff.nodes import Block, Literal
from blockdiff.utils.hashing import hash_str

# Stands in for an absent ``next``; never a valid hex digest
NEXT_SENTINEL = "end"


class _Fingerprinter:
    __slots__ = ("_algorithm", "_length", "_memo")

    def __init__(self, config: DiffConfig) -> None:
        self._algorithm = config.hash_algorithm
        self._length = config.fingerprint_length
        # id(node) -> digest; nodes outlive the call, so ids stay unique
        self._memo: dict[int, str] = {}

    def chain(self, node: Block) -> str:
        pending: list[Block] = []
        current: Block | None = node
        while current is not None and id(current) not in self._memo:
            pending.append(current)
            current = current.next

        for item in reversed(pending):
            next_digest = self._memo[id(item.next)] if item.next is not None else NEXT_SENTINEL
            payload = self._content(item)
            payload["children"] = [[slot, self.chain(child)] for slot, child in item.children]
            payload["next"] = next_digest
            self._memo[id(item)] = self._hash(payload)
        return self._memo[id(node)]

    def shallow(self, node: Block) -> str:
        return self._hash(self._content(node))

    def _content(self, node: Block) -> dict[str, Any]:
        return {
            "opcode": node.opcode,
            "fields": [[name, value] for name, value in node.fields],
            "inputs": [[name, self._input(value)] for name, value in node.inputs],
            "mutation": [[key, value] for key, value in node.mutation],
        }

    def _input(self, value: Literal | Block | None) -> Any:
        if isinstance(value, Block):
            return {"block": self.chain(value)}
        if isinstance(value, Literal):
            return {"kind": value.kind, "value": value.value}
        return None

    def _hash(self, payload: dict[str, Any]) -> str:
        return hash_str(canonical_json(payload), truncate=self._length, algorithm=self._algorithm)


def fingerprint(node: Block) -> str:
    """Fingerprint a block together with its children and ``next`` chain.

    Args:
        node: Canonical block (usually a script root).

    Returns:
        Hex digest, ``fingerprint_length`` characters long.

    """
    return _Fingerprinter(get_diff_config()).chain(node)


def fingerprint_script(root: Block) -> str:
    """Fingerprint of a script; identical to the fingerprint of its root."""
    return fingerprint(root)


def shallow_fingerprint(node: Block) -> str:
    """Fingerprint a block's own content, ignoring children and ``next``.

    Expression inputs are still included: they are part of the statement.
    Used to pair statements inside two versions of one script.

    """
    return _Fingerprinter(get_diff_config()).shallow(node)


__all__ = [
    "NEXT_SENTINEL",
    "fingerprint",
    "fingerprint_script",
    "shallow_fingerprint",
]
