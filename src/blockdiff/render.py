"""Flatten canonical scripts into id-free text lines.

One line per statement or condition block, indented with tabs by nesting
depth. Expression inputs are inlined into their owner's line, so a changed
reporter shows up as exactly one changed line at its owner's depth. An
``else`` marker line precedes the alternate branch of an if/else.

Example:
    >>> for line in render_lines(script.root):
    ...     print(line)
    event_whenflagclicked
    control_if
    \tsensing_keypressed KEY_OPTION=(sensing_keyoptions KEY_OPTION="space")
    \tmotion_movesteps STEPS=10

Lines carry the path of the block they render (``"1/SUBSTACK/0"``) so the
block-level matcher and the differ can point at individual statements.

Thread Safety:
    All functions are pure. Safe to call from any thread.

"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from blockdiff.canonical import canonical_json
from blockdiff.nodes import Block, Literal, Script

ALTERNATE_SLOT = "SUBSTACK2"

# Reference literal kinds get a prefix so a variable never reads like text
_REFERENCE_PREFIX = {11: "broadcast:", 12: "var:", 13: "list:"}


@dataclass(frozen=True, slots=True)
class ScriptLine:
    """One rendered line.

    Attributes:
        depth: Nesting depth (0 for the top-level chain)
        text: Canonical text without indentation
        path: Slash-separated position of the block in the script
        block: The rendered block; None for ``else`` markers

    """

    depth: int
    text: str
    path: str
    block: Block | None = None

    def __str__(self) -> str:
        return "\t" * self.depth + self.text


def flatten(root: Block) -> list[ScriptLine]:
    """Flatten a script into rendered lines, in pre-order."""
    lines: list[ScriptLine] = []
    _walk(root, 0, "", lines)
    return lines


def _walk(node: Block, depth: int, prefix: str, out: list[ScriptLine]) -> None:
    for index, block in enumerate(node.chain()):
        path = f"{prefix}{index}"
        out.append(ScriptLine(depth=depth, text=block_text(block), path=path, block=block))
        for slot, child in block.children:
            if slot == ALTERNATE_SLOT:
                out.append(ScriptLine(depth=depth, text="else", path=f"{path}/{slot}"))
            _walk(child, depth + 1, f"{path}/{slot}/", out)


def render_lines(node: Block | Script) -> list[str]:
    """Render a script (or any block chain) as indented text lines."""
    root = node.root if isinstance(node, Script) else node
    return [str(line) for line in flatten(root)]


def render_text(node: Block | Script) -> str:
    """Render a script as a single newline-joined string."""
    return "\n".join(render_lines(node))


def block_text(block: Block) -> str:
    """Canonical one-line text of a block: opcode, fields, inputs, mutation."""
    parts = [block.opcode]
    parts.extend(f"{name}={_scalar(value)}" for name, value in block.fields)
    parts.extend(f"{name}={_input_text(value)}" for name, value in block.inputs)
    if block.mutation:
        parts.append(canonical_json(dict(block.mutation)))
    return " ".join(parts)


def _input_text(value: Literal | Block | None) -> str:
    if value is None:
        return "_"
    if isinstance(value, Literal):
        return _REFERENCE_PREFIX.get(value.kind, "") + _scalar(value.value)
    return "(" + "; ".join(block_text(item) for item in value.chain()) + ")"


def _scalar(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True)


__all__ = [
    "ALTERNATE_SLOT",
    "ScriptLine",
    "block_text",
    "flatten",
    "render_lines",
    "render_text",
]
