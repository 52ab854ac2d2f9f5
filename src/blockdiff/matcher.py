"""Pair scripts (and statements inside scripts) across two snapshots.

Scripts, per target:

1. Exact phase: equal fingerprints pair up. Duplicates pair in sorted order,
   so the matching stays bijective on the matched subset.
2. Fallback phase: remaining old scripts, in fingerprint order, each take the
   *first* remaining new script whose :func:`similarity` strictly exceeds
   the configured threshold. Accepted candidates leave the pool at once.
3. Whatever is left is a deletion (old side) or an addition (new side).

The fallback is greedy first-fit, not a maximum-weight bipartite matching:
an early old script can claim a candidate that a later old script would have
matched better, giving a lower total similarity than the optimum. An optimal
assignment (Hungarian algorithm over the similarity matrix) is a possible
upgrade; until then results are deterministic but not globally optimal.

Statements inside a pair of scripts go through the same two phases, with
shallow fingerprints for the exact phase and equal opcodes for the fallback.

Thread Safety:
    All functions are pure. Safe to call from any thread.

"""

from __future__ import annotations

from collections import defaultdict, deque
from collections.abc import Sequence
from dataclasses import dataclass

from blockdiff.config import get_diff_config
from blockdiff.fingerprint import shallow_fingerprint
from blockdiff.nodes import Block, Script
from blockdiff.render import ScriptLine, flatten, render_lines
from blockdiff.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ScriptMatchResult:
    """Partition of old and new scripts.

    Attributes:
        matched: ``(old, new)`` pairs, exact matches first
        deleted: Old scripts without a partner
        added: New scripts without a partner

    """

    matched: tuple[tuple[Script, Script], ...]
    deleted: tuple[Script, ...]
    added: tuple[Script, ...]

    @property
    def changed(self) -> tuple[tuple[Script, Script], ...]:
        """Matched pairs whose fingerprints differ."""
        return tuple(pair for pair in self.matched if pair[0].fingerprint != pair[1].fingerprint)


@dataclass(frozen=True, slots=True)
class BlockMatchResult:
    """Partition of the statements of two matched scripts.

    Attributes:
        matched: Pairs with equal shallow fingerprints (unchanged statements)
        edited: Pairs with equal opcodes but different content
        deleted: Old statements without a partner
        added: New statements without a partner

    """

    matched: tuple[tuple[ScriptLine, ScriptLine], ...]
    edited: tuple[tuple[ScriptLine, ScriptLine], ...]
    deleted: tuple[ScriptLine, ...]
    added: tuple[ScriptLine, ...]


def similarity(old_lines: Sequence[str], new_lines: Sequence[str], prefix_weight: float | None = None) -> float:
    """Score two rendered scripts in ``[0, 1]``.

    ``prefix_weight * common_prefix / longest + (1 - prefix_weight) *
    shortest / longest``, where lengths count lines.

    Args:
        old_lines: Rendered lines of the old script.
        new_lines: Rendered lines of the new script.
        prefix_weight: Overrides the configured weight.

    """
    if prefix_weight is None:
        prefix_weight = get_diff_config().prefix_weight
    longest = max(len(old_lines), len(new_lines))
    if longest == 0:
        return 1.0
    prefix = 0
    for old_line, new_line in zip(old_lines, new_lines):
        if old_line != new_line:
            break
        prefix += 1
    shortest = min(len(old_lines), len(new_lines))
    return prefix_weight * prefix / longest + (1 - prefix_weight) * shortest / longest


def _order(script: Script) -> tuple[str, str]:
    return (script.fingerprint, script.top_id)


def match_scripts(old: Sequence[Script], new: Sequence[Script]) -> ScriptMatchResult:
    """Match the scripts of one target.

    Args:
        old: Scripts of the target in the old snapshot.
        new: Scripts of the target in the new snapshot.

    Returns:
        ScriptMatchResult partitioning both sides.

    """
    threshold = get_diff_config().similarity_threshold
    old_sorted = sorted(old, key=_order)
    new_sorted = sorted(new, key=_order)

    # Phase 1: exact fingerprints
    buckets: dict[str, deque[Script]] = defaultdict(deque)
    for script in new_sorted:
        buckets[script.fingerprint].append(script)

    matched: list[tuple[Script, Script]] = []
    leftover_old: list[Script] = []
    claimed: set[int] = set()
    for script in old_sorted:
        bucket = buckets.get(script.fingerprint)
        if bucket:
            partner = bucket.popleft()
            claimed.add(id(partner))
            matched.append((script, partner))
        else:
            leftover_old.append(script)
    pool = [script for script in new_sorted if id(script) not in claimed]

    # Phase 2: greedy first-fit over the leftovers
    lines = {id(script): render_lines(script.root) for script in (*leftover_old, *pool)}
    deleted: list[Script] = []
    for script in leftover_old:
        for index, candidate in enumerate(pool):
            score = similarity(lines[id(script)], lines[id(candidate)])
            if score > threshold:
                logger.debug(
                    "Fallback match %s -> %s (score %.3f)", script.top_id, candidate.top_id, score
                )
                matched.append((script, candidate))
                del pool[index]
                break
        else:
            deleted.append(script)

    return ScriptMatchResult(matched=tuple(matched), deleted=tuple(deleted), added=tuple(pool))


def match_blocks(old_root: Block, new_root: Block) -> BlockMatchResult:
    """Match the statements of two versions of one script.

    Statements and conditions are flattened in pre-order (``else`` markers
    are skipped), then paired by shallow fingerprint and, failing that, by
    opcode, first-fit in order.

    """
    old_lines = [line for line in flatten(old_root) if line.block is not None]
    new_lines = [line for line in flatten(new_root) if line.block is not None]

    queues: dict[str, deque[int]] = defaultdict(deque)
    for index, line in enumerate(new_lines):
        queues[shallow_fingerprint(line.block)].append(index)  # type: ignore[arg-type]

    matched: list[tuple[ScriptLine, ScriptLine]] = []
    leftover_old: list[ScriptLine] = []
    claimed: set[int] = set()
    for line in old_lines:
        queue = queues.get(shallow_fingerprint(line.block))  # type: ignore[arg-type]
        if queue:
            index = queue.popleft()
            claimed.add(index)
            matched.append((line, new_lines[index]))
        else:
            leftover_old.append(line)
    pool = [line for index, line in enumerate(new_lines) if index not in claimed]

    edited: list[tuple[ScriptLine, ScriptLine]] = []
    deleted: list[ScriptLine] = []
    for line in leftover_old:
        for index, candidate in enumerate(pool):
            if candidate.block.opcode == line.block.opcode:  # type: ignore[union-attr]
                edited.append((line, candidate))
                del pool[index]
                break
        else:
            deleted.append(line)

    return BlockMatchResult(
        matched=tuple(matched),
        edited=tuple(edited),
        deleted=tuple(deleted),
        added=tuple(pool),
    )


__all__ = [
    "BlockMatchResult",
    "ScriptMatchResult",
    "match_blocks",
    "match_scripts",
    "similarity",
]
