"""Line diff: Myers' minimal edit script over line sequences.

Used only to render and count changes inside an edited script. It never
feeds back into matching decisions.

Algorithm:
    Greedy forward search over diagonals ``k = x - y``, keeping the furthest
    reaching x per diagonal for each edit distance ``d``. A snapshot of the
    frontier is kept per ``d`` and walked backwards to recover the path.
    O((N + M) * D) time, where D is the size of the minimal edit script.

Example:
    >>> result = diff_lines(["a", "b"], ["a", "b", "c"])
    >>> (result.added, result.removed, result.kept)
    (1, 0, 2)
    >>> print(format_unified(result))
    diff --git old new
    --- old
    +++ new
    @@ -2,1 +2,2 @@
     b
    +c

Thread Safety:
    All functions are pure. Safe to call from any thread.

"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

Op = Literal["keep", "add", "remove"]


@dataclass(frozen=True, slots=True)
class LineChange:
    """One operation of an edit script."""

    op: Op
    line: str


@dataclass(frozen=True, slots=True)
class LineDiffResult:
    """Edit script plus its counts.

    Invariants: ``added + kept == len(new)`` and ``removed + kept == len(old)``.

    """

    changes: tuple[LineChange, ...]
    added: int
    removed: int
    kept: int

    @property
    def changed(self) -> bool:
        return self.added > 0 or self.removed > 0


@dataclass(frozen=True, slots=True)
class Hunk:
    """A run of changes with its (1-indexed) start line on each side."""

    old_start: int
    old_count: int
    new_start: int
    new_count: int
    changes: tuple[LineChange, ...]

    def header(self) -> str:
        return f"@@ -{self.old_start},{self.old_count} +{self.new_start},{self.new_count} @@"


def myers_diff(a: Sequence[str], b: Sequence[str]) -> list[LineChange]:
    """Compute a minimal keep/add/remove script turning ``a`` into ``b``.

    Args:
        a: Old lines.
        b: New lines.

    Returns:
        Edit script in order; removals precede additions within a change.

    """
    n, m = len(a), len(b)
    frontier: dict[int, int] = {1: 0}
    trace: list[dict[int, int]] = []

    for d in range(n + m + 1):
        trace.append(dict(frontier))
        for k in range(-d, d + 1, 2):
            if k == -d or (k != d and frontier[k - 1] < frontier[k + 1]):
                x = frontier[k + 1]
            else:
                x = frontier[k - 1] + 1
            y = x - k
            while x < n and y < m and a[x] == b[y]:
                x += 1
                y += 1
            frontier[k] = x
            if x >= n and y >= m:
                return _backtrack(a, b, trace)

    # Unreachable: d = n + m always reaches the end
    return []


def _backtrack(a: Sequence[str], b: Sequence[str], trace: list[dict[int, int]]) -> list[LineChange]:
    x, y = len(a), len(b)
    script: list[LineChange] = []

    for d in range(len(trace) - 1, -1, -1):
        frontier = trace[d]
        k = x - y
        if k == -d or (k != d and frontier[k - 1] < frontier[k + 1]):
            prev_k = k + 1
        else:
            prev_k = k - 1
        prev_x = frontier[prev_k]
        prev_y = prev_x - prev_k

        while x > prev_x and y > prev_y:
            x -= 1
            y -= 1
            script.append(LineChange("keep", a[x]))

        if d > 0:
            if x == prev_x:
                script.append(LineChange("add", b[prev_y]))
            else:
                script.append(LineChange("remove", a[prev_x]))
        x, y = prev_x, prev_y

    script.reverse()
    return script


def diff_lines(old: Sequence[str], new: Sequence[str]) -> LineDiffResult:
    """Diff two line sequences and count the operations."""
    changes = tuple(myers_diff(old, new))
    added = sum(1 for change in changes if change.op == "add")
    removed = sum(1 for change in changes if change.op == "remove")
    return LineDiffResult(
        changes=changes,
        added=added,
        removed=removed,
        kept=len(changes) - added - removed,
    )


def diff_text(old: str, new: str) -> LineDiffResult:
    """Diff two newline-separated texts."""
    return diff_lines(old.split("\n"), new.split("\n"))


def group_hunks(changes: Sequence[LineChange]) -> list[Hunk]:
    """Group an edit script into hunks for display.

    Operations accumulate into a run; the run is flushed as a hunk once a
    ``keep`` follows at least one change. A hunk keeps at most one leading
    context line; runs of unchanged lines in between are skipped but still
    advance the line counters.

    """
    hunks: list[Hunk] = []
    old_line = new_line = 1
    run: list[LineChange] = []

    def flush() -> None:
        nonlocal old_line, new_line, run
        old_count = sum(1 for change in run if change.op != "add")
        new_count = sum(1 for change in run if change.op != "remove")
        hunks.append(Hunk(old_line, old_count, new_line, new_count, tuple(run)))
        old_line += old_count
        new_line += new_count
        run = []

    for change in changes:
        if change.op == "keep" and all(item.op == "keep" for item in run):
            # Drop the stale context line, keep this one as leading context
            old_line += len(run)
            new_line += len(run)
            run = [change]
            continue
        run.append(change)
        if change.op == "keep":
            flush()

    if any(item.op != "keep" for item in run):
        flush()
    return hunks


def format_unified(result: LineDiffResult, old_name: str = "old", new_name: str = "new") -> str:
    """Render a diff result as git-style unified text (no colors)."""
    lines = [f"diff --git {old_name} {new_name}", f"--- {old_name}", f"+++ {new_name}"]
    prefixes = {"keep": " ", "add": "+", "remove": "-"}
    for hunk in group_hunks(result.changes):
        lines.append(hunk.header())
        lines.extend(prefixes[change.op] + change.line for change in hunk.changes)
    return "\n".join(lines)


__all__ = [
    "Hunk",
    "LineChange",
    "LineDiffResult",
    "diff_lines",
    "diff_text",
    "format_unified",
    "group_hunks",
    "myers_diff",
]
