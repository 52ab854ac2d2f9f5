"""DiffAccumulator: opt-in profiling for project comparisons.

Accumulates, across every :func:`~blockdiff.compare_projects` call made inside
a :func:`profiled_compare` block:
- Targets and scripts loaded on both sides
- Diff items produced
- Structural issues recorded by the loader
- Time spent comparing

Zero overhead when disabled (get_diff_accumulator() returns None).

Example:
    from blockdiff import compare_projects
    from blockdiff.profiling import profiled_compare

    with profiled_compare() as metrics:
        diff = compare_projects(old, new)

    print(metrics.summary())
    # {"total_ms": 3.1, "comparisons": 1, "targets": 4, "scripts": 12, ...}

"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from time import perf_counter
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from blockdiff.loader import LoadedProject
    from blockdiff.model import Diff


@dataclass
class DiffAccumulator:
    """Accumulated metrics during comparisons.

    Attributes:
        start_time: Profiling start timestamp.
        comparisons: Number of compare calls recorded.
        targets: Targets loaded, both sides.
        scripts: Scripts loaded, both sides.
        items: Diff items produced.
        structural_issues: Cycles and missing references recorded while loading.
        compare_ms: Time spent inside compare calls.

    """

    start_time: float = field(default_factory=perf_counter)
    comparisons: int = 0
    targets: int = 0
    scripts: int = 0
    items: int = 0
    structural_issues: int = 0
    compare_ms: float = 0.0

    def record_comparison(
        self,
        old: LoadedProject,
        new: LoadedProject,
        diff: Diff,
        elapsed_ms: float = 0.0,
    ) -> None:
        """Record one comparison."""
        self.comparisons += 1
        self.targets += len(old.targets) + len(new.targets)
        self.scripts += old.script_count + new.script_count
        self.items += len(diff)
        self.structural_issues += len(old.issues) + len(new.issues)
        self.compare_ms += elapsed_ms

    @property
    def total_duration_ms(self) -> float:
        """Total profiling duration in milliseconds."""
        return (perf_counter() - self.start_time) * 1000

    def summary(self) -> dict[str, Any]:
        """Get summary of comparison metrics."""
        return {
            "total_ms": round(self.total_duration_ms, 2),
            "compare_ms": round(self.compare_ms, 2),
            "comparisons": self.comparisons,
            "targets": self.targets,
            "scripts": self.scripts,
            "items": self.items,
            "structural_issues": self.structural_issues,
        }


_accumulator: ContextVar[DiffAccumulator | None] = ContextVar(
    "diff_accumulator",
    default=None,
)


def get_diff_accumulator() -> DiffAccumulator | None:
    """Get current accumulator (None if profiling disabled)."""
    return _accumulator.get()


@contextmanager
def profiled_compare() -> Iterator[DiffAccumulator]:
    """Context manager for profiled comparisons.

    Yields:
        DiffAccumulator populated by compare calls in the block.

    """
    acc = DiffAccumulator()
    token: Token[DiffAccumulator | None] = _accumulator.set(acc)
    try:
        yield acc
    finally:
        _accumulator.reset(token)


__all__ = ["DiffAccumulator", "get_diff_accumulator", "profiled_compare"]
