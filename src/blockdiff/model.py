"""Typed diff model: the durable output of a comparison.

A :class:`Diff` is an ordered tuple of :class:`DiffItem` values plus a count
summary. Each item is one typed unit of change::

    {type, location: {targetName}, old?, new?, fingerprint?,
     diff?: {added, removed, text}}

The ``type`` enumeration is a wire contract shared with the reconstructor and
any external renderer. Values are never renamed or removed.

Thread Safety:
    All types are frozen. Safe to share across threads.

"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

CATEGORIES: tuple[str, ...] = ("script", "block", "variable", "list", "costume", "sound")
OPERATIONS: tuple[str, ...] = ("add", "delete", "edit")

#: Categories stored as ``id -> [name, value, ...]`` maps, keyed by name
KEYED_CATEGORIES: frozenset[str] = frozenset({"variable", "list"})
#: Categories stored as lists of asset records, keyed by asset identity
ASSET_CATEGORIES: frozenset[str] = frozenset({"costume", "sound"})
#: Categories the reconstructor replays
REPLAYABLE_CATEGORIES: frozenset[str] = KEYED_CATEGORIES | ASSET_CATEGORIES

#: Category -> native collection name on a target
COLLECTION_NAMES: dict[str, str] = {
    "variable": "variables",
    "list": "lists",
    "costume": "costumes",
    "sound": "sounds",
}


class DiffType(Enum):
    """Wire enumeration of diff item types."""

    SCRIPT_ADD = "script-add"
    SCRIPT_DELETE = "script-delete"
    SCRIPT_EDIT = "script-edit"
    BLOCK_ADD = "block-add"
    BLOCK_DELETE = "block-delete"
    BLOCK_EDIT = "block-edit"
    VARIABLE_ADD = "variable-add"
    VARIABLE_DELETE = "variable-delete"
    VARIABLE_EDIT = "variable-edit"
    LIST_ADD = "list-add"
    LIST_DELETE = "list-delete"
    LIST_EDIT = "list-edit"
    COSTUME_ADD = "costume-add"
    COSTUME_DELETE = "costume-delete"
    COSTUME_EDIT = "costume-edit"
    SOUND_ADD = "sound-add"
    SOUND_DELETE = "sound-delete"
    SOUND_EDIT = "sound-edit"

    @property
    def category(self) -> str:
        return self.value.partition("-")[0]

    @property
    def operation(self) -> str:
        return self.value.partition("-")[2]

    @classmethod
    def of(cls, category: str, operation: str) -> DiffType:
        """Look up the member for a category and operation."""
        return cls(f"{category}-{operation}")


@dataclass(frozen=True, slots=True)
class DiffLocation:
    """Where an item applies.

    Attributes:
        target_name: Owning target
        block_path: Statement path inside the script (block items only)
        old_id: Native map id on the old side (variable/list items only)
        new_id: Native map id on the new side (variable/list items only)
        old_index: List position on the old side (costume/sound items only)
        new_index: List position on the new side (costume/sound items only)

    """

    target_name: str
    block_path: str | None = None
    old_id: str | None = None
    new_id: str | None = None
    old_index: int | None = None
    new_index: int | None = None


@dataclass(frozen=True, slots=True)
class LineDiffSummary:
    """Line-diff counts and rendering embedded in script/block edits."""

    added: int
    removed: int
    text: str


@dataclass(frozen=True, slots=True)
class DiffItem:
    """One typed unit of change.

    ``old``/``new`` mirror the native entry shape of their collection;
    ``fingerprint`` is the script fingerprint for script/block items and the
    collection key (entry name or asset identity) for keyed items.

    """

    type: DiffType
    location: DiffLocation
    old: Any = None
    new: Any = None
    fingerprint: str | None = None
    diff: LineDiffSummary | None = None

    @property
    def category(self) -> str:
        return self.type.category

    @property
    def operation(self) -> str:
        return self.type.operation

    @property
    def target_name(self) -> str:
        return self.location.target_name


@dataclass(frozen=True, slots=True)
class DiffSummary:
    """Item counts per category and operation."""

    counts: dict[str, dict[str, int]] = field(default_factory=dict)

    @classmethod
    def from_items(cls, items: Iterable[DiffItem]) -> DiffSummary:
        counts = {category: dict.fromkeys(OPERATIONS, 0) for category in CATEGORIES}
        for item in items:
            counts[item.category][item.operation] += 1
        return cls(counts=counts)

    def count(self, category: str, operation: str | None = None) -> int:
        """Count items of a category, optionally of one operation."""
        by_op = self.counts.get(category, {})
        if operation is None:
            return sum(by_op.values())
        return by_op.get(operation, 0)

    @property
    def total(self) -> int:
        return sum(sum(by_op.values()) for by_op in self.counts.values())

    def as_dict(self) -> dict[str, dict[str, int]]:
        return {category: dict(by_op) for category, by_op in self.counts.items()}


@dataclass(frozen=True, slots=True)
class Diff:
    """Ordered diff items plus their summary."""

    items: tuple[DiffItem, ...]
    summary: DiffSummary

    @classmethod
    def from_items(cls, items: Iterable[DiffItem]) -> Diff:
        items = tuple(items)
        return cls(items=items, summary=DiffSummary.from_items(items))

    def __iter__(self) -> Iterator[DiffItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def of_type(self, *types: DiffType) -> list[DiffItem]:
        """Items whose type is one of ``types``."""
        return [item for item in self.items if item.type in types]

    def by_target(self) -> dict[str, list[DiffItem]]:
        """Items grouped by target name, in first-seen order."""
        grouped: dict[str, list[DiffItem]] = {}
        for item in self.items:
            grouped.setdefault(item.target_name, []).append(item)
        return grouped


__all__ = [
    "ASSET_CATEGORIES",
    "CATEGORIES",
    "COLLECTION_NAMES",
    "Diff",
    "DiffItem",
    "DiffLocation",
    "DiffSummary",
    "DiffType",
    "KEYED_CATEGORIES",
    "LineDiffSummary",
    "OPERATIONS",
    "REPLAYABLE_CATEGORIES",
]
