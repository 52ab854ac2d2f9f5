"""Tests for blockdiff.model: the typed diff model."""

import pytest

from blockdiff.model import (
    CATEGORIES,
    OPERATIONS,
    REPLAYABLE_CATEGORIES,
    Diff,
    DiffItem,
    DiffLocation,
    DiffSummary,
    DiffType,
)


class TestDiffType:
    def test_eighteen_wire_values(self) -> None:
        values = {member.value for member in DiffType}
        assert values == {f"{c}-{o}" for c in CATEGORIES for o in OPERATIONS}
        assert len(values) == 18

    def test_no_move_type(self) -> None:
        with pytest.raises(ValueError):
            DiffType("block-move")

    def test_category_and_operation(self) -> None:
        assert DiffType.COSTUME_EDIT.category == "costume"
        assert DiffType.COSTUME_EDIT.operation == "edit"

    def test_of(self) -> None:
        assert DiffType.of("list", "add") is DiffType.LIST_ADD

    def test_replayable(self) -> None:
        assert REPLAYABLE_CATEGORIES == {"variable", "list", "costume", "sound"}


class TestDiffSummary:
    def test_counts(self) -> None:
        items = [
            DiffItem(DiffType.SCRIPT_EDIT, DiffLocation("A")),
            DiffItem(DiffType.SCRIPT_ADD, DiffLocation("A")),
            DiffItem(DiffType.SCRIPT_ADD, DiffLocation("B")),
        ]
        summary = DiffSummary.from_items(items)
        assert summary.count("script") == 3
        assert summary.count("script", "add") == 2
        assert summary.count("sound") == 0
        assert summary.total == 3

    def test_as_dict_has_every_category(self) -> None:
        data = DiffSummary.from_items([]).as_dict()
        assert set(data) == set(CATEGORIES)
        assert all(set(by_op) == set(OPERATIONS) for by_op in data.values())


class TestDiff:
    def test_iteration_and_grouping(self) -> None:
        items = [
            DiffItem(DiffType.VARIABLE_ADD, DiffLocation("B")),
            DiffItem(DiffType.SOUND_ADD, DiffLocation("A")),
            DiffItem(DiffType.LIST_ADD, DiffLocation("B")),
        ]
        diff = Diff.from_items(items)
        assert list(diff) == items
        assert len(diff) == 3
        assert list(diff.by_target()) == ["B", "A"]
        assert diff.of_type(DiffType.SOUND_ADD, DiffType.LIST_ADD) == items[1:]

    def test_item_properties(self) -> None:
        item = DiffItem(DiffType.BLOCK_DELETE, DiffLocation("Cat", block_path="0"))
        assert (item.category, item.operation, item.target_name) == ("block", "delete", "Cat")
