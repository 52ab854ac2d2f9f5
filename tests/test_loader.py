"""Tests for blockdiff.loader: rebuilding scripts from the flat block graph."""

import pytest
from builders import (
    BlockMap,
    blocks_of,
    flag,
    forever,
    if_else,
    key_pressed,
    move,
    project,
    say,
    target,
    wait,
)

from blockdiff.config import DiffConfig, diff_config_context
from blockdiff.errors import StructuralError
from blockdiff.loader import build_tree, is_script_root, load_project, load_target


def _script_blocks(*stmts):  # type: ignore[no-untyped-def]
    builder = BlockMap()
    top = builder.script(*stmts)
    return builder.blocks, top


class TestBuildTree:
    """Chains, structural children and expression inputs."""

    def test_next_chain(self) -> None:
        blocks, top = _script_blocks(flag(), move(10), wait(1))
        tree, issues = build_tree(blocks, top)
        assert issues == []
        assert tree is not None
        opcodes = []
        node = tree
        while node is not None:
            opcodes.append(node.opcode)
            node = node.next
        assert opcodes == ["event_whenflagclicked", "motion_movesteps", "control_wait"]

    def test_structural_children_in_slot_order(self) -> None:
        blocks, top = _script_blocks(flag(), if_else(key_pressed("space"), [move(1)], [move(2)]))
        tree, _ = build_tree(blocks, top)
        assert tree is not None and tree.next is not None
        branch = tree.next
        assert [slot for slot, _ in branch.children] == ["CONDITION", "SUBSTACK", "SUBSTACK2"]
        assert "CONDITION" not in branch.inputs
        assert "SUBSTACK" not in branch.inputs

    def test_expression_input_becomes_subtree(self) -> None:
        blocks, top = _script_blocks(key_pressed("space"))
        tree, _ = build_tree(blocks, top)
        assert tree is not None
        menu = tree.inputs["KEY_OPTION"]
        assert menu.opcode == "sensing_keyoptions"
        assert menu.shadow is True

    def test_literal_input_kept_raw(self) -> None:
        blocks, top = _script_blocks(say("hi"))
        tree, _ = build_tree(blocks, top)
        assert tree is not None
        assert tree.inputs["MESSAGE"] == [10, "hi"]

    def test_missing_root_returns_none(self) -> None:
        tree, issues = build_tree({}, "nope")
        assert tree is None
        assert len(issues) == 1
        assert issues[0].kind == "missing"

    def test_long_chain_does_not_recurse(self) -> None:
        blocks, top = _script_blocks(flag(), *[move(i) for i in range(3000)])
        tree, issues = build_tree(blocks, top)
        assert issues == []
        count = 0
        node = tree
        while node is not None:
            count += 1
            node = node.next
        assert count == 3001


class TestMalformedGraphs:
    """Cycles and dangling references truncate locally."""

    def test_next_cycle_truncates(self) -> None:
        blocks, top = _script_blocks(flag(), move(1), move(2))
        last = [bid for bid, rec in blocks.items() if rec["next"] is None and rec["opcode"] == "motion_movesteps"]
        blocks[last[0]]["next"] = top
        tree, issues = build_tree(blocks, top, "Sprite1")
        assert tree is not None
        assert [issue.kind for issue in issues] == ["cycle"]
        assert issues[0].block_id == top
        assert issues[0].slot == "next"
        assert issues[0].target_name == "Sprite1"

    def test_self_loop_in_substack(self) -> None:
        blocks, top = _script_blocks(forever(move(1)))
        blocks[top]["inputs"]["SUBSTACK"] = [2, top]
        tree, issues = build_tree(blocks, top)
        assert tree is not None
        assert tree.children == ()
        assert issues[0].kind == "cycle"
        assert issues[0].slot == "SUBSTACK"

    def test_dangling_next(self) -> None:
        blocks, top = _script_blocks(flag(), move(1))
        blocks[top]["next"] = "ghost"
        tree, issues = build_tree(blocks, top)
        assert tree is not None
        assert tree.next is None
        assert issues[0].kind == "missing"
        assert issues[0].block_id == "ghost"
        assert issues[0].referrer_id == top

    def test_dangling_expression_input(self) -> None:
        blocks, top = _script_blocks(say("hi"))
        blocks[top]["inputs"]["MESSAGE"] = [3, "ghost", [10, "hi"]]
        tree, issues = build_tree(blocks, top)
        assert tree is not None
        assert tree.inputs["MESSAGE"] is None
        assert issues[0].slot == "MESSAGE"

    def test_strict_structure_raises(self) -> None:
        blocks, top = _script_blocks(flag(), move(1))
        blocks[top]["next"] = top
        with diff_config_context(DiffConfig(strict_structure=True)):
            with pytest.raises(StructuralError) as exc_info:
                build_tree(blocks, top, "Sprite1")
        assert exc_info.value.target_name == "Sprite1"
        assert exc_info.value.block_id == top

    def test_issue_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        blocks, top = _script_blocks(flag())
        blocks[top]["next"] = "ghost"
        with caplog.at_level("WARNING", logger="blockdiff"):
            build_tree(blocks, top, "Sprite1")
        assert "ghost" in caplog.text

    def test_describe(self) -> None:
        blocks, top = _script_blocks(flag())
        blocks[top]["next"] = "ghost"
        _, issues = build_tree(blocks, top, "Sprite1")
        text = issues[0].describe()
        assert "missing" in text
        assert "'ghost'" in text


class TestScriptRoots:
    def test_top_level_statement(self) -> None:
        assert is_script_root({"opcode": "event_whenflagclicked", "topLevel": True, "shadow": False})

    def test_nested_block(self) -> None:
        assert not is_script_root({"opcode": "motion_movesteps", "topLevel": False})

    def test_top_level_shadow(self) -> None:
        assert not is_script_root({"opcode": "math_number", "topLevel": True, "shadow": True})

    def test_non_mapping(self) -> None:
        # Top-level variable reporters are stored as bare arrays
        assert not is_script_root([12, "score", "id", 10, 20])


class TestLoadTarget:
    def test_scripts_sorted_by_fingerprint(self) -> None:
        raw = target("Sprite1", blocks_of([flag(), move(1)], [flag(), move(2)], [say("x")]))
        loaded = load_target(raw)
        keys = [(script.fingerprint, script.top_id) for script in loaded.scripts]
        assert keys == sorted(keys)
        assert len(loaded.scripts) == 3

    def test_collections_kept_native(self) -> None:
        raw = target("Sprite1", variables={"v1": ["score", 0]}, lists={"l1": ["items", [1, 2]]})
        loaded = load_target(raw)
        assert loaded.variables == {"v1": ["score", 0]}
        assert loaded.lists == {"l1": ["items", [1, 2]]}

    def test_bare_array_top_level_ignored(self) -> None:
        blocks = blocks_of([flag()])
        blocks["loose"] = [12, "score", "v1", 10, 10]
        loaded = load_target(target("Sprite1", blocks))
        assert len(loaded.scripts) == 1

    def test_stage_flag(self) -> None:
        assert load_target(target("Stage", is_stage=True)).is_stage is True


class TestLoadProject:
    def test_targets_in_document_order(self) -> None:
        raw = project(target("Stage", is_stage=True), target("Cat"), target("Dog"))
        loaded = load_project(raw)
        assert [t.name for t in loaded.targets] == ["Stage", "Cat", "Dog"]
        assert loaded.target("Dog") is loaded.targets[2]
        assert loaded.target("Bird") is None

    def test_missing_targets_raises(self) -> None:
        with pytest.raises(ValueError, match="targets"):
            load_project({"meta": {}})

    def test_issues_aggregated(self) -> None:
        blocks = blocks_of([flag(), move(1)])
        top = next(bid for bid, rec in blocks.items() if rec["topLevel"])
        blocks[top]["next"] = "ghost"
        loaded = load_project(project(target("Sprite1", blocks)))
        assert len(loaded.issues) == 1
        assert loaded.script_count == 1
