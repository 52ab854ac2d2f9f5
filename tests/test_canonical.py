"""Tests for blockdiff.canonical: id-free normal form."""

from builders import BlockMap, flag, if_, key_pressed, move, say, var_ref, Stmt

from blockdiff.canonical import (
    canonical_json,
    canonical_value,
    canonically_equal,
    canonicalize,
)
from blockdiff.config import DiffConfig, diff_config_context
from blockdiff.loader import build_tree
from blockdiff.nodes import Block, Literal


def _canonical(*stmts: Stmt, prefix: str = "b", x: int = 0) -> Block:
    builder = BlockMap(prefix)
    top = builder.script(*stmts, x=x)
    tree, _ = build_tree(builder.blocks, top)
    assert tree is not None
    return canonicalize(tree)


class TestCanonicalize:
    def test_ids_and_positions_dropped(self) -> None:
        a = _canonical(flag(), move(10), prefix="a", x=0)
        b = _canonical(flag(), move(10), prefix="zz", x=500)
        assert a == b

    def test_literal_input(self) -> None:
        root = _canonical(move(10))
        assert root.inputs == (("STEPS", Literal(kind=4, value="10")),)

    def test_variable_reference_keeps_name_only(self) -> None:
        stmt = Stmt("looks_say", inputs={"MESSAGE": var_ref("score", "id-1")})
        other = Stmt("looks_say", inputs={"MESSAGE": var_ref("score", "id-2")})
        assert _canonical(stmt) == _canonical(other)
        assert _canonical(stmt).inputs[0][1] == Literal(kind=12, value="score")

    def test_field_id_dropped(self) -> None:
        a = Stmt("data_setvariableto", fields={"VARIABLE": "score"})
        builder = BlockMap()
        top = builder.script(a)
        builder.blocks[top]["fields"]["VARIABLE"] = ["score", "some-id"]
        tree, _ = build_tree(builder.blocks, top)
        assert tree is not None
        assert canonicalize(tree).fields == (("VARIABLE", "score"),)

    def test_expression_becomes_block(self) -> None:
        root = _canonical(key_pressed("space"))
        name, menu = root.inputs[0]
        assert name == "KEY_OPTION"
        assert isinstance(menu, Block)
        assert menu.fields == (("KEY_OPTION", "space"),)

    def test_inputs_sorted_by_name(self) -> None:
        stmt = Stmt("motion_gotoxy", inputs={"Y": [1, [4, "2"]], "X": [1, [4, "1"]]})
        assert [name for name, _ in _canonical(stmt).inputs] == ["X", "Y"]

    def test_children_preserved(self) -> None:
        root = _canonical(if_(key_pressed("up"), move(1), say("hi")))
        body = root.child("SUBSTACK")
        assert body is not None
        assert [block.opcode for block in body.chain()] == ["motion_movesteps", "looks_say"]
        assert root.child("SUBSTACK2") is None

    def test_mutation_bookkeeping_dropped(self) -> None:
        stmt = Stmt(
            "procedures_call",
            mutation={"tagName": "mutation", "children": [], "proccode": "jump %s", "warp": "false"},
        )
        root = _canonical(stmt)
        assert dict(root.mutation) == {"proccode": "jump %s", "warp": "false"}

    def test_long_chain(self) -> None:
        root = _canonical(flag(), *[move(i) for i in range(2000)])
        assert sum(1 for _ in root.chain()) == 2001

    def test_single_block_chain(self) -> None:
        root = _canonical(flag())
        assert root.opcode == "event_whenflagclicked"
        assert root.next is None


class TestCanonicalValue:
    def test_sorts_and_drops_volatile(self) -> None:
        value = {"b": 1, "a": {"y": 2, "z": 3}, "x": 9}
        assert canonical_value(value, frozenset({"x", "y"})) == {"a": {"z": 3}, "b": 1}

    def test_keeps_everything_without_volatile_keys(self) -> None:
        assert canonical_value({"x": 1}) == {"x": 1}

    def test_integral_float(self) -> None:
        assert canonical_value([1.0, 2.5]) == [1, 2.5]

    def test_tuple_becomes_list(self) -> None:
        assert canonical_value(("a", 1)) == ["a", 1]

    def test_json_compact_and_sorted(self) -> None:
        assert canonical_json({"b": 1, "a": "é"}) == '{"a":"é","b":1}'


class TestCanonicallyEqual:
    def test_key_order_ignored(self) -> None:
        assert canonically_equal({"name": "a", "assetId": "x"}, {"assetId": "x", "name": "a"})

    def test_volatile_keys_ignored(self) -> None:
        assert canonically_equal({"name": "a", "x": 1}, {"name": "a", "x": 2})

    def test_custom_volatile_keys(self) -> None:
        with diff_config_context(DiffConfig(volatile_keys=frozenset())):
            assert not canonically_equal({"name": "a", "x": 1}, {"name": "a", "x": 2})

    def test_bool_and_int_distinct(self) -> None:
        assert not canonically_equal(["flag", True], ["flag", 1])

    def test_value_change_detected(self) -> None:
        assert not canonically_equal(["score", 0], ["score", 5])
