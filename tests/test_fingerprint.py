"""Tests for blockdiff.fingerprint: id-independent content hashes."""

from builders import BlockMap, Stmt, flag, forever, if_, if_else, key_pressed, move, say, wait
from hypothesis import given, settings
from hypothesis import strategies as st

from blockdiff.canonical import canonicalize
from blockdiff.config import DiffConfig, diff_config_context
from blockdiff.fingerprint import fingerprint, fingerprint_script, shallow_fingerprint
from blockdiff.loader import build_tree
from blockdiff.nodes import Block


def _root(*stmts: Stmt, prefix: str = "b", x: int = 0, y: int = 0) -> Block:
    builder = BlockMap(prefix)
    top = builder.script(*stmts, x=x, y=y)
    tree, _ = build_tree(builder.blocks, top)
    assert tree is not None
    return canonicalize(tree)


def _sample_script() -> list[Stmt]:
    return [
        flag(),
        forever(
            if_else(key_pressed("space"), [move(10), say("jump")], [wait(0.5)]),
            move(-3),
        ),
    ]


class TestIdIndependence:
    @given(
        prefix=st.text(alphabet="abcdefghijklmnopqrstuvwxyz!#%()*+,-./:;=?@[]^_`{|}~", min_size=1, max_size=12),
        x=st.integers(min_value=-2000, max_value=2000),
        y=st.integers(min_value=-2000, max_value=2000),
    )
    @settings(max_examples=50)
    def test_fresh_namespace_same_fingerprint(self, prefix: str, x: int, y: int) -> None:
        original = fingerprint(_root(*_sample_script(), prefix="orig"))
        rebuilt = fingerprint(_root(*_sample_script(), prefix=prefix, x=x, y=y))
        assert rebuilt == original

    def test_fingerprint_script_matches_root(self) -> None:
        root = _root(*_sample_script())
        assert fingerprint_script(root) == fingerprint(root)


class TestSensitivity:
    def test_field_change(self) -> None:
        a = _root(flag(), if_(key_pressed("space"), move(1)))
        b = _root(flag(), if_(key_pressed("up"), move(1)))
        assert fingerprint(a) != fingerprint(b)

    def test_literal_change(self) -> None:
        assert fingerprint(_root(move(10))) != fingerprint(_root(move(11)))

    def test_opcode_change(self) -> None:
        assert fingerprint(_root(flag(), move(1))) != fingerprint(_root(flag(), wait(1)))

    def test_statement_order(self) -> None:
        assert fingerprint(_root(flag(), move(1), wait(1))) != fingerprint(_root(flag(), wait(1), move(1)))

    def test_nesting_matters(self) -> None:
        nested = _root(flag(), forever(move(1)))
        flat = _root(flag(), forever(), move(1))
        assert fingerprint(nested) != fingerprint(flat)

    def test_branch_swap(self) -> None:
        a = _root(if_else(key_pressed("a"), [move(1)], [move(2)]))
        b = _root(if_else(key_pressed("a"), [move(2)], [move(1)]))
        assert fingerprint(a) != fingerprint(b)


class TestShape:
    def test_default_length(self) -> None:
        digest = fingerprint(_root(flag()))
        assert len(digest) == 32
        int(digest, 16)

    def test_configured_length_and_algorithm(self) -> None:
        with diff_config_context(DiffConfig(fingerprint_length=16, hash_algorithm="blake2b")):
            digest = fingerprint(_root(flag()))
        assert len(digest) == 16
        assert digest != fingerprint(_root(flag()))[:16]

    def test_long_chain(self) -> None:
        root = _root(flag(), *[move(i) for i in range(3000)])
        assert len(fingerprint(root)) == 32


class TestShallowFingerprint:
    def test_ignores_next(self) -> None:
        a = _root(move(1), wait(1))
        b = _root(move(1), say("x"))
        assert shallow_fingerprint(a) == shallow_fingerprint(b)
        assert fingerprint(a) != fingerprint(b)

    def test_ignores_children(self) -> None:
        a = _root(forever(move(1)))
        b = _root(forever(move(2)))
        assert shallow_fingerprint(a) == shallow_fingerprint(b)

    def test_includes_expression_inputs(self) -> None:
        assert shallow_fingerprint(_root(key_pressed("a"))) != shallow_fingerprint(_root(key_pressed("b")))
