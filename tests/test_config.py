"""Tests for ContextVar-based diff configuration.

Validates defaults, from_dict coercion, context manager behavior and thread
isolation.
"""

from threading import Thread

import pytest
from builders import flag, move, single_script_project

from blockdiff import (
    DiffConfig,
    compare_projects,
    diff_config_context,
    get_diff_config,
    reset_diff_config,
    set_diff_config,
)
from blockdiff.config import DEFAULT_STRUCTURAL_SLOTS, DEFAULT_VOLATILE_KEYS


class TestDiffConfigDataclass:
    """Test DiffConfig frozen dataclass behavior."""

    def test_default_values(self) -> None:
        config = DiffConfig()
        assert config.similarity_threshold == 0.5
        assert config.prefix_weight == 0.5
        assert config.fingerprint_length == 32
        assert config.hash_algorithm == "sha256"
        assert config.structural_slots == DEFAULT_STRUCTURAL_SLOTS
        assert config.volatile_keys == DEFAULT_VOLATILE_KEYS
        assert config.block_items is True
        assert config.strict_structure is False
        assert config.strict_replay is False

    def test_immutability(self) -> None:
        config = DiffConfig()
        with pytest.raises(AttributeError):
            config.similarity_threshold = 0.9  # type: ignore[misc]


class TestDiffConfigFromDict:
    def test_basic(self) -> None:
        config = DiffConfig.from_dict({"similarity_threshold": 0.8, "strict_replay": True})
        assert config.similarity_threshold == 0.8
        assert config.strict_replay is True
        assert config.block_items is True

    def test_ignores_unknown_keys(self) -> None:
        config = DiffConfig.from_dict({"block_items": False, "unknown_key": "ignored"})
        assert config.block_items is False

    def test_empty(self) -> None:
        assert DiffConfig.from_dict({}) == DiffConfig()

    def test_coerces_collections(self) -> None:
        config = DiffConfig.from_dict(
            {"structural_slots": ["SUBSTACK", "SUBSTACK2"], "volatile_keys": ["x", "y"]}
        )
        assert config.structural_slots == ("SUBSTACK", "SUBSTACK2")
        assert config.volatile_keys == frozenset({"x", "y"})


class TestConfigGetSetReset:
    def teardown_method(self) -> None:
        reset_diff_config()

    def test_default_config(self) -> None:
        assert get_diff_config() == DiffConfig()

    def test_set_and_get(self) -> None:
        set_diff_config(DiffConfig(fingerprint_length=12))
        assert get_diff_config().fingerprint_length == 12

    def test_reset_restores_default(self) -> None:
        set_diff_config(DiffConfig(fingerprint_length=12))
        reset_diff_config()
        assert get_diff_config().fingerprint_length == 32


class TestDiffConfigContext:
    def test_context_sets_config(self) -> None:
        with diff_config_context(DiffConfig(block_items=False)):
            assert get_diff_config().block_items is False
        assert get_diff_config().block_items is True

    def test_nested_contexts(self) -> None:
        with diff_config_context(DiffConfig(block_items=False)):
            with diff_config_context(DiffConfig(strict_replay=True)):
                assert get_diff_config().strict_replay is True
                assert get_diff_config().block_items is True
            assert get_diff_config().block_items is False
            assert get_diff_config().strict_replay is False

    def test_context_restores_on_exception(self) -> None:
        with pytest.raises(ValueError, match="test"):
            with diff_config_context(DiffConfig(block_items=False)):
                raise ValueError("test")
        assert get_diff_config().block_items is True

    def test_threshold_changes_matching(self) -> None:
        old = single_script_project(flag())
        new = single_script_project(flag(), move(1))
        assert len(compare_projects(old, new)) == 2
        with diff_config_context(DiffConfig(similarity_threshold=0.4)):
            assert [item.type.value for item in compare_projects(old, new)][0] == "script-edit"


class TestThreadIsolation:
    def test_thread_isolation(self) -> None:
        """Each thread sees its own config."""
        results: dict[int, int] = {}

        def worker(thread_id: int, config: DiffConfig) -> None:
            set_diff_config(config)
            results[thread_id] = get_diff_config().fingerprint_length

        configs = [DiffConfig(fingerprint_length=n) for n in (8, 16, 24, 32)]
        threads = [Thread(target=worker, args=(i, c)) for i, c in enumerate(configs)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == {0: 8, 1: 16, 2: 24, 3: 32}
        assert get_diff_config().fingerprint_length == 32

    def test_fingerprints_follow_thread_config(self) -> None:
        doc = single_script_project(flag(), move(1))
        lengths: dict[int, set[int]] = {}

        def worker(thread_id: int, length: int) -> None:
            with diff_config_context(DiffConfig(fingerprint_length=length)):
                other = single_script_project(flag(), move(1), move(2))
                diff = compare_projects(doc, other)
                lengths[thread_id] = {len(item.fingerprint or "") for item in diff}

        threads = [Thread(target=worker, args=(i, n)) for i, n in enumerate((10, 20))]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert lengths == {0: {10}, 1: {20}}
