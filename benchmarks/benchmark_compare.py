"""Benchmark project comparison on large generated projects.

Run with:
    pytest benchmarks/benchmark_compare.py -v --benchmark-only
"""

from __future__ import annotations

from typing import Any

import pytest

from blockdiff import compare_projects, reconstruct


def _script(blocks: dict[str, Any], prefix: str, length: int, steps: int) -> None:
    ids = [f"{prefix}-{i}" for i in range(length)]
    for i, block_id in enumerate(ids):
        blocks[block_id] = {
            "opcode": "event_whenflagclicked" if i == 0 else "motion_movesteps",
            "next": ids[i + 1] if i + 1 < length else None,
            "parent": ids[i - 1] if i else None,
            "inputs": {} if i == 0 else {"STEPS": [1, [4, str(steps + i)]]},
            "fields": {},
            "shadow": False,
            "topLevel": i == 0,
        }


def _project(scripts: int, length: int, steps: int) -> dict[str, Any]:
    blocks: dict[str, Any] = {}
    for s in range(scripts):
        _script(blocks, f"s{s}", length, steps if s % 10 == 0 else 0)
    sprite = {
        "isStage": False,
        "name": "Sprite1",
        "blocks": blocks,
        "variables": {f"v{i}": [f"var{i}", steps * i] for i in range(200)},
        "lists": {},
        "costumes": [{"name": f"c{i}", "assetId": f"a{i}", "md5ext": f"a{i}.svg"} for i in range(50)],
        "sounds": [],
    }
    return {"targets": [{"isStage": True, "name": "Stage", "blocks": {}}, sprite]}


@pytest.fixture
def large_pair() -> tuple[dict[str, Any], dict[str, Any]]:
    """200 scripts of 50 blocks each; every tenth script edited."""
    return _project(200, 50, 0), _project(200, 50, 1)


@pytest.mark.benchmark(group="compare")
def test_benchmark_compare(benchmark, large_pair) -> None:  # type: ignore[no-untyped-def]
    old, new = large_pair
    benchmark(compare_projects, old, new)


@pytest.mark.benchmark(group="compare")
def test_benchmark_self_compare(benchmark, large_pair) -> None:  # type: ignore[no-untyped-def]
    old, _ = large_pair
    benchmark(compare_projects, old, old)


@pytest.mark.benchmark(group="compare")
def test_benchmark_long_script(benchmark) -> None:  # type: ignore[no-untyped-def]
    old, new = _project(1, 5000, 0), _project(1, 5000, 1)
    benchmark(compare_projects, old, new)


@pytest.mark.benchmark(group="replay")
def test_benchmark_reconstruct(benchmark, large_pair) -> None:  # type: ignore[no-untyped-def]
    old, new = large_pair
    diff = compare_projects(old, new)
    benchmark(reconstruct, old, diff)
