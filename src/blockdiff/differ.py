"""Diff engine: turn two loaded snapshots into typed diff items.

Per target (old-document order, then targets only present in the new one):

- variables and lists, keyed by entry name
- costumes and sounds, keyed by asset identity
- scripts: one ``script-edit`` per matched pair whose fingerprints differ and
  whose rendered lines differ, followed by its block-level items; then
  ``script-delete`` and ``script-add`` for unmatched scripts

Keyed entries present on both sides are compared in canonical form, so key
order or volatile keys never produce an edit.

Example:
    >>> diff = compare_projects(old_json, new_json)
    >>> [item.type.value for item in diff]
    ['variable-edit', 'script-edit', 'block-add']

Thread Safety:
    All functions are pure. Safe to call from any thread.

"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from time import perf_counter
from typing import Any

from blockdiff.canonical import canonically_equal
from blockdiff.config import get_diff_config
from blockdiff.linediff import diff_lines, format_unified
from blockdiff.loader import LoadedProject, LoadedTarget, load_project
from blockdiff.matcher import match_blocks, match_scripts
from blockdiff.model import (
    Diff,
    DiffItem,
    DiffLocation,
    DiffType,
    LineDiffSummary,
)
from blockdiff.nodes import Script
from blockdiff.profiling import get_diff_accumulator
from blockdiff.render import ScriptLine, render_lines, render_text
from blockdiff.utils.logger import get_logger

logger = get_logger(__name__)


def compare_projects(old: Mapping[str, Any], new: Mapping[str, Any]) -> Diff:
    """Load two deserialized documents and diff them.

    Args:
        old: The old ``project.json`` mapping.
        new: The new ``project.json`` mapping.

    Returns:
        Diff from ``old`` to ``new``.

    """
    start = perf_counter()
    old_project = load_project(old)
    new_project = load_project(new)
    diff = diff_projects(old_project, new_project)

    acc = get_diff_accumulator()
    if acc is not None:
        acc.record_comparison(
            old_project,
            new_project,
            diff,
            elapsed_ms=(perf_counter() - start) * 1000,
        )
    return diff


def diff_projects(old: LoadedProject, new: LoadedProject) -> Diff:
    """Diff two loaded snapshots."""
    names: list[str] = []
    for target in (*old.targets, *new.targets):
        if target.name not in names:
            names.append(target.name)

    items: list[DiffItem] = []
    for name in names:
        items.extend(diff_target(old.target(name), new.target(name), name))

    logger.debug("Diff produced %d items across %d targets", len(items), len(names))
    return Diff.from_items(items)


def diff_target(old: LoadedTarget | None, new: LoadedTarget | None, name: str) -> list[DiffItem]:
    """Diff one target; either side may be absent (target added or deleted)."""
    items: list[DiffItem] = []
    items.extend(diff_keyed("variable", _attr(old, "variables"), _attr(new, "variables"), name))
    items.extend(diff_keyed("list", _attr(old, "lists"), _attr(new, "lists"), name))
    items.extend(diff_assets("costume", _attr(old, "costumes", []), _attr(new, "costumes", []), name))
    items.extend(diff_assets("sound", _attr(old, "sounds", []), _attr(new, "sounds", []), name))
    items.extend(
        diff_scripts(
            old.scripts if old is not None else (),
            new.scripts if new is not None else (),
            name,
        )
    )
    return items


def _attr(target: LoadedTarget | None, name: str, default: Any = None) -> Any:
    if target is None:
        return {} if default is None else default
    return getattr(target, name)


# =============================================================================
# Scripts
# =============================================================================


def diff_scripts(old: Sequence[Script], new: Sequence[Script], target_name: str) -> list[DiffItem]:
    """Emit script (and block) items for one target."""
    result = match_scripts(old, new)
    location = DiffLocation(target_name=target_name)
    items: list[DiffItem] = []

    for old_script, new_script in result.changed:
        line_diff = diff_lines(render_lines(old_script.root), render_lines(new_script.root))
        if not line_diff.changed:
            continue
        items.append(
            DiffItem(
                type=DiffType.SCRIPT_EDIT,
                location=location,
                old=_script_payload(old_script),
                new=_script_payload(new_script),
                fingerprint=old_script.fingerprint,
                diff=LineDiffSummary(
                    added=line_diff.added,
                    removed=line_diff.removed,
                    text=format_unified(line_diff),
                ),
            )
        )
        if get_diff_config().block_items:
            items.extend(_block_items(old_script, new_script, target_name))

    items.extend(
        DiffItem(
            type=DiffType.SCRIPT_DELETE,
            location=location,
            old=_script_payload(script),
            fingerprint=script.fingerprint,
        )
        for script in result.deleted
    )
    items.extend(
        DiffItem(
            type=DiffType.SCRIPT_ADD,
            location=location,
            new=_script_payload(script),
            fingerprint=script.fingerprint,
        )
        for script in result.added
    )
    return items


def _script_payload(script: Script) -> dict[str, Any]:
    return {
        "topId": script.top_id,
        "text": render_text(script),
        "blockCount": script.block_count(),
    }


def _block_items(old: Script, new: Script, target_name: str) -> list[DiffItem]:
    blocks = match_blocks(old.root, new.root)
    items: list[DiffItem] = []

    for old_line, new_line in blocks.edited:
        line_diff = diff_lines([str(old_line)], [str(new_line)])
        items.append(
            DiffItem(
                type=DiffType.BLOCK_EDIT,
                location=DiffLocation(target_name=target_name, block_path=old_line.path),
                old=_block_payload(old_line),
                new=_block_payload(new_line),
                fingerprint=old.fingerprint,
                diff=LineDiffSummary(
                    added=line_diff.added,
                    removed=line_diff.removed,
                    text=format_unified(line_diff),
                ),
            )
        )
    items.extend(
        DiffItem(
            type=DiffType.BLOCK_DELETE,
            location=DiffLocation(target_name=target_name, block_path=line.path),
            old=_block_payload(line),
            fingerprint=old.fingerprint,
        )
        for line in blocks.deleted
    )
    items.extend(
        DiffItem(
            type=DiffType.BLOCK_ADD,
            location=DiffLocation(target_name=target_name, block_path=line.path),
            new=_block_payload(line),
            fingerprint=new.fingerprint,
        )
        for line in blocks.added
    )
    return items


def _block_payload(line: ScriptLine) -> dict[str, Any]:
    return {
        "opcode": line.block.opcode if line.block is not None else None,
        "text": line.text,
        "path": line.path,
        "depth": line.depth,
    }


# =============================================================================
# Keyed collections
# =============================================================================


# A native map entry: (id, [name, value, ...])
Entry = tuple[str, Any]


def _entry_name(entry_id: str, entry: Any) -> str:
    return str(entry[0]) if isinstance(entry, list | tuple) and entry else str(entry_id)


def entries_by_name(entries: Mapping[str, Any]) -> dict[str, list[Entry]]:
    """Group a native ``id -> [name, value, ...]`` map by entry name.

    Returns ``name -> [(id, entry), ...]`` in document order. Names are not
    unique in the native format, so one name may own several entries.
    """
    by_name: dict[str, list[Entry]] = {}
    for entry_id, entry in entries.items():
        by_name.setdefault(_entry_name(entry_id, entry), []).append((entry_id, entry))
    return by_name


def pair_entries(
    old: Sequence[Entry],
    new: Sequence[Entry],
) -> tuple[list[tuple[Entry, Entry]], list[Entry], list[Entry]]:
    """Pair the entries that share one name.

    Entries keeping their id pair first; the rest pair in document order.

    Returns:
        ``(pairs, old_only, new_only)``

    """
    new_by_id = dict(new)
    pairs = [
        ((entry_id, entry), (entry_id, new_by_id[entry_id]))
        for entry_id, entry in old
        if entry_id in new_by_id
    ]
    kept = {entry_id for (entry_id, _), _ in pairs}
    old_rest = [entry for entry in old if entry[0] not in kept]
    new_rest = [entry for entry in new if entry[0] not in kept]
    pairs.extend(zip(old_rest, new_rest))
    return pairs, old_rest[len(new_rest) :], new_rest[len(old_rest) :]


def diff_keyed(
    category: str,
    old: Mapping[str, Any],
    new: Mapping[str, Any],
    target_name: str,
) -> list[DiffItem]:
    """Diff a variable or list map, keyed by entry name.

    Deletions come first in old-document order, then additions and edits in
    new-document order. Every item records the native ids it touches.

    Args:
        category: "variable" or "list".
        old: Native map on the old side.
        new: Native map on the new side.
        target_name: Owning target.

    """
    new_groups = entries_by_name(new)
    partners: dict[str, tuple[str, Any]] = {}
    deleted: set[str] = set()
    for name, old_group in entries_by_name(old).items():
        pairs, old_only, _ = pair_entries(old_group, new_groups.get(name, []))
        partners.update((new_id, previous) for previous, (new_id, _) in pairs)
        deleted.update(entry_id for entry_id, _ in old_only)

    items: list[DiffItem] = [
        DiffItem(
            type=DiffType.of(category, "delete"),
            location=DiffLocation(target_name=target_name, old_id=old_id),
            old=entry,
            fingerprint=_entry_name(old_id, entry),
        )
        for old_id, entry in old.items()
        if old_id in deleted
    ]

    for new_id, entry in new.items():
        previous = partners.get(new_id)
        if previous is None:
            items.append(
                DiffItem(
                    type=DiffType.of(category, "add"),
                    location=DiffLocation(target_name=target_name, new_id=new_id),
                    new=entry,
                    fingerprint=_entry_name(new_id, entry),
                )
            )
        elif previous[0] != new_id or not canonically_equal(previous[1], entry):
            items.append(
                DiffItem(
                    type=DiffType.of(category, "edit"),
                    location=DiffLocation(target_name=target_name, old_id=previous[0], new_id=new_id),
                    old=previous[1],
                    new=entry,
                    fingerprint=_entry_name(new_id, entry),
                )
            )
    return items


def asset_keys(assets: Sequence[Any]) -> list[str]:
    """Stable identity key for every asset record, in list order.

    ``assetId``, else ``md5ext``, else the positional index ``#<n>``. A
    repeated identity gets an occurrence suffix (``abc@2``) so two costumes
    sharing one image are still two entries.
    """
    keys: list[str] = []
    seen: dict[str, int] = {}
    for index, asset in enumerate(assets):
        base = None
        if isinstance(asset, Mapping):
            base = asset.get("assetId") or asset.get("md5ext")
        key = str(base) if base else f"#{index}"
        seen[key] = seen.get(key, 0) + 1
        keys.append(key if seen[key] == 1 else f"{key}@{seen[key]}")
    return keys


def diff_assets(
    category: str,
    old: Sequence[Any],
    new: Sequence[Any],
    target_name: str,
) -> list[DiffItem]:
    """Diff a costume or sound list, keyed by asset identity.

    Deletions come first, highest old index first, then additions and edits
    in new-list order. Items record their list positions so replay can put
    additions back where they belong. A reordering of otherwise unchanged
    records is not a change.

    Args:
        category: "costume" or "sound".
        old: Native asset list on the old side.
        new: Native asset list on the new side.
        target_name: Owning target.

    """
    old_keys = asset_keys(old)
    new_keys = asset_keys(new)
    old_positions = {key: index for index, key in enumerate(old_keys)}
    new_positions = {key: index for index, key in enumerate(new_keys)}
    items: list[DiffItem] = []

    for index in reversed(range(len(old))):
        key = old_keys[index]
        if key not in new_positions:
            items.append(
                DiffItem(
                    type=DiffType.of(category, "delete"),
                    location=DiffLocation(target_name=target_name, old_index=index),
                    old=old[index],
                    fingerprint=key,
                )
            )

    for index, (key, asset) in enumerate(zip(new_keys, new)):
        previous = old_positions.get(key)
        if previous is None:
            items.append(
                DiffItem(
                    type=DiffType.of(category, "add"),
                    location=DiffLocation(target_name=target_name, new_index=index),
                    new=asset,
                    fingerprint=key,
                )
            )
        elif not canonically_equal(old[previous], asset):
            items.append(
                DiffItem(
                    type=DiffType.of(category, "edit"),
                    location=DiffLocation(target_name=target_name, old_index=previous, new_index=index),
                    old=old[previous],
                    new=asset,
                    fingerprint=key,
                )
            )
    return items


__all__ = [
    "asset_keys",
    "compare_projects",
    "diff_assets",
    "diff_keyed",
    "diff_projects",
    "diff_scripts",
    "diff_target",
    "entries_by_name",
    "pair_entries",
]
