"""Replay a diff onto a base document.

Only keyed collections are replayed: variables, lists, costumes and sounds.
Script and block items are reported as unsupported and leave the base
scripts untouched.

Replay works on a deep copy of the base; the caller's document is never
mutated. Reverse replay (``reverse=True``) swaps additions and deletions and
swaps the old and new side of edits, so replaying ``old -> new`` in reverse
onto ``new`` restores ``old``'s keyed collections.

A conflict (deleting or editing an absent entry, adding a present one, or
naming a target that does not exist for anything but an addition) skips the
item and records it in the report. With ``strict_replay`` enabled the
:class:`~blockdiff.errors.ReconstructionConflictError` propagates instead.

Example:
    >>> result = reconstruct(old_doc, diff, bundle, base_resources=old_assets)
    >>> result.report.skipped
    []
    >>> result.report.missing_resources
    ['83a9787d4cb6f3b7632b4ddfebf74367.wav']

"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from blockdiff.config import get_diff_config
from blockdiff.differ import asset_keys
from blockdiff.errors import ReconstructionConflictError
from blockdiff.model import (
    ASSET_CATEGORIES,
    COLLECTION_NAMES,
    KEYED_CATEGORIES,
    REPLAYABLE_CATEGORIES,
    DiffItem,
    DiffType,
)
from blockdiff.utils.logger import get_logger

logger = get_logger(__name__)

_INVERSE_OPERATION = {"add": "delete", "delete": "add", "edit": "edit"}


@dataclass(frozen=True, slots=True)
class SkippedItem:
    """A diff item that could not be applied, with the reason."""

    item: DiffItem
    reason: str


@dataclass(slots=True)
class ApplyReport:
    """What happened to each item during replay.

    Attributes:
        applied: Number of items applied
        skipped: Items skipped because of a conflict
        unsupported: Script and block items (never replayed)
        missing_resources: Filenames referenced by added or edited assets
            that are in neither the bundle nor the base resources
        created_targets: Target shells created for additions

    """

    applied: int = 0
    skipped: list[SkippedItem] = field(default_factory=list)
    unsupported: list[DiffItem] = field(default_factory=list)
    missing_resources: list[str] = field(default_factory=list)
    created_targets: list[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        """True when nothing was skipped and no resource is missing."""
        return not self.skipped and not self.missing_resources


@dataclass(frozen=True, slots=True)
class ReconstructionResult:
    """Replayed document, combined resources and the apply report."""

    document: dict[str, Any]
    resources: dict[str, bytes]
    report: ApplyReport


def invert(item: DiffItem) -> DiffItem:
    """The item that undoes ``item``: add and delete swap, edits flip sides.

    Ids and list positions swap sides along with the payloads.
    """
    operation = _INVERSE_OPERATION[item.operation]
    location = replace(
        item.location,
        old_id=item.location.new_id,
        new_id=item.location.old_id,
        old_index=item.location.new_index,
        new_index=item.location.old_index,
    )
    return replace(
        item,
        type=DiffType.of(item.category, operation),
        location=location,
        old=item.new,
        new=item.old,
    )


def reconstruct(
    base: Mapping[str, Any],
    diff: Iterable[DiffItem],
    resources: Mapping[str, bytes] | None = None,
    *,
    reverse: bool = False,
    base_resources: Mapping[str, bytes] | None = None,
) -> ReconstructionResult:
    """Replay the keyed-collection items of ``diff`` onto ``base``.

    Args:
        base: Deserialized base document (not mutated).
        diff: Diff or items to replay, in order.
        resources: Resource bundle shipped with the diff, keyed by filename.
        reverse: Undo the diff instead of applying it.
        base_resources: Resources already available for the base document.

    Returns:
        ReconstructionResult with the new document, the base resources
        overlaid with the bundle, and the apply report.

    Raises:
        ReconstructionConflictError: On the first conflict, when
            ``strict_replay`` is enabled.

    """
    strict = get_diff_config().strict_replay
    document: dict[str, Any] = copy.deepcopy(dict(base))
    targets: list[dict[str, Any]] = document.setdefault("targets", [])
    combined: dict[str, bytes] = {**(base_resources or {}), **(resources or {})}
    report = ApplyReport()
    # (target, category) -> identity keys of that asset list, fixed at first touch
    asset_lists: dict[tuple[str, str], list[str]] = {}

    # Undo in reverse order: an id freed by a deletion is free again before
    # its re-addition, and deleted list records come back lowest index first
    items = list(diff)
    if reverse:
        items.reverse()

    for item in items:
        if item.category not in REPLAYABLE_CATEGORIES:
            report.unsupported.append(item)
            continue
        effective = invert(item) if reverse else item
        try:
            _apply(targets, effective, report, asset_lists)
        except ReconstructionConflictError as e:
            if strict:
                raise
            logger.warning("Skipping diff item: %s", e)
            report.skipped.append(SkippedItem(item=item, reason=e.message))
            continue
        report.applied += 1
        if effective.category in ASSET_CATEGORIES and effective.operation != "delete":
            filename = _asset_filename(effective.new)
            if filename and filename not in combined and filename not in report.missing_resources:
                report.missing_resources.append(filename)

    logger.debug(
        "Replayed %d items (%d skipped, %d unsupported)",
        report.applied,
        len(report.skipped),
        len(report.unsupported),
    )
    return ReconstructionResult(document=document, resources=combined, report=report)


def _apply(
    targets: list[dict[str, Any]],
    item: DiffItem,
    report: ApplyReport,
    asset_lists: dict[tuple[str, str], list[str]],
) -> None:
    target = _find_target(targets, item.target_name)
    if target is None:
        if item.operation != "add":
            raise ReconstructionConflictError(item.type.value, item.target_name, "target not found")
        target = _target_shell(item.target_name, len(targets))
        targets.append(target)
        report.created_targets.append(item.target_name)

    if item.category in KEYED_CATEGORIES:
        _apply_keyed(target, item)
        return

    slot = (item.target_name, item.category)
    if slot not in asset_lists:
        asset_lists[slot] = asset_keys(target.get(COLLECTION_NAMES[item.category], []))
    _apply_asset(target, item, asset_lists[slot])


def _find_target(targets: list[dict[str, Any]], name: str) -> dict[str, Any] | None:
    for target in targets:
        if isinstance(target, dict) and target.get("name") == name:
            return target
    return None


def _target_shell(name: str, layer_order: int) -> dict[str, Any]:
    return {
        "isStage": False,
        "name": name,
        "variables": {},
        "lists": {},
        "broadcasts": {},
        "blocks": {},
        "comments": {},
        "currentCostume": 0,
        "costumes": [],
        "sounds": [],
        "volume": 100,
        "layerOrder": layer_order,
    }


# =============================================================================
# Variables and lists
# =============================================================================


def _entry_name(item: DiffItem, payload: Any) -> str:
    if isinstance(payload, list | tuple) and payload:
        return str(payload[0])
    return str(item.fingerprint)


def _locate_entry(collection: dict[str, Any], item: DiffItem) -> str:
    """Native id of the entry ``item`` deletes or edits."""
    name = _entry_name(item, item.old)
    entry_id = item.location.old_id
    if entry_id is None:
        # No recorded id: the first entry carrying the name
        for candidate, entry in collection.items():
            if _entry_name(item, entry) == name:
                return candidate
    elif entry_id in collection and _entry_name(item, collection[entry_id]) == name:
        return entry_id
    raise ReconstructionConflictError(
        item.type.value, item.target_name, f"no entry named {name!r} with id {entry_id!r}"
    )


def _apply_keyed(target: dict[str, Any], item: DiffItem) -> None:
    collection: dict[str, Any] = target.setdefault(COLLECTION_NAMES[item.category], {})
    kind = item.type.value

    if item.operation == "add":
        entry_id = item.location.new_id or _entry_name(item, item.new)
        if entry_id in collection:
            raise ReconstructionConflictError(kind, item.target_name, f"id {entry_id!r} already in use")
        collection[entry_id] = copy.deepcopy(item.new)
        return

    old_id = _locate_entry(collection, item)
    if item.operation == "delete":
        del collection[old_id]
        return

    new_id = item.location.new_id or old_id
    if new_id != old_id:
        if new_id in collection:
            raise ReconstructionConflictError(kind, item.target_name, f"id {new_id!r} already in use")
        del collection[old_id]
    collection[new_id] = copy.deepcopy(item.new)


# =============================================================================
# Costumes and sounds
# =============================================================================


def _asset_filename(payload: Any) -> str | None:
    if not isinstance(payload, Mapping):
        return None
    filename = payload.get("md5ext")
    if filename:
        return str(filename)
    if payload.get("assetId") and payload.get("dataFormat"):
        return f"{payload['assetId']}.{payload['dataFormat']}"
    return None


def _asset_key(item: DiffItem, payload: Any) -> str:
    if item.fingerprint:
        return item.fingerprint
    return asset_keys([payload])[0]


def _apply_asset(target: dict[str, Any], item: DiffItem, keys: list[str]) -> None:
    """Apply one costume or sound item.

    ``keys`` runs parallel to the list and holds each record's identity as
    computed before replay started, so positional and occurrence keys do not
    shift as records come and go.
    """
    collection: list[Any] = target.setdefault(COLLECTION_NAMES[item.category], [])
    kind = item.type.value

    if item.operation == "add":
        key = _asset_key(item, item.new)
        if key in keys:
            raise ReconstructionConflictError(kind, item.target_name, f"asset {key!r} already exists")
        index = item.location.new_index
        if index is None or index > len(collection):
            index = len(collection)
        collection.insert(index, copy.deepcopy(item.new))
        keys.insert(index, key)
        return

    key = _asset_key(item, item.old)
    if key not in keys:
        raise ReconstructionConflictError(kind, item.target_name, f"no asset {key!r}")
    index = keys.index(key)

    if item.operation == "delete":
        del collection[index]
        del keys[index]
        if item.category == "costume" and collection:
            target["currentCostume"] = min(int(target.get("currentCostume", 0)), len(collection) - 1)
    else:
        collection[index] = copy.deepcopy(item.new)


__all__ = [
    "ApplyReport",
    "ReconstructionResult",
    "SkippedItem",
    "invert",
    "reconstruct",
]
