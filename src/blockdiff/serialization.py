"""Diff serialization: JSON round-trip for diff items.

Converts typed diff items to/from JSON-compatible dicts. The item shape is a
wire contract shared with the reconstructor and external renderers::

    {"type": "script-edit",
     "location": {"targetName": "Sprite1"},
     "old": {...}, "new": {...},
     "fingerprint": "…",
     "diff": {"added": 1, "removed": 0, "text": "…"}}

Absent optional fields are omitted. A whole diff serializes as
``{"items": [...], "summary": {...}}``; the summary is informational and is
recomputed from the items on load.

All output is deterministic (sorted keys).

Example:
    from blockdiff.serialization import to_json, from_json

    text = to_json(diff)
    assert from_json(text) == diff

Thread Safety:
    All functions are pure. Safe to call from any thread.

"""

from __future__ import annotations

import json
from typing import Any

from blockdiff.model import Diff, DiffItem, DiffLocation, DiffType, LineDiffSummary

# DiffLocation attribute -> wire key
_LOCATION_KEYS: dict[str, str] = {
    "target_name": "targetName",
    "block_path": "blockPath",
    "old_id": "oldId",
    "new_id": "newId",
    "old_index": "oldIndex",
    "new_index": "newIndex",
}


def to_dict(item: DiffItem) -> dict[str, Any]:
    """Convert a diff item to its wire dict."""
    location = {
        key: getattr(item.location, attr)
        for attr, key in _LOCATION_KEYS.items()
        if getattr(item.location, attr) is not None
    }
    result: dict[str, Any] = {"type": item.type.value, "location": location}
    if item.old is not None:
        result["old"] = item.old
    if item.new is not None:
        result["new"] = item.new
    if item.fingerprint is not None:
        result["fingerprint"] = item.fingerprint
    if item.diff is not None:
        result["diff"] = {
            "added": item.diff.added,
            "removed": item.diff.removed,
            "text": item.diff.text,
        }
    return result


def from_dict(data: dict[str, Any]) -> DiffItem:
    """Reconstruct a diff item from its wire dict.

    Raises:
        ValueError: If ``type`` is missing or unknown, or ``location`` has no
            ``targetName``.

    """
    type_name = data.get("type")
    if type_name is None:
        msg = "Missing 'type' field in serialized diff item"
        raise ValueError(msg)
    try:
        item_type = DiffType(type_name)
    except ValueError:
        msg = f"Unknown diff item type: {type_name!r}"
        raise ValueError(msg) from None

    raw_location = data.get("location") or {}
    if "targetName" not in raw_location:
        msg = f"Diff item {type_name!r} has no location.targetName"
        raise ValueError(msg)
    location = DiffLocation(
        **{attr: raw_location.get(key) for attr, key in _LOCATION_KEYS.items()}
    )

    raw_diff = data.get("diff")
    line_diff = None
    if raw_diff is not None:
        line_diff = LineDiffSummary(
            added=int(raw_diff.get("added", 0)),
            removed=int(raw_diff.get("removed", 0)),
            text=str(raw_diff.get("text", "")),
        )

    return DiffItem(
        type=item_type,
        location=location,
        old=data.get("old"),
        new=data.get("new"),
        fingerprint=data.get("fingerprint"),
        diff=line_diff,
    )


def diff_to_dict(diff: Diff) -> dict[str, Any]:
    """Convert a whole diff to ``{"items": [...], "summary": {...}}``."""
    return {
        "items": [to_dict(item) for item in diff],
        "summary": diff.summary.as_dict(),
    }


def diff_from_dict(data: dict[str, Any] | list[Any]) -> Diff:
    """Reconstruct a diff from a document dict or a bare item list."""
    raw_items = data if isinstance(data, list) else data.get("items")
    if not isinstance(raw_items, list):
        msg = "Serialized diff has no 'items' list"
        raise ValueError(msg)
    return Diff.from_items(from_dict(raw) for raw in raw_items)


def to_json(diff: Diff, *, indent: int | None = None) -> str:
    """Serialize a diff to a JSON string.

    Args:
        diff: Diff to serialize.
        indent: JSON indentation level (None for compact).

    """
    return json.dumps(diff_to_dict(diff), sort_keys=True, indent=indent, ensure_ascii=False)


def from_json(data: str) -> Diff:
    """Deserialize a diff from a JSON string (as produced by to_json)."""
    return diff_from_dict(json.loads(data))


__all__ = [
    "diff_from_dict",
    "diff_to_dict",
    "from_dict",
    "from_json",
    "to_dict",
    "to_json",
]
