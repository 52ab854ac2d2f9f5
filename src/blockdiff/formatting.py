"""Plain-text rendering of a diff for terminals and logs.

No colors and no markup: the summary line first, then one section per
target listing its items. In detailed mode the embedded line diff of every
script or block edit is indented under the item.

Example:
    >>> print(format_diff(diff, detailed=False))
    4 changes: 1 script edited, 1 block added, 1 variable edited, 1 costume added

    Sprite1
      ~ variable score
      + costume cat-b
      ~ script (3 lines, +1 -0)
      + block 2: control_wait DURATION="1"

"""

from __future__ import annotations

from typing import Any

from blockdiff.model import CATEGORIES, Diff, DiffItem, DiffSummary

_MARKERS = {"add": "+", "delete": "-", "edit": "~"}
_VERBS = {"add": "added", "delete": "deleted", "edit": "edited"}


def format_summary(summary: DiffSummary) -> str:
    """One-line count summary, e.g. ``3 changes: 2 scripts edited, 1 sound added``."""
    total = summary.total
    if total == 0:
        return "No changes"
    parts = []
    for category in CATEGORIES:
        for operation in ("edit", "add", "delete"):
            count = summary.count(category, operation)
            if count:
                noun = category if count == 1 else f"{category}s"
                parts.append(f"{count} {noun} {_VERBS[operation]}")
    plural = "change" if total == 1 else "changes"
    return f"{total} {plural}: " + ", ".join(parts)


def format_item(item: DiffItem) -> str:
    """One line describing an item (without its line diff)."""
    marker = _MARKERS[item.operation]
    payload = item.new if item.new is not None else item.old

    if item.category == "script":
        lines = _text_of(payload).count("\n") + 1
        if item.diff is not None:
            return f"{marker} script ({lines} lines, +{item.diff.added} -{item.diff.removed})"
        return f"{marker} script ({lines} lines)"
    if item.category == "block":
        path = item.location.block_path or "?"
        return f"{marker} block {path}: {_text_of(payload).strip()}"
    if item.category in ("variable", "list"):
        name = payload[0] if isinstance(payload, list) and payload else item.fingerprint
        return f"{marker} {item.category} {name}"
    name = payload.get("name") if isinstance(payload, dict) else None
    return f"{marker} {item.category} {name or item.fingerprint}"


def _text_of(payload: Any) -> str:
    if isinstance(payload, dict):
        return str(payload.get("text", ""))
    return ""


def format_diff(diff: Diff, *, detailed: bool = True) -> str:
    """Render a whole diff as plain text.

    Args:
        diff: Diff to render.
        detailed: Include the line diff under every script and block edit.

    """
    lines = [format_summary(diff.summary)]
    for target_name, items in diff.by_target().items():
        lines.append("")
        lines.append(target_name)
        for item in items:
            lines.append("  " + format_item(item))
            if detailed and item.diff is not None:
                lines.extend("      " + line for line in item.diff.text.split("\n"))
    return "\n".join(lines)


__all__ = ["format_diff", "format_item", "format_summary"]
