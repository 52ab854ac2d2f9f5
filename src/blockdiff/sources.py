"""Read and write the documents a comparison works on.

- ``read_project``: a ``project.json`` file, or a directory holding one
- ``read_resource_bundle``: binary resources keyed by filename
- ``read_diff`` / ``write_diff``: the serialized diff artifact

Every failure to open, read or decode an input is reported as
:class:`~blockdiff.errors.DocumentReadError` carrying the offending path.

"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from blockdiff.errors import DocumentReadError
from blockdiff.model import Diff
from blockdiff.serialization import diff_from_dict, to_json
from blockdiff.utils.logger import get_logger

logger = get_logger(__name__)

PROJECT_FILENAME = "project.json"

#: Sub-directories of a resource bundle, searched after the bundle root.
BUNDLE_SUBDIRS: tuple[str, ...] = (
    "added/costumes",
    "added/sounds",
    "modified/costumes/old",
    "modified/costumes/new",
    "modified/sounds/old",
    "modified/sounds/new",
)


def _read_json(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentReadError(path, f"cannot read file ({e})") from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DocumentReadError(path, f"invalid JSON at line {e.lineno} column {e.colno}") from e


def read_project(path: str | Path) -> dict[str, Any]:
    """Read a document from a JSON file or a directory containing one.

    Raises:
        DocumentReadError: If the file is missing, unreadable, not JSON or
            not a JSON object with a ``targets`` list.

    """
    path = Path(path)
    if path.is_dir():
        path = path / PROJECT_FILENAME
    data = _read_json(path)
    if not isinstance(data, dict) or not isinstance(data.get("targets"), list):
        raise DocumentReadError(path, "not a project document (no 'targets' list)")
    logger.debug("Read project %s (%d targets)", path, len(data["targets"]))
    return data


def read_resource_bundle(directory: str | Path) -> dict[str, bytes]:
    """Read every file of a resource bundle, keyed by filename.

    Files at the bundle root come first; files in the sub-directories listed
    in :data:`BUNDLE_SUBDIRS` override them in that order, so the new side of
    a modified resource wins.

    Raises:
        DocumentReadError: If ``directory`` is not a directory or a file
            cannot be read.

    """
    directory = Path(directory)
    if not directory.is_dir():
        raise DocumentReadError(directory, "resource bundle is not a directory")

    resources: dict[str, bytes] = {}
    for folder in (directory, *(directory / sub for sub in BUNDLE_SUBDIRS)):
        if not folder.is_dir():
            continue
        for entry in sorted(folder.iterdir()):
            if not entry.is_file():
                continue
            try:
                resources[entry.name] = entry.read_bytes()
            except OSError as e:
                raise DocumentReadError(entry, f"cannot read resource ({e})") from e
    logger.debug("Read %d resources from %s", len(resources), directory)
    return resources


def read_diff(path: str | Path) -> Diff:
    """Read a serialized diff.

    Raises:
        DocumentReadError: If the file cannot be read or does not hold a
            valid diff.

    """
    path = Path(path)
    data = _read_json(path)
    try:
        return diff_from_dict(data)
    except (ValueError, TypeError, AttributeError) as e:
        raise DocumentReadError(path, f"invalid diff ({e})") from e


def write_diff(path: str | Path, diff: Diff, *, indent: int | None = 2) -> None:
    """Write a diff as JSON, creating parent directories as needed."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(to_json(diff, indent=indent) + "\n", encoding="utf-8")
    except OSError as e:
        raise DocumentReadError(path, f"cannot write diff ({e})") from e


__all__ = [
    "BUNDLE_SUBDIRS",
    "PROJECT_FILENAME",
    "read_diff",
    "read_project",
    "read_resource_bundle",
    "write_diff",
]
