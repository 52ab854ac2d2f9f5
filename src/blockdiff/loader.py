"""Graph loader: rebuild tree-shaped scripts from a flat block map.

Each target stores its blocks as a flat ``id -> record`` map where records
point at each other through ``next``, input references and ``parent``. The
loader walks that graph from every top-level, non-shadow block and builds an
owned :class:`~blockdiff.nodes.TreeNode` tree per script:

1. Walk the ``next`` chain from the root, collecting statements.
2. For every statement, materialize the structural slots (condition, primary
   branch, alternate branch) as child chains, in the configured slot order.
3. Materialize every other input that references a block id as a nested
   expression sub-tree.
4. Link the chain tail-first so long scripts never recurse per statement.

Malformed graphs degrade locally. Each walk keeps a visited-id set: a
reference that re-enters a visited id, or names an id that does not exist,
truncates the script at that point and is recorded as a
:class:`StructuralIssue` (or raised as StructuralError in strict mode).

Thread Safety:
    All functions are pure over their inputs. Safe to load the old and the
    new document from different threads.

"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from blockdiff.canonical import canonicalize
from blockdiff.config import get_diff_config
from blockdiff.errors import StructuralError
from blockdiff.fingerprint import fingerprint
from blockdiff.nodes import Script, TreeNode
from blockdiff.utils.logger import get_logger

logger = get_logger(__name__)

IssueKind = Literal["cycle", "missing"]


@dataclass(frozen=True, slots=True)
class StructuralIssue:
    """A truncation recorded while loading a script.

    Attributes:
        kind: "cycle" for a re-entered id, "missing" for an absent id
        target_name: Target owning the script
        script_id: Top-level block id of the truncated script
        block_id: The id that could not be followed
        referrer_id: Block holding the broken reference
        slot: "next" or the input name holding the reference

    """

    kind: IssueKind
    target_name: str
    script_id: str
    block_id: str
    referrer_id: str | None = None
    slot: str | None = None

    def describe(self) -> str:
        """Human-readable one-liner for logs and reports."""
        what = "re-enters visited block" if self.kind == "cycle" else "references missing block"
        via = f" via {self.slot}" if self.slot else ""
        return (
            f"script {self.script_id!r} in {self.target_name!r}: "
            f"{self.referrer_id!r}{via} {what} {self.block_id!r}"
        )


@dataclass(frozen=True, slots=True)
class LoadedTarget:
    """A target with its scripts rebuilt and fingerprinted.

    Scripts are sorted by ``(fingerprint, top_id)`` so every later stage sees
    them in a deterministic order. Keyed collections are kept in their native
    shape; the differ canonicalizes them when comparing.

    """

    name: str
    is_stage: bool
    scripts: tuple[Script, ...]
    variables: dict[str, Any] = field(default_factory=dict)
    lists: dict[str, Any] = field(default_factory=dict)
    costumes: list[Any] = field(default_factory=list)
    sounds: list[Any] = field(default_factory=list)
    issues: tuple[StructuralIssue, ...] = ()


@dataclass(frozen=True, slots=True)
class LoadedProject:
    """All targets of one document, in document order."""

    targets: tuple[LoadedTarget, ...]

    def target(self, name: str) -> LoadedTarget | None:
        """Return the first target called ``name``, if any."""
        for target in self.targets:
            if target.name == name:
                return target
        return None

    @property
    def issues(self) -> tuple[StructuralIssue, ...]:
        return tuple(issue for target in self.targets for issue in target.issues)

    @property
    def script_count(self) -> int:
        return sum(len(target.scripts) for target in self.targets)


class _ScriptWalker:
    """One walk over one script. Owns the visited set and the issue list."""

    __slots__ = ("_blocks", "_script_id", "_slots", "_strict", "_target_name", "_visited", "issues")

    def __init__(self, blocks: Mapping[str, Any], target_name: str, script_id: str) -> None:
        config = get_diff_config()
        self._blocks = blocks
        self._target_name = target_name
        self._script_id = script_id
        self._slots = config.structural_slots
        self._strict = config.strict_structure
        self._visited: set[str] = set()
        self.issues: list[StructuralIssue] = []

    def chain(self, start_id: str, referrer_id: str | None, slot: str | None) -> TreeNode | None:
        """Build the chain starting at ``start_id``; None if it cannot be entered."""
        parts: list[tuple[str, Mapping[str, Any], dict[str, Any], tuple[tuple[str, TreeNode], ...]]] = []
        block_id: Any = start_id
        while isinstance(block_id, str):
            record = self._enter(block_id, referrer_id, slot)
            if record is None:
                break
            parts.append((block_id, record, self._inputs(block_id, record), self._children(block_id, record)))
            referrer_id, slot = block_id, "next"
            block_id = record.get("next")

        node: TreeNode | None = None
        for part_id, record, inputs, children in reversed(parts):
            node = TreeNode(
                block_id=part_id,
                opcode=str(record.get("opcode", "")),
                fields=dict(record.get("fields") or {}),
                inputs=inputs,
                mutation=record.get("mutation"),
                children=children,
                next=node,
                parent=record.get("parent"),
                x=record.get("x"),
                y=record.get("y"),
                shadow=bool(record.get("shadow", False)),
            )
        return node

    def _enter(self, block_id: str, referrer_id: str | None, slot: str | None) -> Mapping[str, Any] | None:
        if block_id in self._visited:
            self._record("cycle", block_id, referrer_id, slot)
            return None
        record = self._blocks.get(block_id)
        if not isinstance(record, Mapping):
            self._record("missing", block_id, referrer_id, slot)
            return None
        self._visited.add(block_id)
        return record

    def _inputs(self, block_id: str, record: Mapping[str, Any]) -> dict[str, Any]:
        inputs: dict[str, Any] = {}
        for name, raw in (record.get("inputs") or {}).items():
            if name in self._slots:
                continue
            value = _effective_value(raw)
            if isinstance(value, str):
                inputs[name] = self.chain(value, block_id, name)
            else:
                inputs[name] = value
        return inputs

    def _children(self, block_id: str, record: Mapping[str, Any]) -> tuple[tuple[str, TreeNode], ...]:
        raw_inputs = record.get("inputs") or {}
        children: list[tuple[str, TreeNode]] = []
        for slot in self._slots:
            value = _effective_value(raw_inputs.get(slot))
            if not isinstance(value, str):
                continue
            child = self.chain(value, block_id, slot)
            if child is not None:
                children.append((slot, child))
        return tuple(children)

    def _record(self, kind: IssueKind, block_id: str, referrer_id: str | None, slot: str | None) -> None:
        issue = StructuralIssue(
            kind=kind,
            target_name=self._target_name,
            script_id=self._script_id,
            block_id=block_id,
            referrer_id=referrer_id,
            slot=slot,
        )
        if self._strict:
            raise StructuralError(issue.describe(), target_name=self._target_name, block_id=block_id)
        logger.warning("Truncated %s", issue.describe())
        self.issues.append(issue)


def _effective_value(raw: Any) -> Any:
    """Return the value an input actually evaluates.

    Native inputs are ``[shadow_type, value]`` or, when a reporter covers a
    default, ``[shadow_type, value, obscured_shadow]``. Only ``value`` counts.
    """
    if isinstance(raw, list | tuple) and len(raw) >= 2:
        return raw[1]
    return None


def build_tree(
    blocks: Mapping[str, Any],
    top_id: str,
    target_name: str = "",
) -> tuple[TreeNode | None, list[StructuralIssue]]:
    """Rebuild one script rooted at ``top_id``.

    Args:
        blocks: The target's raw ``id -> record`` map.
        top_id: Id of the script's root block.
        target_name: Owning target, for issue reporting.

    Returns:
        The tree (None if the root itself is absent) and the issues found.

    Raises:
        StructuralError: On the first issue, when ``strict_structure`` is set.

    """
    walker = _ScriptWalker(blocks, target_name, top_id)
    root = walker.chain(top_id, None, None)
    return root, walker.issues


def is_script_root(record: Any) -> bool:
    """True for top-level, non-shadow block records."""
    return isinstance(record, Mapping) and bool(record.get("topLevel")) and not record.get("shadow")


def load_target(raw_target: Mapping[str, Any]) -> LoadedTarget:
    """Load every script of one target and fingerprint it.

    Args:
        raw_target: One entry of the document's ``targets`` array.

    Returns:
        LoadedTarget with scripts sorted by fingerprint.

    """
    name = str(raw_target.get("name", ""))
    blocks: Mapping[str, Any] = raw_target.get("blocks") or {}

    scripts: list[Script] = []
    issues: list[StructuralIssue] = []
    for block_id, record in blocks.items():
        if not is_script_root(record):
            continue
        tree, found = build_tree(blocks, block_id, name)
        issues.extend(found)
        if tree is None:
            continue
        root = canonicalize(tree)
        scripts.append(
            Script(target_name=name, top_id=block_id, root=root, fingerprint=fingerprint(root))
        )

    scripts.sort(key=lambda script: (script.fingerprint, script.top_id))
    logger.debug("Loaded %d scripts from target %r", len(scripts), name)

    return LoadedTarget(
        name=name,
        is_stage=bool(raw_target.get("isStage", False)),
        scripts=tuple(scripts),
        variables=dict(raw_target.get("variables") or {}),
        lists=dict(raw_target.get("lists") or {}),
        costumes=list(raw_target.get("costumes") or []),
        sounds=list(raw_target.get("sounds") or []),
        issues=tuple(issues),
    )


def load_project(raw_project: Mapping[str, Any]) -> LoadedProject:
    """Load all targets of a deserialized document.

    Args:
        raw_project: The parsed ``project.json`` mapping.

    Returns:
        LoadedProject with targets in document order.

    Raises:
        ValueError: If the document has no ``targets`` list.

    """
    raw_targets = raw_project.get("targets")
    if not isinstance(raw_targets, list):
        msg = "Document has no 'targets' list"
        raise ValueError(msg)
    return LoadedProject(targets=tuple(load_target(raw) for raw in raw_targets))


__all__ = [
    "LoadedProject",
    "LoadedTarget",
    "StructuralIssue",
    "build_tree",
    "is_script_root",
    "load_project",
    "load_target",
]
