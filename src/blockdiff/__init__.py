"""
blockdiff: semantic diffs for block-based visual programs

Compares two snapshots of a block-graph project document (``project.json``)
and reports what changed in terms of scripts, statements, variables, lists,
costumes and sounds, independent of block ids and canvas positions.
Zero runtime dependencies.

Quick Start:
    >>> from blockdiff import compare_projects, format_diff
    >>> diff = compare_projects(old_project, new_project)
    >>> print(format_diff(diff))
    2 changes: 1 script edited, 1 block added
    ...

Replaying keyed collections:
    >>> from blockdiff import reconstruct
    >>> result = reconstruct(old_project, diff, resources)
    >>> result.report.skipped
    []

Durable diffs:
    >>> from blockdiff import to_json, from_json
    >>> from_json(to_json(diff)) == diff
    True
"""

from blockdiff.config import (
    DiffConfig,
    diff_config_context,
    get_diff_config,
    reset_diff_config,
    set_diff_config,
)
from blockdiff.differ import compare_projects, diff_assets, diff_keyed, diff_projects
from blockdiff.errors import (
    BlockDiffError,
    DocumentReadError,
    ReconstructionConflictError,
    StructuralError,
)
from blockdiff.fingerprint import fingerprint, fingerprint_script
from blockdiff.formatting import format_diff, format_summary
from blockdiff.linediff import LineDiffResult, diff_lines, format_unified, myers_diff
from blockdiff.loader import LoadedProject, LoadedTarget, StructuralIssue, load_project
from blockdiff.matcher import match_blocks, match_scripts, similarity
from blockdiff.model import Diff, DiffItem, DiffLocation, DiffSummary, DiffType, LineDiffSummary
from blockdiff.nodes import Block, Literal, Script
from blockdiff.profiling import DiffAccumulator, get_diff_accumulator, profiled_compare
from blockdiff.reconstruct import ApplyReport, ReconstructionResult, SkippedItem, reconstruct
from blockdiff.render import render_lines, render_text
from blockdiff.serialization import from_dict, from_json, to_dict, to_json
from blockdiff.sources import read_diff, read_project, read_resource_bundle, write_diff

__version__ = "0.1.0"

__all__ = [
    "ApplyReport",
    "Block",
    "BlockDiffError",
    "Diff",
    "DiffAccumulator",
    "DiffConfig",
    "DiffItem",
    "DiffLocation",
    "DiffSummary",
    "DiffType",
    "DocumentReadError",
    "LineDiffResult",
    "LineDiffSummary",
    "Literal",
    "LoadedProject",
    "LoadedTarget",
    "ReconstructionConflictError",
    "ReconstructionResult",
    "Script",
    "SkippedItem",
    "StructuralError",
    "StructuralIssue",
    "__version__",
    "compare_projects",
    "diff_assets",
    "diff_config_context",
    "diff_keyed",
    "diff_lines",
    "diff_projects",
    "fingerprint",
    "fingerprint_script",
    "format_diff",
    "format_summary",
    "format_unified",
    "from_dict",
    "from_json",
    "get_diff_accumulator",
    "get_diff_config",
    "load_project",
    "match_blocks",
    "match_scripts",
    "myers_diff",
    "profiled_compare",
    "read_diff",
    "read_project",
    "read_resource_bundle",
    "reconstruct",
    "render_lines",
    "render_text",
    "reset_diff_config",
    "set_diff_config",
    "similarity",
    "to_dict",
    "to_json",
    "write_diff",
]
