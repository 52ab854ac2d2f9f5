"""Exception classes for blockdiff.

Provides standardized exceptions for error handling throughout blockdiff.

Recovery policy:
    StructuralError and ReconstructionConflictError are recovered locally
    (the loader truncates the script, the reconstructor skips the item) and
    only propagate when the matching ``strict_*`` config flag is set.
    DocumentReadError is always fatal for the requested operation.
"""

from __future__ import annotations

from pathlib import Path


class BlockDiffError(Exception):
    """Base exception for all blockdiff errors.

    Subclass this for specific error categories.
    """

    pass


class StructuralError(BlockDiffError):
    """Malformed or cyclic block graph.

    Raised for a dangling ``next``, a missing referenced id or a re-entrant
    cycle, when the loader runs with ``strict_structure`` enabled.
    """

    def __init__(
        self,
        message: str,
        target_name: str | None = None,
        block_id: str | None = None,
    ) -> None:
        """Initialize structural error with optional location.

        Args:
            message: Error description
            target_name: Target owning the broken script (optional)
            block_id: Offending block id (optional)
        """
        self.message = message
        self.target_name = target_name
        self.block_id = block_id

        location = ""
        if target_name:
            location = f"{target_name}:"
        if block_id:
            location += f"{block_id}:"
        if location:
            location = location.rstrip(":") + " "

        super().__init__(f"{location}{message}")


class DocumentReadError(BlockDiffError, OSError):
    """Source document, diff file or resource could not be read.

    Always fatal: there is no partial-diff mode.
    """

    def __init__(self, path: str | Path, message: str) -> None:
        """Initialize read error.

        Args:
            path: Path that could not be read
            message: Description of the failure
        """
        self.path = str(path)
        self.message = message
        super().__init__(f"{self.path}: {message}")

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class ReconstructionConflictError(BlockDiffError):
    """A diff item cannot be applied to the base state.

    Raised when the item targets a collection entry or target that is absent
    (or, for additions, already present) during replay.
    """

    def __init__(self, item_type: str, target_name: str, message: str) -> None:
        """Initialize conflict error.

        Args:
            item_type: Wire type of the diff item (e.g., "costume-edit")
            target_name: Target named by the item's location
            message: Description of the conflict
        """
        self.item_type = item_type
        self.target_name = target_name
        self.message = message
        super().__init__(f"{item_type} on '{target_name}': {message}")
