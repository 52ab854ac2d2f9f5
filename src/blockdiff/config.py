"""ContextVar-based diff configuration for blockdiff.

Provides context-local configuration using Python's ContextVars (PEP 567).
Every stage of a comparison (loader, fingerprinter, matcher, differ,
reconstructor) reads the active config instead of taking a dozen keyword
arguments.

Thread Safety:
    ContextVars are thread-local by design. Each thread has independent storage,
    so no locks are needed and two comparisons with different settings can run
    side by side.

Usage:
    from blockdiff.config import DiffConfig, diff_config_context

    with diff_config_context(DiffConfig(similarity_threshold=0.7)):
        diff = compare_projects(old, new)

"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass

#: Input slots that hold structural children, in child order.
DEFAULT_STRUCTURAL_SLOTS: tuple[str, ...] = ("CONDITION", "SUBSTACK", "SUBSTACK2")

#: Keys stripped from keyed-collection entries before comparing them.
DEFAULT_VOLATILE_KEYS: frozenset[str] = frozenset({"x", "y", "id", "parent"})


@dataclass(frozen=True, slots=True)
class DiffConfig:
    """Immutable comparison configuration.

    Attributes:
        similarity_threshold: Score a fallback script match must exceed
        prefix_weight: Weight of the common-prefix ratio in the similarity
            score; the size ratio gets ``1 - prefix_weight``
        fingerprint_length: Hex characters kept from each fingerprint digest
        hash_algorithm: hashlib algorithm used for fingerprints
        structural_slots: Input slots materialized as structural children
        volatile_keys: Keys dropped from collection entries before comparison
        block_items: Emit block-level items under each script edit
        strict_structure: Raise StructuralError instead of truncating
        strict_replay: Raise ReconstructionConflictError instead of skipping

    """

    similarity_threshold: float = 0.5
    prefix_weight: float = 0.5
    fingerprint_length: int = 32
    hash_algorithm: str = "sha256"
    structural_slots: tuple[str, ...] = DEFAULT_STRUCTURAL_SLOTS
    volatile_keys: frozenset[str] = DEFAULT_VOLATILE_KEYS
    block_items: bool = True
    strict_structure: bool = False
    strict_replay: bool = False

    @classmethod
    def from_dict(cls, config_dict: dict) -> "DiffConfig":
        """Create DiffConfig from dictionary.

        Only includes keys that are valid DiffConfig fields; unknown keys
        are silently ignored. Sequences given for ``structural_slots`` and
        ``volatile_keys`` are coerced to the field types.

        Args:
            config_dict: Dictionary with config values. Keys should match
                DiffConfig attribute names.

        Returns:
            New DiffConfig instance with values from dict.

        Example:
            >>> config = DiffConfig.from_dict({
            ...     "similarity_threshold": 0.8,
            ...     "unknown_key": "ignored",
            ... })
            >>> config.similarity_threshold
            0.8

        """
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in config_dict.items() if k in valid_fields}
        if "structural_slots" in filtered:
            filtered["structural_slots"] = tuple(filtered["structural_slots"])
        if "volatile_keys" in filtered:
            filtered["volatile_keys"] = frozenset(filtered["volatile_keys"])
        return cls(**filtered)


# Module-level default config (reused, never recreated)
_DEFAULT_CONFIG: DiffConfig = DiffConfig()

_diff_config: ContextVar[DiffConfig] = ContextVar(
    "diff_config",
    default=_DEFAULT_CONFIG,
)


def get_diff_config() -> DiffConfig:
    """Get current diff configuration (context-local)."""
    return _diff_config.get()


def set_diff_config(config: DiffConfig) -> None:
    """Set diff configuration for current context.

    Args:
        config: DiffConfig instance to use for this context.

    """
    _diff_config.set(config)


def reset_diff_config() -> None:
    """Reset to default configuration.

    Reuses the module-level _DEFAULT_CONFIG singleton, avoiding allocation.

    """
    _diff_config.set(_DEFAULT_CONFIG)


@contextmanager
def diff_config_context(config: DiffConfig) -> Iterator[None]:
    """Context manager for temporary config changes.

    Args:
        config: DiffConfig to use within the context.

    Yields:
        None

    Example:
        >>> with diff_config_context(DiffConfig(block_items=False)):
        ...     diff = compare_projects(old, new)
        >>> # Automatically reset to previous config

    """
    previous = _diff_config.get()
    _diff_config.set(config)
    try:
        yield
    finally:
        _diff_config.set(previous)


__all__ = [
    "DEFAULT_STRUCTURAL_SLOTS",
    "DEFAULT_VOLATILE_KEYS",
    "DiffConfig",
    "diff_config_context",
    "get_diff_config",
    "reset_diff_config",
    "set_diff_config",
]
