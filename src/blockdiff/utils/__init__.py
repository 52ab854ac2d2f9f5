"""Utility modules for blockdiff.

Provides:
- hashing: hash_str, hash_bytes for content fingerprinting
- logger: get_logger for logging
"""

from blockdiff.utils.hashing import hash_bytes, hash_str
from blockdiff.utils.logger import get_logger

__all__ = [
    "get_logger",
    "hash_bytes",
    "hash_str",
]
