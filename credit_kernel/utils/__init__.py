"""Utility modules for the credit kernel."""

from credit_kernel.utils.hashing import (
    canonicalize_json,
    hash_payload,
    short_hash,
    strip_volatile_fields,
)

__all__ = [
    "canonicalize_json",
    "hash_payload",
    "short_hash",
    "strip_volatile_fields",
]
