"""
Escrow Chain - event log primitives and shared types.

This package provides:
- primitives: Block, Chain, and hashing
- types: Enums and records for votes, dispositions and claims
"""

from .primitives import (
    hash_data,
    Block,
    BlockType,
    Chain,
)

from .types import (
    Role,
    Vote,
    Disposition,
    ClaimPath,
    Entitlements,
    ClaimResult,
)

__all__ = [
    # Primitives
    "hash_data",
    "Block",
    "BlockType",
    "Chain",
    # Types
    "Role",
    "Vote",
    "Disposition",
    "ClaimPath",
    "Entitlements",
    "ClaimResult",
]
