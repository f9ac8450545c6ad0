"""
Core ledger primitives: hashing, Block, and the escrow event Chain.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import List, Optional, Dict, Any
from enum import Enum


# =============================================================================
# Hashing
# =============================================================================

def hash_data(data: dict) -> str:
    """Compute deterministic hash of a dictionary."""
    canonical = json.dumps(data, sort_keys=True, separators=(',', ':'), default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()[:16]


# =============================================================================
# Block Types
# =============================================================================

class BlockType(Enum):
    """Observable events recorded in an escrow's chain."""
    GENESIS = "genesis"                        # Escrow created with its terms
    VOTE_CAST = "vote_cast"                    # A party cast or changed its vote
    CONSENSUS_REACHED = "consensus_reached"    # Both votes matched, disposition fixed
    FUNDS_CLAIMED = "funds_claimed"            # Payout through the resolved path
    FUNDS_RECEIVED = "funds_received"          # Deposit, with running total
    TIME_BASED_CLAIM = "time_based_claim"      # Payout through the fallback path
    GOODWILL_UPDATED = "goodwill_updated"      # Declared only; no operation emits it


# =============================================================================
# Block Structure
# =============================================================================

@dataclass
class Block:
    """
    A single recorded event.

    Blocks are hash-linked: each one carries the hash of its predecessor,
    so an auditor replaying the chain can detect a rewritten history.
    """
    # Chain structure
    owner: str                    # Escrow the block belongs to
    sequence: int                 # Position in chain
    previous_hash: str            # Hash of previous block in this chain

    # Content
    block_type: BlockType
    timestamp: float
    payload: dict

    block_hash: str = ""

    def __post_init__(self):
        if not self.block_hash:
            self.block_hash = self.compute_hash()

    def compute_hash(self) -> str:
        """Compute the hash of this block."""
        data = {
            "owner": self.owner,
            "sequence": self.sequence,
            "previous_hash": self.previous_hash,
            "block_type": self.block_type.value,
            "timestamp": self.timestamp,
            "payload": self.payload,
        }
        return hash_data(data)

    def to_dict(self) -> dict:
        """Serialize block to dictionary."""
        return {
            "owner": self.owner,
            "sequence": self.sequence,
            "previous_hash": self.previous_hash,
            "block_type": self.block_type.value,
            "timestamp": self.timestamp,
            "payload": self.payload,
            "block_hash": self.block_hash,
        }


# =============================================================================
# Event Chain
# =============================================================================

class Chain:
    """
    The append-only event log of one escrow.

    Records:
    - Genesis (creation terms)
    - Votes and the consensus outcome
    - Deposits
    - Payouts through either claim path
    """

    def __init__(self, escrow_id: str, current_time: float, terms: Optional[Dict[str, Any]] = None):
        self.escrow_id = escrow_id
        self.blocks: List[Block] = []

        genesis = Block(
            owner=escrow_id,
            sequence=0,
            previous_hash="0" * 16,
            block_type=BlockType.GENESIS,
            timestamp=current_time,
            payload={"created": current_time, "terms": terms or {}},
        )
        self.blocks.append(genesis)

    @property
    def head(self) -> Block:
        """Get the most recent block."""
        return self.blocks[-1]

    @property
    def head_hash(self) -> str:
        """Get the hash of the most recent block."""
        return self.head.block_hash

    def __len__(self) -> int:
        return len(self.blocks)

    def append(self, block_type: BlockType, payload: dict, timestamp: float) -> Block:
        """Append a new block to the chain."""
        block = Block(
            owner=self.escrow_id,
            sequence=len(self.blocks),
            previous_hash=self.head_hash,
            block_type=block_type,
            timestamp=timestamp,
            payload=payload,
        )
        self.blocks.append(block)
        return block

    def rewind(self, length: int):
        """
        Drop every block past `length`.

        Used to undo the events of an operation that failed part way.
        Genesis can never be removed.
        """
        if length < 1:
            raise ValueError("cannot rewind past genesis")
        del self.blocks[length:]

    def get_blocks_by_type(self, block_type: BlockType) -> List[Block]:
        """Get all blocks of a given type."""
        return [b for b in self.blocks if b.block_type == block_type]

    def verify_chain(self) -> bool:
        """Verify the chain's integrity."""
        if not self.blocks:
            return False

        # Check genesis
        if self.blocks[0].previous_hash != "0" * 16:
            return False

        # Check hash chain
        for i in range(1, len(self.blocks)):
            if self.blocks[i].previous_hash != self.blocks[i-1].block_hash:
                return False
            if self.blocks[i].sequence != i:
                return False
            if self.blocks[i].block_hash != self.blocks[i].compute_hash():
                return False

        return True

