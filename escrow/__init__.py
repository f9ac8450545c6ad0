"""
Two-party escrow disbursement.

An owner and a participant vote on how pooled funds are disposed of
(refund, split, or pay in full). When they never agree, each may make a
single time-gated claim once their delay has passed.
"""

from .config import EscrowTerms, load_terms
from .errors import EscrowError
from .chain.types import Vote, Disposition
from .transactions.contract import EscrowContract

__version__ = "0.1.0"

__all__ = [
    "EscrowTerms",
    "load_terms",
    "EscrowError",
    "Vote",
    "Disposition",
    "EscrowContract",
]
