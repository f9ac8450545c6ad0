"""
Escrow transactions: the balance ledger, consensus, the time-gated
fallback, claim dispatch, and the contract that ties them together.
"""

from .ledger import BalanceRecord, BalanceLedger
from .consensus import ConsensusEngine, split_entitlements
from .fallback import TimeGatedFallback
from .dispatcher import ClaimDispatcher
from .contract import EscrowContract

__all__ = [
    "BalanceRecord",
    "BalanceLedger",
    "ConsensusEngine",
    "split_entitlements",
    "TimeGatedFallback",
    "ClaimDispatcher",
    "EscrowContract",
]
