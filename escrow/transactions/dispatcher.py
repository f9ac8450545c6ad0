"""
Claim Dispatcher: the single entry point a party calls to get paid.

Before resolution every claim goes to the time-gated fallback. After
resolution claims are paid from the ledger, incrementally, always leaving
one reserve behind for the other party's closing claim.
"""

import logging

from ..chain.types import ClaimPath, ClaimResult
from ..errors import NoClaimableAmount, InsufficientContractBalance, TransferFailed
from .consensus import ConsensusEngine
from .fallback import TimeGatedFallback

logger = logging.getLogger(__name__)


class ClaimDispatcher:
    """
    Routes claims and performs the transfer.

    Ledger effects are committed before the transfer is attempted, so a
    claim that re-enters during the transfer sees nothing left to take.
    If the transfer fails the dispatcher undoes its own ledger and
    fallback effects, so it leaves consistent state even when driven
    without the contract's rollback (the contract's restore is then a
    no-op for those parts).
    """

    def __init__(self, engine: ConsensusEngine, fallback: TimeGatedFallback, funds, clock):
        self.engine = engine
        self.fallback = fallback
        self.ledger = engine.ledger
        self.funds = funds
        self.clock = clock

    @property
    def reserve(self) -> int:
        return self.engine.reserve

    def claim(self, caller: str) -> ClaimResult:
        if not self.engine.is_resolved:
            return self._claim_time_gated(caller)
        return self._claim_resolved(caller)

    def _claim_resolved(self, caller: str) -> ClaimResult:
        claimable = self.ledger.record(caller).claimable
        if claimable == 0:
            raise NoClaimableAmount(caller)

        held = self.funds.balance()
        if held < claimable + self.reserve:
            raise InsufficientContractBalance(claimable + self.reserve, held)

        before = self.ledger.snapshot()
        amount = self.ledger.commit_claim(caller)
        self._pay(caller, amount, before)

        logger.info("Resolved claim by %s: %d", caller, amount)
        return ClaimResult(claimant=caller, amount=amount, path=ClaimPath.RESOLVED)

    def _claim_time_gated(self, caller: str) -> ClaimResult:
        before = self.ledger.snapshot()
        claimed_before = self.fallback.snapshot()
        amount = self.fallback.claim(caller, self.clock.now())
        try:
            self._pay(caller, amount, before)
        except TransferFailed:
            self.fallback.restore(claimed_before)
            raise
        return ClaimResult(claimant=caller, amount=amount, path=ClaimPath.TIME_GATED)

    def _pay(self, recipient: str, amount: int, ledger_before):
        if not self.funds.transfer(recipient, amount):
            self.ledger.restore(ledger_before)
            logger.warning("Transfer of %d to %s failed; claim undone", amount, recipient)
            raise TransferFailed(recipient, amount)
