"""
Two-party escrow contract.

Wires the consensus engine, the time-gated fallback and the claim
dispatcher to the clock and funds collaborators, and records every
successful operation on the escrow's event chain.

Operations:
  - create(...)            one-time setup from EscrowTerms
  - deposit(sender, amount)
  - vote(caller, choice)
  - claim(caller)

Every operation is all-or-nothing: if it raises, votes, ledger records,
counters and the event chain are exactly as they were before the call.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional, Tuple

from ..chain.primitives import Chain, BlockType, hash_data
from ..chain.types import Role, Vote, Disposition, ClaimPath, ClaimResult
from ..config import EscrowTerms
from ..errors import InvalidAmount, BalanceUnderflow
from .ledger import BalanceRecord
from .consensus import ConsensusEngine
from .fallback import TimeGatedFallback
from .dispatcher import ClaimDispatcher

logger = logging.getLogger(__name__)


class EscrowContract:
    """A single escrow between an owner and a participant."""

    def __init__(self, terms: EscrowTerms, clock, funds, escrow_id: Optional[str] = None):
        terms.validate()
        self.terms = terms
        self.clock = clock
        self.funds = funds
        self.created_at = clock.now()
        self.escrow_id = escrow_id or hash_data({
            "terms": terms.to_dict(),
            "created_at": self.created_at,
        })
        self.chain = Chain(self.escrow_id, self.created_at, terms.to_dict())

        self.engine = ConsensusEngine(
            owner=terms.owner,
            participant=terms.participant,
            reserve=terms.reserve_amount,
            held_balance=funds.balance,
        )
        self.ledger = self.engine.ledger
        self.fallback = TimeGatedFallback(
            owner=terms.owner,
            participant=terms.participant,
            created_at=self.created_at,
            participant_delay_days=terms.participant_delay_days,
            owner_delay_days=terms.owner_delay_days,
            reserve=terms.reserve_amount,
            ledger=self.ledger,
            held_balance=funds.balance,
        )
        self.dispatcher = ClaimDispatcher(self.engine, self.fallback, funds, clock)

        self.total_received = 0
        self.unattributed_received = 0
        logger.debug("Escrow %s created for %s/%s", self.escrow_id, terms.owner, terms.participant)

    @classmethod
    def create(cls, owner: str, participant: str, initial_amount: int,
               participant_delay_days: int, owner_delay_days: int, reserve_amount: int,
               clock, funds) -> 'EscrowContract':
        """Validate the terms and create the escrow."""
        terms = EscrowTerms(
            owner=owner,
            participant=participant,
            initial_amount=initial_amount,
            participant_delay_days=participant_delay_days,
            owner_delay_days=owner_delay_days,
            reserve_amount=reserve_amount,
        )
        return cls(terms, clock, funds)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def owner(self) -> str:
        return self.terms.owner

    @property
    def participant(self) -> str:
        return self.terms.participant

    @property
    def reserve(self) -> int:
        return self.terms.reserve_amount

    @property
    def goodwill_amount(self) -> int:
        return self.terms.initial_amount

    @property
    def is_resolved(self) -> bool:
        return self.engine.is_resolved

    @property
    def disposition(self) -> Optional[Disposition]:
        return self.engine.disposition

    def vote_of(self, identity: str) -> Vote:
        return self.engine.vote_of(identity)

    # =========================================================================
    # Transactions
    # =========================================================================

    @contextmanager
    def _atomic(self):
        engine_state = self.engine.snapshot()
        fallback_state = self.fallback.snapshot()
        counters = (self.total_received, self.unattributed_received)
        chain_length = len(self.chain)
        try:
            yield
        except Exception:
            self.engine.restore(engine_state)
            self.fallback.restore(fallback_state)
            self.total_received, self.unattributed_received = counters
            self.chain.rewind(chain_length)
            raise

    def deposit(self, sender: str, amount: int) -> int:
        """
        Accept `amount` from any sender.

        Before resolution the deposit is provisionally credited to the
        participant. After resolution it is held but attributed to no one.

        Returns:
            The running total of value ever received.
        """
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise InvalidAmount(f"Deposit amount must be a positive integer, got {amount!r}")

        with self._atomic():
            self.funds.receive(amount)
            self.total_received += amount
            if self.engine.is_resolved:
                self.unattributed_received += amount
                logger.warning(
                    "Deposit of %d from %s arrived after resolution and is not attributed",
                    amount, sender,
                )
            else:
                self.ledger.credit(self.participant, amount)
                logger.debug("Deposit of %d from %s credited to participant", amount, sender)

            self.chain.append(BlockType.FUNDS_RECEIVED, {
                "sender": sender,
                "amount": amount,
                "total_received": self.total_received,
            }, self.clock.now())
        return self.total_received

    def vote(self, caller: str, choice: Vote) -> Optional[Disposition]:
        """
        Cast or change `caller`'s vote.

        Returns:
            The disposition if this vote reached consensus, else None.
        """
        with self._atomic():
            disposition = self.engine.cast_vote(caller, choice)
            now = self.clock.now()
            self.chain.append(BlockType.VOTE_CAST, {"voter": caller, "vote": choice.name}, now)
            if disposition is not None:
                shares = self.engine.entitlements
                self.chain.append(BlockType.CONSENSUS_REACHED, {
                    "disposition": disposition.name,
                    "participant_total": shares.participant,
                    "owner_total": shares.owner,
                }, now)
        return disposition

    def claim(self, caller: str) -> ClaimResult:
        """Pay `caller` through whichever path is currently open."""
        with self._atomic():
            result = self.dispatcher.claim(caller)
            block_type = (BlockType.FUNDS_CLAIMED if result.path == ClaimPath.RESOLVED
                          else BlockType.TIME_BASED_CLAIM)
            self.chain.append(block_type, {
                "claimant": caller,
                "amount": result.amount,
            }, self.clock.now())
        return result

    # =========================================================================
    # Queries
    # =========================================================================

    def held_balance(self) -> int:
        return self.funds.balance()

    def balance_of(self, identity: str) -> BalanceRecord:
        return self.ledger.record(identity)

    def participant_balance(self) -> Tuple[int, int]:
        """(total, claimed) for the participant."""
        return self.ledger.record(self.participant).as_tuple()

    def available_balance(self) -> int:
        """Held balance less one reserve."""
        held = self.funds.balance()
        if held < self.reserve:
            raise BalanceUnderflow(held, self.reserve)
        return held - self.reserve

    def time_until_participant_claim(self) -> float:
        return self.fallback.time_remaining(Role.PARTICIPANT, self.clock.now())

    def time_until_owner_claim(self) -> float:
        return self.fallback.time_remaining(Role.OWNER, self.clock.now())

    def unattributed_balance(self) -> int:
        """
        Value received after resolution.

        No entitlement covers it, so neither claim path can ever pay it out.
        """
        return self.unattributed_received

    def snapshot(self) -> Dict[str, Any]:
        return {
            "escrow_id": self.escrow_id,
            "owner": self.owner,
            "participant": self.participant,
            "resolved": self.is_resolved,
            "disposition": self.disposition.name if self.disposition else None,
            "votes": {
                self.engine.identity_of(role): vote.name
                for role, vote in self.engine.votes.items()
            },
            "balances": self.ledger.to_dict(),
            "held": self.funds.balance(),
            "total_received": self.total_received,
            "unattributed": self.unattributed_received,
            "time_based_claims": sorted(
                self.engine.identity_of(role) for role in self.fallback.claimed_by
            ),
        }
