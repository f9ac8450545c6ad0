"""
Time-Gated Fallback: a one-shot unilateral claim for when votes never agree.

Each party unlocks independently, a fixed number of days after creation.
The participant's delay is strictly shorter than the owner's. Whoever
claims takes the whole held balance less a single reserve.
"""

import logging
from typing import Callable, Dict, Optional, Set

from ..chain.types import Role
from ..errors import (
    NotAuthorized, TooEarlyToClaim, AlreadyClaimed, NoClaimableAmount, BalanceUnderflow,
)
from ..native.clock import SECONDS_PER_DAY
from .ledger import BalanceLedger

logger = logging.getLogger(__name__)


class TimeGatedFallback:
    """Per-party unlock schedule measured from `created_at`."""

    def __init__(self, owner: str, participant: str, created_at: float,
                 participant_delay_days: int, owner_delay_days: int, reserve: int,
                 ledger: BalanceLedger, held_balance: Callable[[], int]):
        if participant_delay_days >= owner_delay_days:
            raise ValueError("participant delay must be shorter than owner delay")

        self.owner = owner
        self.participant = participant
        self.created_at = created_at
        self.delays: Dict[Role, float] = {
            Role.PARTICIPANT: participant_delay_days * SECONDS_PER_DAY,
            Role.OWNER: owner_delay_days * SECONDS_PER_DAY,
        }
        self.reserve = reserve
        self.ledger = ledger
        self._held_balance = held_balance
        self.claimed_by: Set[Role] = set()

    def role_of(self, identity: str) -> Optional[Role]:
        if identity == self.owner:
            return Role.OWNER
        if identity == self.participant:
            return Role.PARTICIPANT
        return None

    def unlock_time(self, role: Role) -> float:
        return self.created_at + self.delays[role]

    def time_remaining(self, role: Role, now: float) -> float:
        """Seconds until `role` may claim; 0 once eligible."""
        return max(0.0, self.unlock_time(role) - now)

    def has_claimed(self, identity: str) -> bool:
        role = self.role_of(identity)
        return role in self.claimed_by

    def claim(self, caller: str, now: float) -> int:
        """
        Grant `caller` everything currently held less one reserve.

        Updates the ledger and marks the party as claimed; moving the funds
        is left to the caller.

        Returns:
            The amount granted.
        """
        role = self.role_of(caller)
        if role is None:
            raise NotAuthorized(caller, "make a time-based claim")

        remaining = self.time_remaining(role, now)
        if remaining > 0:
            raise TooEarlyToClaim(caller, remaining)
        if role in self.claimed_by:
            raise AlreadyClaimed(caller)

        held = self._held_balance()
        if held < self.reserve:
            raise BalanceUnderflow(held, self.reserve)
        amount = held - self.reserve
        if amount == 0:
            raise NoClaimableAmount(caller)

        self.ledger.settle(caller, amount)
        self.claimed_by.add(role)
        logger.info("Time-based claim by %s (%s): %d", caller, role.name.lower(), amount)
        return amount

    def snapshot(self) -> Set[Role]:
        return set(self.claimed_by)

    def restore(self, snapshot: Set[Role]):
        self.claimed_by = set(snapshot)
