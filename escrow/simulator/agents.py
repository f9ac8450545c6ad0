"""
Party agents that act on an escrow whenever a move is open to them.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from ..chain.types import Vote, ClaimResult
from ..errors import EscrowError

logger = logging.getLogger(__name__)


@dataclass
class PartyAgent:
    """
    A party with a fixed preference.

    Each turn the agent votes its preference (if it is not already the
    recorded vote) and then claims if any claim path would pay it.
    """
    identity: str
    preferred_vote: Vote = Vote.NONE
    claim_when_eligible: bool = True

    claims: List[ClaimResult] = field(default_factory=list)
    errors: List[EscrowError] = field(default_factory=list)

    @property
    def total_received(self) -> int:
        return sum(c.amount for c in self.claims)

    def act(self, contract) -> int:
        """Take every open action. Returns how many succeeded."""
        taken = 0

        if self._should_vote(contract):
            try:
                contract.vote(self.identity, self.preferred_vote)
                taken += 1
            except EscrowError as e:
                logger.debug("%s could not vote: %s", self.identity, e)
                self.errors.append(e)

        if self.claim_when_eligible and self.can_claim(contract):
            try:
                self.claims.append(contract.claim(self.identity))
                taken += 1
            except EscrowError as e:
                logger.debug("%s could not claim: %s", self.identity, e)
                self.errors.append(e)

        return taken

    def _should_vote(self, contract) -> bool:
        return (
            not contract.is_resolved
            and self.preferred_vote != Vote.NONE
            and contract.vote_of(self.identity) != self.preferred_vote
        )

    def can_claim(self, contract) -> bool:
        """Would a claim by this agent succeed right now?"""
        held = contract.held_balance()

        if contract.is_resolved:
            claimable = contract.balance_of(self.identity).claimable
            return claimable > 0 and held >= claimable + contract.reserve

        if self.identity == contract.participant:
            remaining = contract.time_until_participant_claim()
        elif self.identity == contract.owner:
            remaining = contract.time_until_owner_claim()
        else:
            return False

        return (
            remaining == 0
            and not contract.fallback.has_claimed(self.identity)
            and held > contract.reserve
        )
