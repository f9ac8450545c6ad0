"""
Consensus Engine: two-party voting that fixes a disposition exactly once.

Both parties may change their vote freely while the escrow is unresolved.
The moment both votes are set and equal, the matching disposition is
applied to the ledger in the same call; there is no separate finalize step.
"""

import logging
from typing import Callable, Dict, Optional

from ..chain.types import Role, Vote, Disposition, Entitlements
from ..errors import NotAuthorized, AlreadyResolved, InvalidVote, BalanceUnderflow
from .ledger import BalanceLedger

logger = logging.getLogger(__name__)


def split_entitlements(disposition: Disposition, available: int) -> Entitlements:
    """
    Divide `available` between the parties according to `disposition`.

    SPLIT gives the participant the extra unit of an odd amount.
    """
    if available < 0:
        raise ValueError("available amount cannot be negative")

    if disposition == Disposition.REFUND:
        return Entitlements(participant=available, owner=0)
    elif disposition == Disposition.SPLIT:
        owner_share = available // 2
        return Entitlements(participant=available - owner_share, owner=owner_share)
    elif disposition == Disposition.PAY_FULL:
        return Entitlements(participant=0, owner=available)
    raise ValueError(f"Unhandled disposition: {disposition!r}")


class ConsensusEngine:
    """
    Owns the votes, the resolution flag and the balance ledger.

    `held_balance` is called whenever the pooled balance is needed so
    resolution always works from the current figure.
    """

    def __init__(self, owner: str, participant: str, reserve: int,
                 held_balance: Callable[[], int], ledger: Optional[BalanceLedger] = None):
        self.owner = owner
        self.participant = participant
        self.reserve = reserve
        self._held_balance = held_balance
        self.ledger = ledger if ledger is not None else BalanceLedger()

        self.votes: Dict[Role, Vote] = {Role.OWNER: Vote.NONE, Role.PARTICIPANT: Vote.NONE}
        self.is_resolved = False
        self.disposition: Optional[Disposition] = None
        self.entitlements: Optional[Entitlements] = None

    def role_of(self, identity: str) -> Optional[Role]:
        if identity == self.owner:
            return Role.OWNER
        if identity == self.participant:
            return Role.PARTICIPANT
        return None

    def identity_of(self, role: Role) -> str:
        return self.owner if role == Role.OWNER else self.participant

    def vote_of(self, identity: str) -> Vote:
        role = self.role_of(identity)
        return self.votes[role] if role else Vote.NONE

    def cast_vote(self, caller: str, vote: Vote) -> Optional[Disposition]:
        """
        Record `caller`'s vote and resolve if both votes now agree.

        Returns:
            The disposition if this vote resolved the escrow, else None.
        """
        role = self.role_of(caller)
        if role is None:
            raise NotAuthorized(caller, "vote")
        if not isinstance(vote, Vote) or vote == Vote.NONE:
            raise InvalidVote(f"{vote!r} is not a valid vote")
        if self.is_resolved:
            raise AlreadyResolved("vote")

        self.votes[role] = vote
        logger.debug("%s (%s) votes %s", caller, role.name.lower(), vote.name)

        if self._agreed():
            return self._resolve(Disposition.from_vote(vote))
        return None

    def _agreed(self) -> bool:
        owner_vote = self.votes[Role.OWNER]
        participant_vote = self.votes[Role.PARTICIPANT]
        return owner_vote != Vote.NONE and owner_vote == participant_vote

    def available_for_resolution(self) -> int:
        """Held balance less a reserve for each party's closing claim."""
        held = self._held_balance()
        deduction = 2 * self.reserve
        if held < deduction:
            raise BalanceUnderflow(held, deduction)
        return held - deduction

    def _resolve(self, disposition: Disposition) -> Disposition:
        available = self.available_for_resolution()
        shares = split_entitlements(disposition, available)

        # Anything already paid out stays paid; the new share sits on top of it
        participant_rec = self.ledger.record(self.participant)
        owner_rec = self.ledger.record(self.owner)
        self.ledger.set_total(self.participant, participant_rec.claimed + shares.participant)
        self.ledger.set_total(self.owner, owner_rec.claimed + shares.owner)

        self.is_resolved = True
        self.disposition = disposition
        self.entitlements = shares
        logger.info(
            "Consensus reached: %s (available=%d, participant=%d, owner=%d)",
            disposition.name, available, shares.participant, shares.owner,
        )
        return disposition

    def snapshot(self) -> dict:
        return {
            "votes": dict(self.votes),
            "is_resolved": self.is_resolved,
            "disposition": self.disposition,
            "entitlements": self.entitlements,
            "ledger": self.ledger.snapshot(),
        }

    def restore(self, snapshot: dict):
        self.votes = dict(snapshot["votes"])
        self.is_resolved = snapshot["is_resolved"]
        self.disposition = snapshot["disposition"]
        self.entitlements = snapshot["entitlements"]
        self.ledger.restore(snapshot["ledger"])
