"""
Enums and small records shared by the escrow state machines.
"""

from dataclasses import dataclass
from enum import Enum, auto


class Role(Enum):
    """The two fixed identities of an escrow."""
    OWNER = auto()
    PARTICIPANT = auto()


class Vote(Enum):
    """A party's current preference. NONE is the unset sentinel."""
    NONE = auto()
    REFUND = auto()      # Everything back to the participant
    SPLIT = auto()       # Even division, participant takes the odd unit
    PAY_FULL = auto()    # Everything to the owner


class Disposition(Enum):
    """Consensus outcome, fixed once both votes agree."""
    REFUND = auto()
    SPLIT = auto()
    PAY_FULL = auto()

    @classmethod
    def from_vote(cls, vote: Vote) -> 'Disposition':
        if vote == Vote.NONE:
            raise ValueError("NONE is not a disposition")
        return cls[vote.name]


class ClaimPath(Enum):
    """Which route paid out a claim."""
    RESOLVED = "resolved"
    TIME_GATED = "time_gated"


@dataclass(frozen=True)
class Entitlements:
    """Per-party totals derived from a disposition."""
    participant: int
    owner: int

    @property
    def total(self) -> int:
        return self.participant + self.owner


@dataclass(frozen=True)
class ClaimResult:
    """Outcome of a successful claim."""
    claimant: str
    amount: int
    path: ClaimPath
