"""
Creation terms for an escrow and loading them from YAML.

Example terms file:

    owner: alice
    participant: bob
    initial_amount: 0
    participant_delay_days: 5
    owner_delay_days: 10
    reserve_amount: 10
"""

from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict

import yaml

from .errors import InvalidConfiguration


# =============================================================================
# Parameters
# =============================================================================

MAX_IDENTITY_LEN = 96  # Identities are opaque strings (chars)


@dataclass(frozen=True)
class EscrowTerms:
    """Fixed configuration captured when an escrow is created."""
    owner: str
    participant: str
    participant_delay_days: int
    owner_delay_days: int
    reserve_amount: int
    initial_amount: int = 0

    def validate(self):
        """Raise InvalidConfiguration if the terms cannot form an escrow."""
        if not _identity_ok(self.owner):
            raise InvalidConfiguration(f"Invalid owner identity: {self.owner!r}")
        if not _identity_ok(self.participant):
            raise InvalidConfiguration(f"Invalid participant identity: {self.participant!r}")
        if self.participant == self.owner:
            raise InvalidConfiguration("Participant must differ from owner")

        for name in ("participant_delay_days", "owner_delay_days", "reserve_amount", "initial_amount"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise InvalidConfiguration(f"{name} must be an integer, got {value!r}")

        if self.participant_delay_days < 0 or self.owner_delay_days < 0:
            raise InvalidConfiguration("Claim delays cannot be negative")
        if self.participant_delay_days >= self.owner_delay_days:
            raise InvalidConfiguration(
                f"Participant delay ({self.participant_delay_days}d) must be shorter "
                f"than owner delay ({self.owner_delay_days}d)"
            )
        if self.reserve_amount <= 0:
            raise InvalidConfiguration("Reserve amount must be positive")
        if self.initial_amount < 0:
            raise InvalidConfiguration("Initial amount cannot be negative")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EscrowTerms':
        """Build terms from a plain mapping, rejecting unknown or missing keys."""
        if not isinstance(data, dict):
            raise InvalidConfiguration(f"Terms must be a mapping, got {type(data).__name__}")

        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidConfiguration(f"Unknown terms: {', '.join(sorted(unknown))}")

        required = {
            "owner", "participant", "participant_delay_days", "owner_delay_days", "reserve_amount",
        }
        missing = required - set(data)
        if missing:
            raise InvalidConfiguration(f"Missing terms: {', '.join(sorted(missing))}")

        return cls(**data).validate()


def _identity_ok(identity: Any) -> bool:
    return isinstance(identity, str) and 0 < len(identity.strip()) and len(identity) <= MAX_IDENTITY_LEN


def load_terms(path) -> EscrowTerms:
    """Load and validate terms from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Terms file not found: {path}")

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidConfiguration(f"Malformed YAML in {path}: {e}") from e

    if data is None:
        raise InvalidConfiguration(f"Terms file is empty: {path}")
    return EscrowTerms.from_dict(data)
