"""
Shared fixtures for escrow tests.
"""

import pytest

from escrow.config import EscrowTerms
from escrow.native import SimulatedClock, SimulatedVault
from escrow.transactions import EscrowContract


OWNER = "alice"
PARTICIPANT = "bob"


@pytest.fixture
def clock():
    return SimulatedClock(start=1_000_000.0)


@pytest.fixture
def vault():
    return SimulatedVault()


@pytest.fixture
def terms():
    """Participant unlocks after 5 days, owner after 10, reserve 10."""
    return EscrowTerms(
        owner=OWNER,
        participant=PARTICIPANT,
        participant_delay_days=5,
        owner_delay_days=10,
        reserve_amount=10,
    )


@pytest.fixture
def contract(terms, clock, vault):
    return EscrowContract(terms, clock, vault)
