"""
Tests for the simulation harness and party agents.
"""

import pytest

from escrow.chain import BlockType, Vote, Disposition, ClaimPath
from escrow.errors import BalanceUnderflow, NotAuthorized
from escrow.native import SECONDS_PER_DAY
from escrow.transactions.simulation_harness import EscrowSimulation


@pytest.fixture
def sim(terms):
    sim = EscrowSimulation(terms)
    sim.contract.deposit("carol", 100)
    return sim


class TestTick:

    def test_tick_advances_clock(self, sim):
        before = sim.clock.now()
        assert sim.tick() == 0
        assert sim.clock.now() == before + SECONDS_PER_DAY

    def test_custom_step(self, sim):
        sim.tick(time_step=60)
        assert sim.clock.now() == 60


class TestAgents:
    """Agents driven by run_until_stable."""

    def test_agreement_pays_both(self, sim):
        owner = sim.create_agent("alice", Vote.SPLIT)
        participant = sim.create_agent("bob", Vote.SPLIT)

        ticks = sim.run_until_stable()

        assert sim.contract.disposition == Disposition.SPLIT
        assert owner.total_received == 40
        assert participant.total_received == 40
        assert all(c.path == ClaimPath.RESOLVED for c in owner.claims + participant.claims)
        assert ticks == 3

    def test_disagreement_falls_back_to_participant(self, sim):
        owner = sim.create_agent("alice", Vote.PAY_FULL)
        participant = sim.create_agent("bob", Vote.REFUND)

        sim.run_until_stable()

        assert not sim.contract.is_resolved
        assert participant.total_received == 90
        assert participant.claims[0].path == ClaimPath.TIME_GATED
        assert owner.claims == []
        assert sim.vault.balance() == 10

    def test_participant_claim_lands_on_unlock_day(self, sim):
        sim.create_agent("alice", Vote.PAY_FULL)
        sim.create_agent("bob", Vote.REFUND)
        sim.run_until_stable()

        (claim,) = sim.contract.chain.get_blocks_by_type(BlockType.TIME_BASED_CLAIM)
        assert claim.timestamp == 5 * SECONDS_PER_DAY

    def test_owner_alone_waits_for_own_gate(self, sim):
        owner = sim.create_agent("alice")
        sim.run_until_stable()
        assert owner.total_received == 90
        assert sim.contract.chain.head.timestamp == 10 * SECONDS_PER_DAY

    def test_passive_agents_stop_immediately(self, sim):
        sim.create_agent("alice", claim_when_eligible=False)
        sim.create_agent("bob", claim_when_eligible=False)
        assert sim.run_until_stable() == 1

    def test_max_ticks_bounds_run(self, sim):
        sim.create_agent("alice")
        assert sim.run_until_stable(max_ticks=3) == 3

    def test_failed_resolution_recorded(self, terms):
        sim = EscrowSimulation(terms)
        sim.contract.deposit("carol", 15)
        owner = sim.create_agent("alice", Vote.SPLIT, claim_when_eligible=False)
        participant = sim.create_agent("bob", Vote.SPLIT, claim_when_eligible=False)

        sim.tick()

        assert not sim.contract.is_resolved
        assert owner.errors == []
        assert isinstance(participant.errors[0], BalanceUnderflow)

    def test_outsider_agent_never_claims(self, sim):
        outsider = sim.create_agent("mallory", Vote.SPLIT)
        sim.tick()
        assert outsider.claims == []
        assert isinstance(outsider.errors[0], NotAuthorized)
