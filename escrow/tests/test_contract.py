"""
Tests for the escrow contract: deposits, voting, both claim paths,
atomicity and the event chain.
"""

import pytest

from escrow.chain import BlockType, Vote, Disposition, ClaimPath
from escrow.config import EscrowTerms
from escrow.errors import (
    EscrowError,
    NotAuthorized, AlreadyResolved, InvalidVote, InvalidAmount, InvalidConfiguration,
    TooEarlyToClaim, AlreadyClaimed, NoClaimableAmount, InsufficientContractBalance,
    BalanceUnderflow, TransferFailed,
)
from escrow.native import SimulatedClock, SimulatedVault
from escrow.transactions import EscrowContract


def resolve(contract, vote):
    contract.vote("alice", vote)
    return contract.vote("bob", vote)


# =============================================================================
# Creation
# =============================================================================

class TestCreate:

    def test_create_from_arguments(self, clock, vault):
        contract = EscrowContract.create(
            owner="alice", participant="bob", initial_amount=3,
            participant_delay_days=1, owner_delay_days=2, reserve_amount=1,
            clock=clock, funds=vault,
        )
        assert contract.owner == "alice"
        assert contract.participant == "bob"
        assert contract.goodwill_amount == 3
        assert not contract.is_resolved

    def test_invalid_terms_rejected(self, clock, vault):
        with pytest.raises(InvalidConfiguration):
            EscrowContract.create("alice", "bob", 0, 10, 5, 1, clock, vault)
        with pytest.raises(InvalidConfiguration):
            EscrowContract.create("alice", "bob", 0, 5, 10, 0, clock, vault)

    def test_goodwill_does_not_touch_balances(self, clock, vault):
        contract = EscrowContract.create("alice", "bob", 50, 5, 10, 1, clock, vault)
        assert contract.participant_balance() == (0, 0)
        assert contract.held_balance() == 0

    def test_genesis_records_terms(self, contract, terms):
        genesis = contract.chain.blocks[0]
        assert genesis.block_type == BlockType.GENESIS
        assert genesis.payload["terms"] == terms.to_dict()


# =============================================================================
# Deposits
# =============================================================================

class TestDeposit:
    """Tests for EscrowContract.deposit."""

    def test_deposit_credits_participant(self, contract):
        assert contract.deposit("carol", 100) == 100
        assert contract.participant_balance() == (100, 0)
        assert contract.held_balance() == 100

    def test_anyone_may_deposit(self, contract):
        contract.deposit("alice", 10)
        contract.deposit("mallory", 5)
        assert contract.total_received == 15

    @pytest.mark.parametrize("amount", [0, -5, 2.5, True, "10"])
    def test_invalid_amounts(self, contract, amount):
        with pytest.raises(InvalidAmount):
            contract.deposit("carol", amount)
        assert contract.total_received == 0
        assert len(contract.chain) == 1

    def test_deposit_event(self, contract):
        contract.deposit("carol", 30)
        contract.deposit("carol", 12)
        events = contract.chain.get_blocks_by_type(BlockType.FUNDS_RECEIVED)
        assert [e.payload["total_received"] for e in events] == [30, 42]
        assert events[0].payload["sender"] == "carol"

    def test_deposit_after_resolution_is_unattributed(self, contract):
        contract.deposit("carol", 100)
        resolve(contract, Vote.SPLIT)

        contract.deposit("carol", 25)
        assert contract.unattributed_balance() == 25
        assert contract.participant_balance() == (40, 0)
        assert contract.balance_of("alice").total == 40
        assert contract.held_balance() == 125


# =============================================================================
# Voting
# =============================================================================

class TestVote:

    def test_even_split_scenario(self, contract):
        contract.deposit("carol", 100)
        assert contract.participant_balance() == (100, 0)

        assert contract.vote("alice", Vote.SPLIT) is None
        assert contract.vote("bob", Vote.SPLIT) == Disposition.SPLIT
        assert contract.participant_balance() == (40, 0)
        assert contract.balance_of("alice").as_tuple() == (40, 0)

    def test_odd_split_scenario(self, contract):
        contract.deposit("carol", 101)
        resolve(contract, Vote.SPLIT)
        assert contract.participant_balance() == (41, 0)
        assert contract.balance_of("alice").total == 40

    def test_refund_and_pay_full(self, terms, clock):
        refund = EscrowContract(terms, clock, SimulatedVault(60))
        resolve(refund, Vote.REFUND)
        assert refund.participant_balance() == (40, 0)
        assert refund.balance_of("alice").total == 0

        pay_full = EscrowContract(terms, clock, SimulatedVault(60))
        resolve(pay_full, Vote.PAY_FULL)
        assert pay_full.participant_balance() == (0, 0)
        assert pay_full.balance_of("alice").total == 40

    def test_non_vote_rejected(self, contract):
        with pytest.raises(InvalidVote):
            contract.vote("alice", "SPLIT")

    def test_outsider_checked_before_vote_value(self, contract):
        with pytest.raises(NotAuthorized):
            contract.vote("mallory", "SPLIT")
        assert len(contract.chain) == 1

    def test_outsider_rejected(self, contract):
        with pytest.raises(NotAuthorized):
            contract.vote("mallory", Vote.SPLIT)

    def test_vote_after_resolution(self, contract):
        contract.deposit("carol", 100)
        resolve(contract, Vote.SPLIT)
        with pytest.raises(AlreadyResolved):
            contract.vote("bob", Vote.REFUND)

    def test_failed_resolution_is_rolled_back(self, contract):
        contract.deposit("carol", 15)
        contract.vote("alice", Vote.SPLIT)
        blocks_before = len(contract.chain)

        with pytest.raises(BalanceUnderflow):
            contract.vote("bob", Vote.SPLIT)

        assert not contract.is_resolved
        assert contract.vote_of("bob") == Vote.NONE
        assert contract.participant_balance() == (15, 0)
        assert len(contract.chain) == blocks_before

    def test_vote_events(self, contract):
        contract.deposit("carol", 100)
        resolve(contract, Vote.SPLIT)

        votes = contract.chain.get_blocks_by_type(BlockType.VOTE_CAST)
        assert [v.payload["voter"] for v in votes] == ["alice", "bob"]

        (consensus,) = contract.chain.get_blocks_by_type(BlockType.CONSENSUS_REACHED)
        assert consensus.payload == {"disposition": "SPLIT", "participant_total": 40, "owner_total": 40}
        assert contract.chain.verify_chain()


# =============================================================================
# Resolved claims
# =============================================================================

class TestResolvedClaim:
    """Claims after consensus."""

    @pytest.fixture
    def resolved(self, contract):
        contract.deposit("carol", 100)
        resolve(contract, Vote.SPLIT)
        return contract

    def test_both_parties_paid(self, resolved, vault):
        result = resolved.claim("bob")
        assert result.amount == 40
        assert result.path == ClaimPath.RESOLVED
        assert resolved.claim("alice").amount == 40

        assert vault.paid_to("bob") == 40
        assert vault.paid_to("alice") == 40
        assert resolved.held_balance() == 20

    def test_claim_is_incremental(self, resolved):
        resolved.claim("bob")
        assert resolved.participant_balance() == (40, 40)
        with pytest.raises(NoClaimableAmount):
            resolved.claim("bob")

    def test_outsider_has_nothing(self, resolved):
        with pytest.raises(NoClaimableAmount):
            resolved.claim("mallory")

    def test_reserve_must_remain(self, terms, clock):
        vault = SimulatedVault(100)
        contract = EscrowContract(terms, clock, vault)
        resolve(contract, Vote.REFUND)
        # value leaves the vault outside the contract
        assert vault.transfer("elsewhere", 15)

        with pytest.raises(InsufficientContractBalance):
            contract.claim("bob")
        assert contract.participant_balance() == (80, 0)

    def test_failed_transfer_rolls_back(self, resolved, vault):
        vault.fail_transfers = True
        blocks_before = len(resolved.chain)

        with pytest.raises(TransferFailed):
            resolved.claim("bob")

        assert resolved.participant_balance() == (40, 0)
        assert len(resolved.chain) == blocks_before

        vault.fail_transfers = False
        assert resolved.claim("bob").amount == 40

    def test_reentrant_claim_sees_nothing(self, resolved, vault):
        errors = []

        def reenter(recipient, amount):
            try:
                resolved.claim(recipient)
            except NoClaimableAmount as e:
                errors.append(e)

        vault.on_transfer = reenter
        assert resolved.claim("bob").amount == 40

        assert len(errors) == 1
        assert vault.paid_to("bob") == 40
        assert resolved.participant_balance() == (40, 40)

    def test_claim_event(self, resolved):
        resolved.claim("bob")
        (event,) = resolved.chain.get_blocks_by_type(BlockType.FUNDS_CLAIMED)
        assert event.payload == {"claimant": "bob", "amount": 40}


# =============================================================================
# Time-based claims
# =============================================================================

class TestTimeBasedClaim:
    """Claims through the fallback when no consensus is reached."""

    @pytest.fixture
    def unresolved(self, clock, vault):
        terms = EscrowTerms(
            owner="alice", participant="bob",
            participant_delay_days=5, owner_delay_days=10, reserve_amount=5,
        )
        contract = EscrowContract(terms, clock, vault)
        contract.deposit("carol", 50)
        return contract

    def test_participant_fallback_scenario(self, unresolved, clock, vault):
        clock.advance_days(6)
        result = unresolved.claim("bob")
        assert result.amount == 45
        assert result.path == ClaimPath.TIME_GATED
        assert vault.paid_to("bob") == 45

        clock.advance_days(14)
        with pytest.raises(AlreadyClaimed):
            unresolved.claim("bob")

    def test_too_early(self, unresolved, clock):
        clock.advance_days(4)
        with pytest.raises(TooEarlyToClaim):
            unresolved.claim("bob")
        assert unresolved.time_until_participant_claim() == 86400
        assert unresolved.time_until_owner_claim() == 6 * 86400

    def test_owner_after_participant_gets_nothing(self, unresolved, clock):
        clock.advance_days(10)
        unresolved.claim("bob")
        with pytest.raises(NoClaimableAmount):
            unresolved.claim("alice")

    def test_owner_may_claim_first(self, unresolved, clock):
        clock.advance_days(10)
        assert unresolved.claim("alice").amount == 45
        with pytest.raises(NoClaimableAmount):
            unresolved.claim("bob")

    def test_votes_during_payout_see_paid_balance(self, unresolved, clock, vault):
        clock.advance_days(6)
        errors = []

        def reenter(recipient, amount):
            for voter in ("alice", "bob"):
                try:
                    unresolved.vote(voter, Vote.REFUND)
                except EscrowError as e:
                    errors.append(e)

        vault.on_transfer = reenter
        assert unresolved.claim("bob").amount == 45

        # only the reserve was left to resolve against
        assert len(errors) == 1
        assert isinstance(errors[0], BalanceUnderflow)
        assert not unresolved.is_resolved
        assert unresolved.participant_balance() == (45, 45)
        assert vault.paid_to("bob") == 45
        assert unresolved.held_balance() == 5

    def test_failed_transfer_keeps_claim_available(self, unresolved, clock, vault):
        clock.advance_days(6)
        vault.fail_transfers = True
        with pytest.raises(TransferFailed):
            unresolved.claim("bob")

        assert not unresolved.fallback.has_claimed("bob")
        assert unresolved.participant_balance() == (50, 0)
        assert unresolved.chain.get_blocks_by_type(BlockType.TIME_BASED_CLAIM) == []

        vault.fail_transfers = False
        assert unresolved.claim("bob").amount == 45

    def test_event_and_snapshot(self, unresolved, clock):
        clock.advance_days(6)
        unresolved.claim("bob")

        (event,) = unresolved.chain.get_blocks_by_type(BlockType.TIME_BASED_CLAIM)
        assert event.payload == {"claimant": "bob", "amount": 45}

        snap = unresolved.snapshot()
        assert snap["time_based_claims"] == ["bob"]
        assert snap["held"] == 5
        assert snap["resolved"] is False

    def test_resolution_after_fallback(self, unresolved, clock):
        clock.advance_days(6)
        unresolved.claim("bob")
        unresolved.deposit("carol", 20)

        resolve(unresolved, Vote.REFUND)
        # held 25, less two reserves, all to the participant on top of the 45 paid
        assert unresolved.participant_balance() == (60, 45)
        assert unresolved.claim("bob").amount == 15


# =============================================================================
# Queries
# =============================================================================

class TestQueries:

    def test_available_balance(self, contract):
        contract.deposit("carol", 30)
        assert contract.available_balance() == 20

    def test_available_balance_underflow(self, contract):
        contract.deposit("carol", 3)
        with pytest.raises(BalanceUnderflow):
            contract.available_balance()

    def test_snapshot_votes_by_identity(self, contract):
        contract.vote("alice", Vote.PAY_FULL)
        snap = contract.snapshot()
        assert snap["votes"] == {"alice": "PAY_FULL", "bob": "NONE"}
        assert snap["disposition"] is None

    def test_clock_independent_of_start(self):
        clock = SimulatedClock(start=0.0)
        terms = EscrowTerms("alice", "bob", 1, 2, 1)
        contract = EscrowContract(terms, clock, SimulatedVault())
        assert contract.time_until_participant_claim() == 86400
