"""
Simulation harness for escrow testing.

This module wires a contract to a simulated clock and vault, advances time,
lets party agents act, and replays scenario traces.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..chain.types import Vote
from ..config import EscrowTerms
from ..errors import EscrowError
from ..native.clock import SimulatedClock, SECONDS_PER_DAY
from ..native.funds import SimulatedVault
from ..simulator.agents import PartyAgent
from ..simulator.traces import Trace, TraceAction, TraceAssertion
from .contract import EscrowContract


@dataclass
class TraceResult:
    """Outcome of replaying one trace."""
    name: str
    steps_run: int = 0
    failures: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.failures


class EscrowSimulation:
    """
    Helper class to run escrow simulations.

    Manages time advancement and agent turns.
    """

    def __init__(self, terms: EscrowTerms, start_time: float = 0.0, initial_balance: int = 0):
        self.clock = SimulatedClock(start_time)
        self.vault = SimulatedVault(initial_balance)
        self.contract = EscrowContract(terms, self.clock, self.vault)
        self.agents: Dict[str, PartyAgent] = {}

    @classmethod
    def from_trace(cls, trace: Trace) -> 'EscrowSimulation':
        setup = trace.setup
        return cls(setup.terms, start_time=setup.start_time, initial_balance=setup.initial_balance)

    def create_agent(self, identity: str, preferred_vote: Vote = Vote.NONE,
                     claim_when_eligible: bool = True) -> PartyAgent:
        """Create an agent acting for `identity`."""
        agent = PartyAgent(
            identity=identity,
            preferred_vote=preferred_vote,
            claim_when_eligible=claim_when_eligible,
        )
        self.agents[identity] = agent
        return agent

    def tick(self, time_step: float = SECONDS_PER_DAY) -> int:
        """
        Advance simulation by one tick.

        Returns number of actions the agents took.
        """
        self.clock.advance(time_step)
        total_actions = 0

        for agent in self.agents.values():
            total_actions += agent.act(self.contract)

        return total_actions

    def run_until_stable(self, max_ticks: int = 100, time_step: float = SECONDS_PER_DAY) -> int:
        """
        Run simulation until no agent can act and no gate is still closed.

        Returns number of ticks run.
        """
        for tick_num in range(max_ticks):
            actions = self.tick(time_step)
            if actions == 0 and not self._gates_pending():
                return tick_num + 1

        return max_ticks

    def _gates_pending(self) -> bool:
        """Is an unused time gate still waiting to open for some agent?"""
        if self.contract.is_resolved:
            return False
        for identity, agent in self.agents.items():
            if not agent.claim_when_eligible or self.contract.fallback.has_claimed(identity):
                continue
            if identity == self.contract.participant and self.contract.time_until_participant_claim() > 0:
                return True
            if identity == self.contract.owner and self.contract.time_until_owner_claim() > 0:
                return True
        return False

    # =========================================================================
    # Trace replay
    # =========================================================================

    def apply(self, action: TraceAction) -> Any:
        """Perform one trace action against the contract."""
        if action.kind == "deposit":
            return self.contract.deposit(action.actor, action.amount)
        elif action.kind == "vote":
            return self.contract.vote(action.actor, action.choice)
        elif action.kind == "claim":
            return self.contract.claim(action.actor)
        elif action.kind == "wait":
            return self.clock.advance(action.seconds)
        elif action.kind == "fail_transfers":
            self.vault.fail_transfers = action.flag
            return action.flag
        raise ValueError(f"Unknown action kind: {action.kind}")

    def observe(self, assertion: TraceAssertion) -> Any:
        """Read the value an assertion talks about."""
        check = assertion.check
        if check == "total":
            return self.contract.balance_of(assertion.subject).total
        elif check == "claimed":
            return self.contract.balance_of(assertion.subject).claimed
        elif check == "paid":
            return self.vault.paid_to(assertion.subject)
        elif check == "held":
            return self.contract.held_balance()
        elif check == "available":
            return self.contract.available_balance()
        elif check == "received":
            return self.contract.total_received
        elif check == "unattributed":
            return self.contract.unattributed_balance()
        elif check == "resolved":
            return self.contract.is_resolved
        elif check == "disposition":
            return self.contract.disposition
        raise ValueError(f"Unknown check: {check}")

    def run_trace(self, trace: Trace) -> TraceResult:
        """Replay every step of `trace`, collecting failures."""
        result = TraceResult(name=trace.name)

        for i, step in enumerate(trace.steps, start=1):
            result.steps_run = i
            if isinstance(step, TraceAction):
                failure = self._run_action(step)
            else:
                failure = self._run_assertion(step)
            if failure:
                result.failures.append(f"step {i}: {failure}")

        return result

    def _run_action(self, action: TraceAction) -> Optional[str]:
        try:
            self.apply(action)
        except EscrowError as e:
            if action.expect_error == type(e).__name__:
                return None
            return f"{action.kind} by {action.actor} raised {type(e).__name__}: {e}"

        if action.expect_error:
            return f"{action.kind} by {action.actor} should have raised {action.expect_error}"
        return None

    def _run_assertion(self, assertion: TraceAssertion) -> Optional[str]:
        try:
            actual = self.observe(assertion)
        except EscrowError as e:
            return f"expected {assertion.describe()}, reading it raised {type(e).__name__}"

        if actual != assertion.expected:
            return f"expected {assertion.describe()}, got {actual!r}"
        return None


def replay(trace: Trace) -> TraceResult:
    """Replay `trace` against a fresh simulation."""
    return EscrowSimulation.from_trace(trace).run_trace(trace)
