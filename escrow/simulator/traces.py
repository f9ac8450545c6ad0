"""
Scenario traces: scripted escrow operations with expectations.

A trace is a set of creation terms followed by an ordered list of steps.
Each step is either an action (deposit, vote, claim, wait, toggling
transfer failures) or an assertion about the escrow's state at that point.

YAML form:

    name: split-even
    terms:
      owner: alice
      participant: bob
      participant_delay_days: 5
      owner_delay_days: 10
      reserve_amount: 10
    steps:
      - deposit: {sender: carol, amount: 100}
      - vote: {caller: alice, choice: SPLIT}
      - vote: {caller: bob, choice: SPLIT}
      - expect: {total: bob, equals: 40}
      - claim: {caller: bob}
      - claim: {caller: bob, expect_error: NoClaimableAmount}
      - wait: {days: 6}
      - expect: {resolved: true}
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from ..chain.types import Vote, Disposition
from ..config import EscrowTerms
from ..errors import ERRORS_BY_NAME, InvalidConfiguration
from ..native.clock import SECONDS_PER_DAY


class TraceError(Exception):
    """Raised when a trace is malformed."""
    def __init__(self, message: str, step: Optional[int] = None):
        self.step = step
        prefix = f"Step {step}: " if step is not None else ""
        super().__init__(f"{prefix}{message}")


ACTION_KINDS = {"deposit", "vote", "claim", "wait", "fail_transfers"}

# Assertions about one identity's record or payouts
RECORD_CHECKS = {"total", "claimed", "paid"}

# Assertions about the escrow as a whole
VALUE_CHECKS = {"held", "available", "received", "unattributed", "resolved", "disposition"}


@dataclass
class TraceSetup:
    """Terms plus the simulated environment the trace starts in."""
    terms: EscrowTerms
    start_time: float = 0.0
    initial_balance: int = 0


@dataclass
class TraceAction:
    """One operation against the escrow."""
    kind: str
    actor: Optional[str] = None
    amount: Optional[int] = None
    choice: Optional[Vote] = None
    seconds: float = 0.0
    flag: bool = False
    expect_error: Optional[str] = None


@dataclass
class TraceAssertion:
    """An expectation checked at its position in the trace."""
    check: str
    expected: Any
    subject: Optional[str] = None

    def describe(self) -> str:
        target = f"{self.check}[{self.subject}]" if self.subject else self.check
        return f"{target} == {self.expected!r}"


TraceStep = Union[TraceAction, TraceAssertion]


@dataclass
class Trace:
    """A complete scenario."""
    name: str
    setup: TraceSetup
    steps: List[TraceStep] = field(default_factory=list)
    description: Optional[str] = None

    @property
    def actions(self) -> List[TraceAction]:
        return [s for s in self.steps if isinstance(s, TraceAction)]

    @property
    def assertions(self) -> List[TraceAssertion]:
        return [s for s in self.steps if isinstance(s, TraceAssertion)]


# =============================================================================
# Value helpers (shared with the text trace parser)
# =============================================================================

def parse_vote(value: Any, step: Optional[int] = None) -> Vote:
    """Accept a vote by name, case-insensitively. NONE is rejected later, by the engine."""
    if isinstance(value, Vote):
        return value
    try:
        return Vote[str(value).strip().upper()]
    except KeyError:
        raise TraceError(f"Unknown vote: {value!r}", step) from None


def parse_disposition(value: Any, step: Optional[int] = None) -> Disposition:
    if isinstance(value, Disposition):
        return value
    try:
        return Disposition[str(value).strip().upper()]
    except KeyError:
        raise TraceError(f"Unknown disposition: {value!r}", step) from None


def check_error_name(name: Optional[str], step: Optional[int] = None) -> Optional[str]:
    if name is not None and name not in ERRORS_BY_NAME:
        raise TraceError(f"Unknown error name: {name!r}", step)
    return name


def _amount(value: Any, step: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TraceError(f"Amount must be an integer, got {value!r}", step)
    return value


# =============================================================================
# YAML traces
# =============================================================================

def parse_trace(data: Dict[str, Any]) -> Trace:
    """Build a Trace from a parsed YAML document."""
    if not isinstance(data, dict):
        raise TraceError("Trace must be a mapping")
    if "terms" not in data:
        raise TraceError("Trace is missing 'terms'")

    try:
        terms = EscrowTerms.from_dict(data["terms"])
    except InvalidConfiguration as e:
        raise TraceError(f"Invalid terms: {e}") from e

    setup = TraceSetup(
        terms=terms,
        start_time=float(data.get("start_time", 0.0)),
        initial_balance=_amount(data.get("initial_balance", 0), 0),
    )

    steps = []
    for i, raw in enumerate(data.get("steps") or [], start=1):
        steps.append(_parse_step(raw, i))

    return Trace(
        name=str(data.get("name", "unnamed")),
        description=data.get("description"),
        setup=setup,
        steps=steps,
    )


def _parse_step(raw: Any, step: int) -> TraceStep:
    if not isinstance(raw, dict) or len(raw) != 1:
        raise TraceError("Each step must be a single-key mapping", step)

    kind, args = next(iter(raw.items()))
    if kind == "expect":
        return _parse_assertion(args, step)
    if kind not in ACTION_KINDS:
        raise TraceError(f"Unknown step kind: {kind!r}", step)

    if kind == "fail_transfers":
        return TraceAction(kind=kind, flag=bool(args))
    if not isinstance(args, dict):
        raise TraceError(f"'{kind}' needs a mapping of arguments", step)

    expect_error = check_error_name(args.get("expect_error"), step)

    if kind == "deposit":
        return TraceAction(
            kind=kind,
            actor=str(args.get("sender", "anonymous")),
            amount=_amount(args.get("amount"), step),
            expect_error=expect_error,
        )
    elif kind == "vote":
        if "caller" not in args or "choice" not in args:
            raise TraceError("'vote' needs 'caller' and 'choice'", step)
        return TraceAction(
            kind=kind,
            actor=str(args["caller"]),
            choice=parse_vote(args["choice"], step),
            expect_error=expect_error,
        )
    elif kind == "claim":
        if "caller" not in args:
            raise TraceError("'claim' needs 'caller'", step)
        return TraceAction(kind=kind, actor=str(args["caller"]), expect_error=expect_error)
    else:
        seconds = float(args.get("seconds", 0)) + float(args.get("days", 0)) * SECONDS_PER_DAY
        if seconds < 0:
            raise TraceError("Cannot wait a negative time", step)
        return TraceAction(kind=kind, seconds=seconds)


def _parse_assertion(args: Any, step: int) -> TraceAssertion:
    if not isinstance(args, dict):
        raise TraceError("'expect' needs a mapping", step)

    for check in RECORD_CHECKS:
        if check in args:
            if "equals" not in args:
                raise TraceError(f"'expect {check}' needs 'equals'", step)
            return TraceAssertion(check=check, subject=str(args[check]),
                                  expected=_amount(args["equals"], step))

    if len(args) != 1:
        raise TraceError(f"Cannot interpret expectation: {args!r}", step)
    check, expected = next(iter(args.items()))
    if check not in VALUE_CHECKS:
        raise TraceError(f"Unknown expectation: {check!r}", step)
    if check == "resolved":
        return TraceAssertion(check=check, expected=bool(expected))
    if check == "disposition":
        return TraceAssertion(check=check, expected=parse_disposition(expected, step))
    return TraceAssertion(check=check, expected=_amount(expected, step))


def load_trace(path) -> Trace:
    """Load a YAML trace file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Trace not found: {path}")

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise TraceError(f"Malformed YAML in {path}: {e}") from e

    trace = parse_trace(data)
    if trace.name == "unnamed":
        trace.name = path.stem
    return trace
