"""
Parser for the line-oriented escrow trace language, using Lark.

The grammar lives in trace_grammar.lark. Parsing produces the same Trace
objects as YAML traces, so both forms replay through the same harness.
"""

from pathlib import Path

from lark import Lark, Transformer, v_args
from lark.exceptions import UnexpectedInput, VisitError

from ..config import EscrowTerms
from ..errors import InvalidConfiguration
from ..native.clock import SECONDS_PER_DAY
from .traces import (
    Trace, TraceSetup, TraceAction, TraceAssertion, TraceError,
    parse_vote, parse_disposition, check_error_name,
)


GRAMMAR_PATH = Path(__file__).parent / "trace_grammar.lark"


def _number(token) -> float:
    text = str(token)
    return float(text) if '.' in text else int(text)


def _whole(token) -> int:
    value = _number(token)
    if not isinstance(value, int):
        raise TraceError(f"Expected a whole number, got {token}")
    return value


@v_args(inline=True)
class TraceTransformer(Transformer):
    """Transform the Lark parse tree into a Trace."""

    # =========================================================================
    # Header
    # =========================================================================

    def start(self, header, *steps):
        name, setup = header
        return Trace(name=name, setup=setup, steps=list(steps))

    def header(self, *items):
        name = "unnamed"
        if len(items) == 2:
            name = self._unquote(items[0])
        return name, items[-1]

    def terms(self, owner, participant, participant_delay, owner_delay, reserve, *extras):
        options = dict(extras)
        try:
            terms = EscrowTerms(
                owner=owner,
                participant=participant,
                participant_delay_days=_whole(participant_delay),
                owner_delay_days=_whole(owner_delay),
                reserve_amount=_whole(reserve),
                initial_amount=options.get("goodwill", 0),
            ).validate()
        except InvalidConfiguration as e:
            raise TraceError(f"Invalid terms: {e}") from e
        return TraceSetup(terms=terms, start_time=float(options.get("start_time", 0.0)))

    def goodwill(self, amount):
        return ("goodwill", _whole(amount))

    def start_time(self, timestamp):
        return ("start_time", _number(timestamp))

    # =========================================================================
    # Actions
    # =========================================================================

    def deposit(self, amount, sender, failure=None):
        return TraceAction(kind="deposit", actor=sender, amount=_whole(amount), expect_error=failure)

    def vote(self, caller, choice, failure=None):
        return TraceAction(kind="vote", actor=caller, choice=parse_vote(choice), expect_error=failure)

    def claim(self, caller, failure=None):
        return TraceAction(kind="claim", actor=caller, expect_error=failure)

    def failure(self, name):
        return check_error_name(str(name))

    def wait(self, amount, unit):
        seconds = _number(amount)
        if str(unit).startswith("day"):
            seconds *= SECONDS_PER_DAY
        return TraceAction(kind="wait", seconds=float(seconds))

    def transfers(self, mode):
        return TraceAction(kind="fail_transfers", flag=str(mode) == "fail")

    # =========================================================================
    # Expectations
    # =========================================================================

    def expect(self, assertion):
        return assertion

    def record_check(self, field, subject, value):
        return TraceAssertion(check=str(field), subject=subject, expected=_whole(value))

    def value_check(self, field, value):
        return TraceAssertion(check=str(field), expected=_whole(value))

    def flag_check(self, flag):
        return TraceAssertion(check="resolved", expected=str(flag) == "resolved")

    def disposition_check(self, name):
        return TraceAssertion(check="disposition", expected=parse_disposition(name))

    # =========================================================================
    # Helpers
    # =========================================================================

    def ident(self, token):
        return self._unquote(token)

    def _unquote(self, s):
        """Remove quotes from a string token."""
        s = str(s)
        if s.startswith('"') and s.endswith('"'):
            return s[1:-1]
        return s


_parser = None


def get_parser():
    """Get or create the Lark parser instance."""
    global _parser
    if _parser is None:
        with open(GRAMMAR_PATH) as f:
            grammar = f.read()
        # Every statement opens with a keyword, so LALR with the contextual
        # lexer keeps identities like "total" from clashing with keywords.
        _parser = Lark(grammar, parser='lalr', lexer='contextual', propagate_positions=True)
    return _parser


def parse_trace_source(source: str) -> Trace:
    """Parse trace source text into a Trace."""
    try:
        tree = get_parser().parse(source)
    except UnexpectedInput as e:
        raise TraceError(f"Line {e.line}, column {e.column}: unexpected input") from e

    try:
        return TraceTransformer().transform(tree)
    except VisitError as e:
        # Lark wraps transformer errors
        if isinstance(e.orig_exc, TraceError):
            raise e.orig_exc from None
        raise


def parse_trace_file(path) -> Trace:
    """Parse a trace file; the file stem names an unnamed trace."""
    path = Path(path)
    with open(path) as f:
        trace = parse_trace_source(f.read())
    if trace.name == "unnamed":
        trace.name = path.stem
    return trace
