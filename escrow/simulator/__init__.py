"""
Escrow Simulator

Scripted scenario traces (YAML or the text trace language) and party
agents for driving an escrow through time.
"""

from .agents import PartyAgent
from .traces import (
    Trace,
    TraceAction,
    TraceAssertion,
    TraceSetup,
    TraceError,
    parse_trace,
    load_trace,
)
from .trace_parser import parse_trace_source, parse_trace_file

__all__ = [
    # Agents
    "PartyAgent",
    # Traces
    "Trace",
    "TraceAction",
    "TraceAssertion",
    "TraceSetup",
    "TraceError",
    "parse_trace",
    "load_trace",
    "parse_trace_source",
    "parse_trace_file",
]
