"""
Native capability implementations for simulation.

This package provides mock implementations of the capabilities the escrow
engine calls out to: the current time and the funds held on its behalf.

In production, these would be replaced by the host ledger's own primitives.
"""

from .clock import SimulatedClock, SECONDS_PER_DAY
from .funds import SimulatedVault

__all__ = [
    "SimulatedClock",
    "SimulatedVault",
    "SECONDS_PER_DAY",
]
