"""
Mock implementation of the "current time" capability.

In production, this would be the block timestamp of the executing ledger.
For simulation, time only moves when a test or harness advances it.
"""

SECONDS_PER_DAY = 86400


class SimulatedClock:
    """Monotonic clock driven by the caller."""

    def __init__(self, start: float = 0.0):
        self._now = float(start)

    def now(self) -> float:
        """Return the current time in seconds."""
        return self._now

    def advance(self, seconds: float) -> float:
        """
        Move time forward.

        Args:
            seconds: How far to move; must not be negative.

        Returns:
            The new current time.
        """
        if seconds < 0:
            raise ValueError("time cannot move backwards")
        self._now += seconds
        return self._now

    def advance_days(self, days: float) -> float:
        """Move time forward by whole or fractional days."""
        return self.advance(days * SECONDS_PER_DAY)

