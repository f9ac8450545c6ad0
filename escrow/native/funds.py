"""
Mock implementation of the funds capability.

In production, this is the ledger that actually holds the escrowed value
and moves it to a recipient's account. For simulation, it keeps a single
integer balance and a record of what each recipient was paid.
"""

from typing import Callable, Dict, Optional


class SimulatedVault:
    """
    Holds the pooled balance of one escrow.

    Tests can make transfers fail (`fail_transfers`) or run recipient
    code once value has moved (`on_transfer`), which is how re-entrant
    calls are exercised.
    """

    def __init__(self, balance: int = 0):
        if balance < 0:
            raise ValueError("balance cannot be negative")
        self._balance = balance
        self.payouts: Dict[str, int] = {}
        self.fail_transfers = False
        self.on_transfer: Optional[Callable[[str, int], None]] = None

    def balance(self) -> int:
        """Return the value currently held."""
        return self._balance

    def receive(self, amount: int) -> int:
        """Accept incoming value. Returns the new held balance."""
        if amount < 0:
            raise ValueError("cannot receive a negative amount")
        self._balance += amount
        return self._balance

    def transfer(self, recipient: str, amount: int) -> bool:
        """
        Move `amount` to `recipient`.

        The value moves first; the hook, if any, then runs with the
        recipient already paid, the way a recipient's code runs on a real
        ledger. If the hook raises, the payment is undone and the error
        propagates.

        Returns:
            True if the value moved, False otherwise.
        """
        if self.fail_transfers or amount < 0 or amount > self._balance:
            return False

        self._balance -= amount
        self.payouts[recipient] = self.payouts.get(recipient, 0) + amount

        if self.on_transfer is not None:
            try:
                self.on_transfer(recipient, amount)
            except Exception:
                self._balance += amount
                self.payouts[recipient] -= amount
                raise
        return True

    def paid_to(self, recipient: str) -> int:
        """Total ever transferred to `recipient`."""
        return self.payouts.get(recipient, 0)
