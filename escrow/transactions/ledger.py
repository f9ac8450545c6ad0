"""
Balance Ledger: per-identity entitlement and amount already paid.
"""

import copy
from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass
class BalanceRecord:
    """What one identity is owed (`total`) and has received (`claimed`)."""
    total: int = 0
    claimed: int = 0

    @property
    def claimable(self) -> int:
        return self.total - self.claimed

    def as_tuple(self) -> Tuple[int, int]:
        return (self.total, self.claimed)


class BalanceLedger:
    """
    Mapping of identity -> BalanceRecord.

    Unknown identities read as an empty record, so any caller can be asked
    what it is owed. Records are only created when something is written.
    """

    def __init__(self):
        self._records: Dict[str, BalanceRecord] = {}

    def record(self, identity: str) -> BalanceRecord:
        """Return a copy of the record for `identity`."""
        rec = self._records.get(identity)
        return BalanceRecord(rec.total, rec.claimed) if rec else BalanceRecord()

    def _entry(self, identity: str) -> BalanceRecord:
        return self._records.setdefault(identity, BalanceRecord())

    def credit(self, identity: str, amount: int) -> int:
        """Increase `total` by `amount`. Returns the new total."""
        if amount < 0:
            raise ValueError("credit amount cannot be negative")
        rec = self._entry(identity)
        rec.total += amount
        return rec.total

    def set_total(self, identity: str, total: int):
        """Overwrite `total`; it may never drop below `claimed`."""
        rec = self._entry(identity)
        if total < rec.claimed:
            raise ValueError(f"total {total} would fall below claimed {rec.claimed}")
        rec.total = total

    def settle(self, identity: str, amount: int):
        """Set both `total` and `claimed` to `amount` (one-shot payouts)."""
        rec = self._entry(identity)
        rec.total = amount
        rec.claimed = amount

    def commit_claim(self, identity: str) -> int:
        """
        Mark everything currently claimable as claimed, in one step.

        Returns:
            The amount that was moved to `claimed` (0 if nothing was owed).
        """
        rec = self._records.get(identity)
        if rec is None:
            return 0
        amount = rec.claimable
        rec.claimed = rec.total
        return amount

    def snapshot(self) -> Dict[str, BalanceRecord]:
        return copy.deepcopy(self._records)

    def restore(self, snapshot: Dict[str, BalanceRecord]):
        self._records = copy.deepcopy(snapshot)

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {k: {"total": v.total, "claimed": v.claimed} for k, v in self._records.items()}
