"""
Exceptions raised by the escrow engine.

Every failure is a whole-operation failure: the contract undoes the
operation's state changes before the exception reaches the caller.
"""


class EscrowError(Exception):
    """Base class for all escrow failures."""


# =============================================================================
# Taxonomy
# =============================================================================

class AuthorizationError(EscrowError):
    """Caller is not allowed to perform the operation."""


class StateError(EscrowError):
    """Operation is invalid in the current resolution state."""


class EscrowValidationError(EscrowError, ValueError):
    """Malformed input."""


class TimingError(EscrowError):
    """A time gate has not opened yet."""


class IdempotencyError(EscrowError):
    """A one-shot operation was attempted twice."""


class ResourceError(EscrowError):
    """Held funds cannot safely cover the operation."""


class TransferError(EscrowError):
    """The funds collaborator refused to move value."""


# =============================================================================
# Concrete errors
# =============================================================================

class NotAuthorized(AuthorizationError):
    def __init__(self, caller: str, action: str):
        self.caller = caller
        self.action = action
        super().__init__(f"{caller!r} is not authorized to {action}")


class AlreadyResolved(StateError):
    def __init__(self, action: str = "vote"):
        self.action = action
        super().__init__(f"Cannot {action}: escrow is already resolved")


class InvalidVote(EscrowValidationError):
    pass


class InvalidAmount(EscrowValidationError):
    pass


class InvalidConfiguration(EscrowValidationError):
    pass


class TooEarlyToClaim(TimingError):
    def __init__(self, caller: str, remaining: float):
        self.caller = caller
        self.remaining = remaining
        super().__init__(f"{caller!r} cannot claim for another {remaining:g} seconds")


class AlreadyClaimed(IdempotencyError):
    def __init__(self, caller: str):
        self.caller = caller
        super().__init__(f"{caller!r} has already used its time-based claim")


class NoClaimableAmount(ResourceError):
    def __init__(self, caller: str):
        self.caller = caller
        super().__init__(f"Nothing to claim for {caller!r}")


class InsufficientContractBalance(ResourceError):
    def __init__(self, required: int, held: int):
        self.required = required
        self.held = held
        super().__init__(f"Held balance {held} cannot cover {required} (claim plus reserve)")


class BalanceUnderflow(ResourceError):
    def __init__(self, held: int, deduction: int):
        self.held = held
        self.deduction = deduction
        super().__init__(f"Held balance {held} is below the reserved {deduction}")


class TransferFailed(TransferError):
    def __init__(self, recipient: str, amount: int):
        self.recipient = recipient
        self.amount = amount
        super().__init__(f"Transfer of {amount} to {recipient!r} failed")


ERRORS_BY_NAME = {
    cls.__name__: cls
    for cls in (
        NotAuthorized, AlreadyResolved, InvalidVote, InvalidAmount,
        InvalidConfiguration, TooEarlyToClaim, AlreadyClaimed,
        NoClaimableAmount, InsufficientContractBalance, BalanceUnderflow,
        TransferFailed,
    )
}
