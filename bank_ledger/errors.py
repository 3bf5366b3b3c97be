"""
Ledger Error Types

Every failure the ledger reports carries an ErrorKind so callers (the HTTP
layer, a menu loop, tests) can branch on the kind instead of the class.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Kinds of failure surfaced by the ledger and the lockout guard"""
    NOT_FOUND = "not_found"
    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INACTIVE = "inactive"
    INVALID_CREDENTIALS = "invalid_credentials"


class LedgerError(Exception):
    """Base class for all ledger errors"""

    kind: ErrorKind

    def __init__(self, message: str, account_number: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.account_number = account_number

    def to_dict(self) -> dict:
        result = {"kind": self.kind.value, "message": str(self)}
        if self.account_number:
            result["account_number"] = self.account_number
        return result


class NotFoundError(LedgerError):
    """Raised when an account or customer does not exist"""

    kind = ErrorKind.NOT_FOUND


class InvalidAmountError(LedgerError):
    """Raised for non-positive amounts, negative initial deposits and self-transfers"""

    kind = ErrorKind.INVALID_AMOUNT

    def __init__(self, message: str, amount: Optional[Decimal] = None,
                 account_number: Optional[str] = None):
        super().__init__(message, account_number)
        self.amount = amount


class InsufficientBalanceError(LedgerError):
    """Raised when a withdrawal exceeds the available balance"""

    kind = ErrorKind.INSUFFICIENT_BALANCE

    def __init__(self, message: str, available: Decimal, requested: Decimal,
                 account_number: Optional[str] = None):
        super().__init__(message, account_number)
        self.available = available
        self.requested = requested

    def __str__(self) -> str:
        return f"{self.message} (Available: {self.available:.2f}, Requested: {self.requested:.2f})"

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["available"] = str(self.available)
        result["requested"] = str(self.requested)
        return result


class AccountInactiveError(LedgerError):
    """Raised when a deactivated account is asked to move money"""

    kind = ErrorKind.INACTIVE


class InvalidCredentialsError(LedgerError):
    """
    Raised on a bad secret, a rejected new password, or a locked account.

    A locked account is reported through this class with ``locked`` set and
    ``remaining_seconds`` filled in.
    """

    kind = ErrorKind.INVALID_CREDENTIALS

    def __init__(
        self,
        message: str,
        account_number: Optional[str] = None,
        attempt_count: int = 0,
        remaining_seconds: Optional[int] = None,
        locked: bool = False
    ):
        super().__init__(message, account_number)
        self.attempt_count = attempt_count
        self.remaining_seconds = remaining_seconds
        self.locked = locked

    def __str__(self) -> str:
        text = self.message
        if self.account_number:
            text += f" (Account: {self.account_number})"
        if self.attempt_count > 0:
            text += f" [Attempt: {self.attempt_count}]"
        return text

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["attempt_count"] = self.attempt_count
        result["locked"] = self.locked
        if self.remaining_seconds is not None:
            result["remaining_seconds"] = self.remaining_seconds
        return result
