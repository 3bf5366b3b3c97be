"""
Account Module

A bank account owns its balance, its active flag and a bounded transaction
log. Every balance change goes through deposit() or withdraw(), which enforce
the non-negative balance invariant and record a transaction.
"""

from decimal import Decimal, InvalidOperation
from datetime import date
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple
from enum import Enum

from .clock import Clock, SystemClock
from .customers import has_line_break
from .errors import InvalidAmountError, InsufficientBalanceError, AccountInactiveError
from .identifiers import IdGenerator, UUIDIdGenerator
from .transactions import (
    Transaction, TransactionLog, TransactionType, DEFAULT_HISTORY_LIMIT
)


class AccountKind(Enum):
    """Account products offered"""
    SAVINGS = "SAVINGS"
    CURRENT = "CURRENT"

    @classmethod
    def parse(cls, value: Any) -> 'AccountKind':
        """Accept an AccountKind or a case-insensitive name"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown account kind: {value}") from None


def to_amount(value: Any, account_number: Optional[str] = None) -> Decimal:
    """Convert a caller-supplied amount to a finite Decimal"""
    if isinstance(value, bool):
        raise InvalidAmountError(f"Invalid amount: {value!r}", account_number=account_number)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidAmountError(f"Invalid amount: {value!r}", account_number=account_number) from None
    if not amount.is_finite():
        raise InvalidAmountError(f"Invalid amount: {value!r}", account_number=account_number)
    return amount


@dataclass
class Account:
    """
    Bank account

    The account number is fixed once the account exists. History reads
    return a tuple snapshot, never the live log.
    """
    account_number: str
    secret: str = field(repr=False)
    customer_id: str
    kind: AccountKind
    balance: Decimal = Decimal("0")
    date_created: date = field(default_factory=date.today)
    active: bool = True
    history_limit: int = field(default=DEFAULT_HISTORY_LIMIT, repr=False)
    clock: Clock = field(default_factory=SystemClock, repr=False, compare=False)
    transaction_ids: IdGenerator = field(
        default_factory=lambda: UUIDIdGenerator(prefix="TXN"), repr=False, compare=False
    )

    def __post_init__(self):
        self.kind = AccountKind.parse(self.kind)
        self._check_secret(self.secret)
        self.balance = to_amount(self.balance, self.account_number)
        if self.balance < 0:
            raise InvalidAmountError(
                "Balance cannot be negative", self.balance, self.account_number
            )
        self._log = TransactionLog(self.history_limit)

    def __setattr__(self, name, value):
        if name == "account_number" and "account_number" in self.__dict__:
            raise AttributeError("account_number cannot be changed")
        super().__setattr__(name, value)

    @property
    def is_active(self) -> bool:
        return self.active

    @property
    def transaction_history(self) -> Tuple[Transaction, ...]:
        """Snapshot of the transaction log, oldest first"""
        return self._log.snapshot()

    def authenticate(self, secret: str) -> bool:
        """Compare a secret against the stored one"""
        return self.secret == secret

    def change_secret(self, new_secret: str) -> None:
        self._check_secret(new_secret)
        self.secret = new_secret

    @staticmethod
    def _check_secret(secret: str) -> None:
        if has_line_break(secret):
            raise ValueError("Password cannot contain line breaks")

    def activate(self) -> None:
        self.active = True

    def deactivate(self) -> None:
        self.active = False

    def check_deposit(self, amount: Any) -> Decimal:
        """Validate a deposit without applying it; returns the amount as Decimal"""
        amount = to_amount(amount, self.account_number)
        if amount <= 0:
            raise InvalidAmountError(
                "Deposit amount must be positive", amount, self.account_number
            )
        if not self.active:
            raise AccountInactiveError("Account is inactive", self.account_number)
        return amount

    def check_withdrawal(self, amount: Any) -> Decimal:
        """Validate a withdrawal without applying it; returns the amount as Decimal"""
        amount = to_amount(amount, self.account_number)
        if amount <= 0:
            raise InvalidAmountError(
                "Withdrawal amount must be positive", amount, self.account_number
            )
        if not self.active:
            raise AccountInactiveError("Account is inactive", self.account_number)
        if amount > self.balance:
            raise InsufficientBalanceError(
                "Insufficient balance",
                available=self.balance,
                requested=amount,
                account_number=self.account_number
            )
        return amount

    def deposit(self, amount: Any, description: str = "Cash deposit") -> Transaction:
        """
        Credit the account.

        Raises:
            InvalidAmountError: amount is not positive
            AccountInactiveError: account is deactivated
        """
        amount = self.check_deposit(amount)
        self.balance += amount
        return self._record(TransactionType.DEPOSIT, amount, description)

    def withdraw(self, amount: Any, description: str = "Cash withdrawal") -> Transaction:
        """
        Debit the account.

        Raises:
            InvalidAmountError: amount is not positive
            AccountInactiveError: account is deactivated
            InsufficientBalanceError: amount exceeds the balance
        """
        amount = self.check_withdrawal(amount)
        self.balance -= amount
        return self._record(TransactionType.WITHDRAWAL, amount, description)

    def restore_history(self, transaction: Transaction) -> None:
        """Re-append a persisted transaction; the bound still applies"""
        if transaction.account_number != self.account_number:
            raise ValueError(
                f"Transaction {transaction.id} belongs to {transaction.account_number}"
            )
        self._log.append(transaction)

    def _record(self, transaction_type: TransactionType, amount: Decimal,
                description: str) -> Transaction:
        transaction = Transaction(
            id=self.transaction_ids.next_id(),
            account_number=self.account_number,
            transaction_type=transaction_type,
            amount=amount,
            balance_after=self.balance,
            timestamp=self.clock.now(),
            description=description
        )
        self._log.append(transaction)
        return transaction

    def to_dict(self) -> Dict[str, Any]:
        """Public view of the account; the secret is left out"""
        return {
            "account_number": self.account_number,
            "customer_id": self.customer_id,
            "kind": self.kind.value,
            "balance": str(self.balance),
            "date_created": self.date_created.isoformat(),
            "active": self.active,
        }

    def to_record(self) -> Tuple[str, ...]:
        """Fields in persisted order: number,secret,customerId,kind,balance,dateCreated,active"""
        return (
            self.account_number,
            self.secret,
            self.customer_id,
            self.kind.value,
            str(self.balance),
            self.date_created.isoformat(),
            "true" if self.active else "false",
        )

    def to_line(self) -> str:
        return ",".join(self.to_record())

    @classmethod
    def from_line(cls, line: str, **kwargs) -> 'Account':
        """
        Parse a persisted account line. Extra keyword arguments (clock,
        history_limit, transaction_ids) are passed to the constructor.

        The secret is the only free-text field, so any surplus commas are
        taken to belong to it.
        """
        parts = line.rstrip("\r\n").split(",")
        if len(parts) < 7:
            raise ValueError(f"Expected 7 account fields, got {len(parts)}")
        record = [parts[0], ",".join(parts[1:-5])] + parts[-5:]
        return cls.from_record(record, **kwargs)

    @classmethod
    def from_record(cls, record: Sequence[str], **kwargs) -> 'Account':
        if len(record) != 7:
            raise ValueError(f"Expected 7 account fields, got {len(record)}")
        number, secret, customer_id, kind, balance, created, active = record

        return cls(
            account_number=number,
            secret=secret,
            customer_id=customer_id,
            kind=AccountKind.parse(kind),
            balance=Decimal(balance),
            date_created=date.fromisoformat(created),
            active=active.strip().lower() == "true",
            **kwargs
        )
