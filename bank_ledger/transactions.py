"""
Transaction Module

Immutable transaction records and the bounded per-account transaction log.
A log keeps only the most recent entries in chronological order; appending
past the bound evicts the oldest entry.
"""

from collections import deque
from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Deque, Dict, Iterator, Sequence, Tuple
from enum import Enum


DEFAULT_HISTORY_LIMIT = 10


class TransactionType(Enum):
    """Types of account transactions"""
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"


@dataclass(frozen=True)
class Transaction:
    """
    A single monetary event on one account.

    ``balance_after`` is the account balance immediately after the event was
    applied.
    """
    id: str
    account_number: str
    transaction_type: TransactionType
    amount: Decimal
    balance_after: Decimal
    timestamp: datetime
    description: str

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        if not isinstance(self.balance_after, Decimal):
            object.__setattr__(self, 'balance_after', Decimal(str(self.balance_after)))

        if self.amount <= 0:
            raise ValueError("Transaction amount must be positive")

    def to_dict(self) -> Dict[str, str]:
        """Convert to a dictionary of strings"""
        return {
            "id": self.id,
            "account_number": self.account_number,
            "transaction_type": self.transaction_type.value,
            "amount": str(self.amount),
            "balance_after": str(self.balance_after),
            "timestamp": self.timestamp.isoformat(),
            "description": self.description,
        }

    def to_record(self) -> Tuple[str, ...]:
        """Fields in persisted order: id,accountNumber,type,amount,balanceAfter,timestamp,description"""
        return (
            self.id,
            self.account_number,
            self.transaction_type.value,
            str(self.amount),
            str(self.balance_after),
            self.timestamp.isoformat(),
            self.description,
        )

    def to_line(self) -> str:
        return ",".join(self.to_record())

    @classmethod
    def from_line(cls, line: str) -> 'Transaction':
        """
        Parse a persisted transaction line.

        The description is the last field, so it may itself contain commas.
        """
        return cls.from_record(line.rstrip("\r\n").split(",", 6))

    @classmethod
    def from_record(cls, record: Sequence[str]) -> 'Transaction':
        if len(record) != 7:
            raise ValueError(f"Expected 7 transaction fields, got {len(record)}")

        return cls(
            id=record[0],
            account_number=record[1],
            transaction_type=TransactionType(record[2].upper()),
            amount=Decimal(record[3]),
            balance_after=Decimal(record[4]),
            timestamp=datetime.fromisoformat(record[5]),
            description=record[6],
        )


class TransactionLog:
    """
    Append-only, bounded, oldest-first sequence of transactions.

    There is no removal or update API; entries leave only by eviction.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("Transaction log limit must be at least 1")
        self.limit = limit
        self._entries: Deque[Transaction] = deque(maxlen=limit)

    def append(self, transaction: Transaction) -> None:
        """Append a transaction, evicting the oldest one when full"""
        self._entries.append(transaction)

    def snapshot(self) -> Tuple[Transaction, ...]:
        """Immutable copy of the current entries, oldest first"""
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self.snapshot())
