"""
Ledger Module

The ledger is the keyed collection of accounts and customers. It opens
accounts, routes deposits and withdrawals to them, moves money between two
accounts atomically, and answers reporting queries.

Locking: each account has its own re-entrant lock. The account and customer
maps are guarded by a registry lock that is held only for lookups and
inserts, never across a balance change. Transfers take both account locks in
lexicographic order of account number.
"""

from collections import Counter
from contextlib import contextmanager, ExitStack
from decimal import Decimal
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union
import threading

from .accounts import Account, AccountKind, to_amount
from .clock import Clock, SystemClock
from .config import LedgerConfig, get_config
from .customers import Customer, CustomerProfile
from .errors import NotFoundError, InvalidAmountError, InvalidCredentialsError
from .identifiers import IdGenerator, SequentialIdGenerator, UUIDIdGenerator
from .logging_config import get_logger, log_action
from .transactions import Transaction, TransactionType


@dataclass
class LedgerStatistics:
    """Aggregate figures over the whole ledger"""
    total_accounts: int
    active_accounts: int
    total_customers: int
    total_balance: Decimal
    total_transactions: int
    account_kind_distribution: Dict[str, int] = field(default_factory=dict)
    transaction_type_distribution: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_accounts": self.total_accounts,
            "active_accounts": self.active_accounts,
            "total_customers": self.total_customers,
            "total_balance": str(self.total_balance),
            "total_transactions": self.total_transactions,
            "account_kind_distribution": dict(self.account_kind_distribution),
            "transaction_type_distribution": dict(self.transaction_type_distribution),
        }


@dataclass
class LedgerSnapshot:
    """
    Detached copy of ledger state in persistable form.

    ``accounts`` holds persisted account lines (number,secret,customerId,
    kind,balance,dateCreated,active); customers and transactions are already
    immutable value objects.
    """
    customers: List[Customer] = field(default_factory=list)
    accounts: List[str] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)

    def customer_lines(self) -> List[str]:
        return [customer.to_line() for customer in self.customers]

    def account_lines(self) -> List[str]:
        return list(self.accounts)

    def transaction_lines(self) -> List[str]:
        return [transaction.to_line() for transaction in self.transactions]

    @classmethod
    def from_lines(
        cls,
        customer_lines: List[str],
        account_lines: List[str],
        transaction_lines: List[str]
    ) -> 'LedgerSnapshot':
        """Build a snapshot from persisted lines; blank lines are ignored"""
        return cls(
            customers=[Customer.from_line(line) for line in customer_lines if line.strip()],
            accounts=[line.rstrip("\r\n") for line in account_lines if line.strip()],
            transactions=[Transaction.from_line(line) for line in transaction_lines if line.strip()],
        )


class Ledger:
    """
    Accounts, customers and the cross-account transaction journal
    """

    def __init__(
        self,
        config: Optional[LedgerConfig] = None,
        clock: Optional[Clock] = None,
        account_numbers: Optional[IdGenerator] = None,
        customer_ids: Optional[IdGenerator] = None,
        transaction_ids: Optional[IdGenerator] = None
    ):
        self.config = config or get_config()
        self.clock = clock or SystemClock()
        self.account_numbers = account_numbers or SequentialIdGenerator(
            self.config.account_number_prefix, self.config.id_start
        )
        self.customer_ids = customer_ids or SequentialIdGenerator(
            self.config.customer_id_prefix, self.config.id_start
        )
        self.transaction_ids = transaction_ids or UUIDIdGenerator(prefix="TXN")
        self.logger = get_logger("bank_ledger.ledger")

        self._accounts: Dict[str, Account] = {}
        self._customers: Dict[str, Customer] = {}
        self._journal: List[Transaction] = []

        self._registry_lock = threading.RLock()
        self._journal_lock = threading.Lock()
        self._account_locks: Dict[str, threading.RLock] = {}

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    @contextmanager
    def account_lock(self, account_number: str) -> Iterator[None]:
        """
        Hold the exclusive lock of one account.

        Raises:
            NotFoundError: no such account
        """
        with self._registry_lock:
            lock = self._account_locks.get(account_number)
        if lock is None:
            raise NotFoundError("Account not found", account_number)
        with lock:
            yield

    @contextmanager
    def accounts_locked(self, *account_numbers: str) -> Iterator[None]:
        with ExitStack() as stack:
            for number in sorted(set(account_numbers)):
                stack.enter_context(self.account_lock(number))
            yield

    def _append_journal(self, *transactions: Transaction) -> None:
        with self._journal_lock:
            self._journal.extend(transactions)

    # ------------------------------------------------------------------
    # Account lifecycle
    # ------------------------------------------------------------------

    def create_account(
        self,
        profile: CustomerProfile,
        kind: Union[AccountKind, str],
        initial_deposit: Any,
        secret: str
    ) -> str:
        """
        Register a new customer and open an account for them.

        Args:
            profile: Customer details
            kind: SAVINGS or CURRENT
            initial_deposit: Opening balance, zero or more
            secret: Account password, stored as given

        Returns:
            The new account number

        Raises:
            InvalidAmountError: initial deposit is negative
        """
        amount = to_amount(initial_deposit)
        if amount < 0:
            raise InvalidAmountError("Initial deposit cannot be negative", amount)
        kind = AccountKind.parse(kind)

        with self._registry_lock:
            customer_id = self._unused_id(self.customer_ids, self._customers)
            account_number = self._unused_id(self.account_numbers, self._accounts)

            customer = Customer.from_profile(customer_id, profile)
            account = Account(
                account_number=account_number,
                secret=secret,
                customer_id=customer_id,
                kind=kind,
                date_created=self.clock.now().date(),
                history_limit=self.config.transaction_history_limit,
                clock=self.clock,
                transaction_ids=self.transaction_ids
            )
            opening = None
            if amount > 0:
                opening = account.deposit(amount, "Initial deposit")

            self._customers[customer_id] = customer
            self._accounts[account_number] = account
            self._account_locks[account_number] = threading.RLock()

        if opening:
            self._append_journal(opening)

        log_action(
            self.logger, "info", "Account created",
            account_number=account_number, action="create_account",
            extra={"customer_id": customer_id, "kind": kind.value, "initial_deposit": str(amount)}
        )
        return account_number

    def _unused_id(self, generator: IdGenerator, taken: Dict[str, Any]) -> str:
        identifier = generator.next_id()
        while identifier in taken:
            identifier = generator.next_id()
        return identifier

    def get_account(self, account_number: str) -> Account:
        """
        Raises:
            NotFoundError: no such account
        """
        with self._registry_lock:
            account = self._accounts.get(account_number)
        if account is None:
            raise NotFoundError("Account not found", account_number)
        return account

    def has_account(self, account_number: str) -> bool:
        with self._registry_lock:
            return account_number in self._accounts

    def get_customer(self, customer_id: str) -> Customer:
        """
        Raises:
            NotFoundError: no such customer
        """
        with self._registry_lock:
            customer = self._customers.get(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        return customer

    def get_account_customer(self, account_number: str) -> Customer:
        return self.get_customer(self.get_account(account_number).customer_id)

    def deactivate_account(self, account_number: str) -> None:
        account = self.get_account(account_number)
        with self.account_lock(account_number):
            account.deactivate()
        log_action(self.logger, "info", "Account deactivated",
                   account_number=account_number, action="deactivate_account")

    def activate_account(self, account_number: str) -> None:
        account = self.get_account(account_number)
        with self.account_lock(account_number):
            account.activate()
        log_action(self.logger, "info", "Account activated",
                   account_number=account_number, action="activate_account")

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def authenticate(self, account_number: str, secret: str) -> bool:
        """
        Check a secret against an account.

        Raises:
            NotFoundError: no such account
        """
        return self.get_account(account_number).authenticate(secret)

    def change_password(self, account_number: str, old_secret: str, new_secret: str) -> None:
        """
        Replace the account secret. No strength rules are applied here.

        Raises:
            NotFoundError: no such account
            InvalidCredentialsError: old secret does not match
        """
        account = self.get_account(account_number)
        with self.account_lock(account_number):
            if not account.authenticate(old_secret):
                raise InvalidCredentialsError("Current password is incorrect", account_number)
            account.change_secret(new_secret)
        log_action(self.logger, "info", "Password changed",
                   account_number=account_number, action="change_password")

    # ------------------------------------------------------------------
    # Money movement
    # ------------------------------------------------------------------

    def deposit(self, account_number: str, amount: Any) -> Transaction:
        account = self.get_account(account_number)
        with self.account_lock(account_number):
            transaction = account.deposit(amount)
            self._append_journal(transaction)
        return transaction

    def withdraw(self, account_number: str, amount: Any) -> Transaction:
        account = self.get_account(account_number)
        with self.account_lock(account_number):
            transaction = account.withdraw(amount)
            self._append_journal(transaction)
        return transaction

    def transfer(
        self,
        from_account_number: str,
        to_account_number: str,
        amount: Any
    ) -> Tuple[Transaction, Transaction]:
        """
        Move money between two accounts.

        Both legs are validated under both account locks before either is
        applied, so a transfer is applied in full or not at all.

        Returns:
            (withdrawal on the source, deposit on the target)

        Raises:
            InvalidAmountError: same account on both sides, or amount not positive
            NotFoundError: either account is missing
            AccountInactiveError: either account is deactivated
            InsufficientBalanceError: source balance is too low
        """
        if from_account_number == to_account_number:
            raise InvalidAmountError(
                "Cannot transfer to the same account", account_number=from_account_number
            )
        amount = to_amount(amount, from_account_number)
        if amount <= 0:
            raise InvalidAmountError(
                "Transfer amount must be positive", amount, from_account_number
            )

        source = self.get_account(from_account_number)
        target = self.get_account(to_account_number)

        with self.accounts_locked(from_account_number, to_account_number):
            source.check_withdrawal(amount)
            target.check_deposit(amount)

            debit = source.withdraw(amount, f"Transfer to {to_account_number}")
            credit = target.deposit(amount, f"Transfer from {from_account_number}")
            self._append_journal(debit, credit)

        log_action(
            self.logger, "info", "Transfer completed",
            account_number=from_account_number, action="transfer",
            extra={"to_account": to_account_number, "amount": str(amount)}
        )
        return debit, credit

    def get_balance(self, account_number: str) -> Decimal:
        return self.get_account(account_number).balance

    def get_transaction_history(self, account_number: str) -> Tuple[Transaction, ...]:
        """Most recent transactions of one account, oldest first"""
        return self.get_account(account_number).transaction_history

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_all_accounts(self) -> List[Account]:
        with self._registry_lock:
            return list(self._accounts.values())

    def get_accounts_by_kind(self, kind: Union[AccountKind, str]) -> List[Account]:
        kind = AccountKind.parse(kind)
        return [account for account in self.get_all_accounts() if account.kind == kind]

    def get_active_accounts(self) -> List[Account]:
        return [account for account in self.get_all_accounts() if account.active]

    def get_all_customers(self) -> List[Customer]:
        with self._registry_lock:
            return list(self._customers.values())

    def find_customer_by_name(self, name: str) -> Optional[Customer]:
        """First customer whose name contains ``name``, ignoring case"""
        needle = name.lower()
        for customer in self.get_all_customers():
            if needle in customer.name.lower():
                return customer
        return None

    def get_all_transactions(self) -> List[Transaction]:
        with self._journal_lock:
            return list(self._journal)

    def get_transactions_by_type(self, transaction_type: Union[TransactionType, str]) -> List[Transaction]:
        if not isinstance(transaction_type, TransactionType):
            transaction_type = TransactionType(str(transaction_type).upper())
        return [t for t in self.get_all_transactions() if t.transaction_type == transaction_type]

    def total_accounts_count(self) -> int:
        with self._registry_lock:
            return len(self._accounts)

    def active_accounts_count(self) -> int:
        return len(self.get_active_accounts())

    def total_balance(self) -> Decimal:
        return sum((account.balance for account in self.get_all_accounts()), Decimal("0"))

    def account_kind_distribution(self) -> Dict[str, int]:
        return dict(Counter(account.kind.value for account in self.get_all_accounts()))

    def transaction_type_distribution(self) -> Dict[str, int]:
        return dict(Counter(t.transaction_type.value for t in self.get_all_transactions()))

    def get_statistics(self) -> LedgerStatistics:
        return LedgerStatistics(
            total_accounts=self.total_accounts_count(),
            active_accounts=self.active_accounts_count(),
            total_customers=len(self.get_all_customers()),
            total_balance=self.total_balance(),
            total_transactions=len(self.get_all_transactions()),
            account_kind_distribution=self.account_kind_distribution(),
            transaction_type_distribution=self.transaction_type_distribution(),
        )

    # ------------------------------------------------------------------
    # Snapshot / restore
    # ------------------------------------------------------------------

    def snapshot(self) -> LedgerSnapshot:
        """Detached copy of all customers, accounts and journal entries"""
        accounts = self.get_all_accounts()
        account_lines = []
        for account in accounts:
            with self.account_lock(account.account_number):
                account_lines.append(account.to_line())
        return LedgerSnapshot(
            customers=self.get_all_customers(),
            accounts=account_lines,
            transactions=self.get_all_transactions(),
        )

    def restore(self, snapshot: LedgerSnapshot) -> None:
        """
        Replace the ledger contents with a snapshot.

        Accounts whose customer is missing are skipped together with their
        transactions. Each account's log is rebuilt from its most recent
        journal entries, and the id generators continue after the highest
        restored ids.
        """
        customers = {customer.id: customer for customer in snapshot.customers}
        accounts: Dict[str, Account] = {}
        for line in snapshot.accounts:
            account = Account.from_line(
                line,
                history_limit=self.config.transaction_history_limit,
                clock=self.clock,
                transaction_ids=self.transaction_ids
            )
            if account.customer_id not in customers:
                log_action(
                    self.logger, "warning", "Skipping account with unknown customer",
                    account_number=account.account_number, action="restore",
                    extra={"customer_id": account.customer_id}
                )
                continue
            accounts[account.account_number] = account

        journal = [t for t in snapshot.transactions if t.account_number in accounts]
        for transaction in journal:
            accounts[transaction.account_number].restore_history(transaction)

        with self._registry_lock:
            self._customers = customers
            self._accounts = accounts
            self._account_locks = {number: threading.RLock() for number in accounts}
            for generator, ids in ((self.customer_ids, customers), (self.account_numbers, accounts)):
                if isinstance(generator, SequentialIdGenerator):
                    for identifier in ids:
                        generator.advance_past(identifier)
        with self._journal_lock:
            self._journal = journal

        log_action(
            self.logger, "info", "Ledger restored", action="restore",
            extra={
                "customers": len(customers),
                "accounts": len(accounts),
                "transactions": len(journal)
            }
        )


def seed_sample_data(ledger: Ledger) -> List[str]:
    """Open the three demonstration accounts; returns their numbers"""
    samples = [
        (CustomerProfile("John Doe", "john.doe@email.com", "9876543210", "123 Main St, City"),
         AccountKind.SAVINGS, Decimal("5000"), "password123"),
        (CustomerProfile("Jane Smith", "jane.smith@email.com", "9876543211", "456 Oak Ave, City"),
         AccountKind.CURRENT, Decimal("10000"), "password456"),
        (CustomerProfile("Bob Johnson", "bob.johnson@email.com", "9876543212", "789 Pine St, City"),
         AccountKind.SAVINGS, Decimal("2500"), "password789"),
    ]
    return [
        ledger.create_account(profile, kind, deposit, secret)
        for profile, kind, deposit, secret in samples
    ]
