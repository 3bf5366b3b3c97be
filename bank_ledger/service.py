"""
Banking Service Module

Caller-facing facade over the ledger and the lockout guard. Every operation
that moves money or changes credentials consults the guard first, under the
same account lock the ledger uses for the mutation.
"""

from decimal import Decimal
from typing import Any, List, Optional, Tuple, Union

from .accounts import Account, AccountKind
from .clock import Clock
from .config import LedgerConfig, get_config
from .customers import Customer, CustomerProfile
from .ledger import Ledger, LedgerStatistics, seed_sample_data
from .logging_config import get_logger
from .security import LockoutGuard, SecurityStatus
from .storage import RecordStore
from .transactions import Transaction


class BankingService:
    """
    Ledger operations gated by the lockout guard
    """

    def __init__(self, ledger: Ledger, guard: Optional[LockoutGuard] = None):
        self.ledger = ledger
        self.guard = guard or LockoutGuard(ledger)
        self.logger = get_logger("bank_ledger.service")

    @classmethod
    def create(cls, config: Optional[LedgerConfig] = None,
               clock: Optional[Clock] = None) -> 'BankingService':
        """Build a ledger and guard from configuration"""
        config = config or get_config()
        ledger = Ledger(config=config, clock=clock)
        if config.seed_sample_data:
            seed_sample_data(ledger)
        return cls(ledger, LockoutGuard(ledger))

    # Accounts

    def create_account(self, profile: CustomerProfile, kind: Union[AccountKind, str],
                       initial_deposit: Any, secret: str) -> str:
        return self.ledger.create_account(profile, kind, initial_deposit, secret)

    def get_account(self, account_number: str) -> Account:
        return self.ledger.get_account(account_number)

    def get_account_customer(self, account_number: str) -> Customer:
        return self.ledger.get_account_customer(account_number)

    def deactivate_account(self, account_number: str) -> None:
        self.ledger.deactivate_account(account_number)

    def activate_account(self, account_number: str) -> None:
        self.ledger.activate_account(account_number)

    # Authentication

    def login(self, account_number: str, secret: str) -> Account:
        return self.guard.login(account_number, secret)

    def change_password(self, account_number: str, current_secret: str, new_secret: str) -> None:
        self.guard.change_password(account_number, current_secret, new_secret)

    def unlock_account(self, account_number: str) -> None:
        self.guard.unlock(account_number)

    def security_status(self) -> List[SecurityStatus]:
        return self.guard.security_status()

    def reset_security(self) -> None:
        self.guard.reset()

    # Money movement

    def deposit(self, account_number: str, amount: Any) -> Transaction:
        with self.ledger.account_lock(account_number):
            self.guard.ensure_unlocked(account_number)
            return self.ledger.deposit(account_number, amount)

    def withdraw(self, account_number: str, amount: Any) -> Transaction:
        with self.ledger.account_lock(account_number):
            self.guard.ensure_unlocked(account_number)
            return self.ledger.withdraw(account_number, amount)

    def transfer(self, from_account_number: str, to_account_number: str,
                 amount: Any) -> Tuple[Transaction, Transaction]:
        # The ledger rejects same-account transfers; take no locks for them
        if from_account_number == to_account_number:
            return self.ledger.transfer(from_account_number, to_account_number, amount)
        with self.ledger.accounts_locked(from_account_number, to_account_number):
            self.guard.ensure_unlocked(from_account_number)
            return self.ledger.transfer(from_account_number, to_account_number, amount)

    def get_balance(self, account_number: str) -> Decimal:
        return self.ledger.get_balance(account_number)

    def get_transaction_history(self, account_number: str) -> Tuple[Transaction, ...]:
        return self.ledger.get_transaction_history(account_number)

    # Reporting

    def get_all_accounts(self) -> List[Account]:
        return self.ledger.get_all_accounts()

    def get_accounts_by_kind(self, kind: Union[AccountKind, str]) -> List[Account]:
        return self.ledger.get_accounts_by_kind(kind)

    def get_active_accounts(self) -> List[Account]:
        return self.ledger.get_active_accounts()

    def get_all_customers(self) -> List[Customer]:
        return self.ledger.get_all_customers()

    def find_customer_by_name(self, name: str) -> Optional[Customer]:
        return self.ledger.find_customer_by_name(name)

    def get_all_transactions(self) -> List[Transaction]:
        return self.ledger.get_all_transactions()

    def get_statistics(self) -> LedgerStatistics:
        return self.ledger.get_statistics()

    # Persistence

    def save(self, store: RecordStore) -> None:
        store.save_snapshot(self.ledger.snapshot())

    def load(self, store: RecordStore) -> bool:
        """Restore from a store; returns False when the store holds no data"""
        if not store.exists():
            return False
        self.ledger.restore(store.load_snapshot())
        self.guard.reset()
        return True
