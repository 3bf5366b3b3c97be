"""
Test suite for the banking service facade

Tests that money movement is gated by the lockout guard and that saved data
can be reloaded.
"""

import pytest
from decimal import Decimal

from bank_ledger.clock import ManualClock
from bank_ledger.config import LedgerConfig
from bank_ledger.customers import CustomerProfile
from bank_ledger.errors import InvalidAmountError, InvalidCredentialsError, NotFoundError
from bank_ledger.service import BankingService
from bank_ledger.storage import InMemoryRecordStore


class TestBankingService:
    """Test guard-gated operations"""

    def setup_method(self):
        self.clock = ManualClock()
        self.service = BankingService.create(LedgerConfig(seed_sample_data=True), clock=self.clock)
        self.john, self.jane, self.bob = [a.account_number for a in self.service.get_all_accounts()]

    def lock(self, number):
        for _ in range(3):
            with pytest.raises(InvalidCredentialsError):
                self.service.login(number, "bad")

    def test_seeded_accounts(self):
        assert self.service.get_balance(self.john) == Decimal("5000")
        assert self.service.get_balance(self.jane) == Decimal("10000")
        assert self.service.get_balance(self.bob) == Decimal("2500")
        assert self.service.login(self.john, "password123").account_number == self.john

    def test_create_without_seed(self):
        service = BankingService.create(LedgerConfig(seed_sample_data=False), clock=self.clock)
        assert service.get_all_accounts() == []

    def test_deposit_withdraw(self):
        self.service.deposit(self.john, 500)
        self.service.withdraw(self.john, 200)
        assert self.service.get_balance(self.john) == Decimal("5300")
        assert len(self.service.get_transaction_history(self.john)) == 3

    def test_locked_account_cannot_move_money(self):
        self.lock(self.john)

        with pytest.raises(InvalidCredentialsError) as exc_info:
            self.service.deposit(self.john, 100)
        assert exc_info.value.locked
        with pytest.raises(InvalidCredentialsError):
            self.service.withdraw(self.john, 100)
        with pytest.raises(InvalidCredentialsError):
            self.service.transfer(self.john, self.jane, 100)

        assert self.service.get_balance(self.john) == Decimal("5000")
        assert self.service.get_balance(self.jane) == Decimal("10000")

    def test_locked_account_can_receive_transfer(self):
        self.lock(self.john)
        self.service.transfer(self.jane, self.john, 1000)
        assert self.service.get_balance(self.john) == Decimal("6000")

    def test_unlock_restores_access(self):
        self.lock(self.john)
        self.service.unlock_account(self.john)
        self.service.deposit(self.john, 1)
        assert self.service.get_balance(self.john) == Decimal("5001")

    def test_lock_expiry_restores_access(self):
        self.lock(self.john)
        self.clock.advance(seconds=300)
        self.service.withdraw(self.john, 1)
        assert self.service.get_balance(self.john) == Decimal("4999")

    def test_transfer(self):
        self.service.transfer(self.john, self.bob, 1000)
        assert self.service.get_balance(self.john) == Decimal("4000")
        assert self.service.get_balance(self.bob) == Decimal("3500")

    def test_transfer_errors(self):
        with pytest.raises(InvalidAmountError):
            self.service.transfer(self.john, self.john, 10)
        with pytest.raises(NotFoundError):
            self.service.transfer(self.john, "ACC999999", 10)

    def test_change_password(self):
        self.service.change_password(self.john, "password123", "secret99")
        assert self.service.login(self.john, "secret99").account_number == self.john

    def test_security_status_and_reset(self):
        self.lock(self.bob)
        assert [s.account_number for s in self.service.security_status()] == [self.bob]
        self.service.reset_security()
        assert self.service.security_status() == []

    def test_reporting(self):
        self.service.deactivate_account(self.bob)
        assert len(self.service.get_active_accounts()) == 2
        assert len(self.service.get_accounts_by_kind("CURRENT")) == 1
        assert self.service.find_customer_by_name("bob").name == "Bob Johnson"
        assert self.service.get_account_customer(self.jane).name == "Jane Smith"
        assert len(self.service.get_all_customers()) == 3
        assert self.service.get_statistics().active_accounts == 2
        self.service.activate_account(self.bob)
        assert self.service.get_account(self.bob).active


class TestServicePersistence:
    """Test save and load through a record store"""

    def test_save_and_load(self):
        clock = ManualClock()
        service = BankingService.create(LedgerConfig(seed_sample_data=True), clock=clock)
        number = service.create_account(CustomerProfile("Alice Cooper"), "CURRENT", "750.50", "alice123")
        service.deposit(number, "49.50")
        store = InMemoryRecordStore()
        service.save(store)

        fresh = BankingService.create(LedgerConfig(), clock=clock)
        assert fresh.load(store) is True

        assert fresh.get_balance(number) == Decimal("800.00")
        assert len(fresh.get_all_accounts()) == 4
        assert fresh.login(number, "alice123").account_number == number
        assert len(fresh.get_transaction_history(number)) == 2

    def test_load_empty_store(self):
        service = BankingService.create(LedgerConfig(), clock=ManualClock())
        assert service.load(InMemoryRecordStore()) is False

    def test_load_resets_lockout(self):
        clock = ManualClock()
        service = BankingService.create(LedgerConfig(seed_sample_data=True), clock=clock)
        number = service.get_all_accounts()[0].account_number
        store = InMemoryRecordStore()
        service.save(store)
        for _ in range(3):
            with pytest.raises(InvalidCredentialsError):
                service.login(number, "bad")

        service.load(store)
        assert service.login(number, "password123").account_number == number
