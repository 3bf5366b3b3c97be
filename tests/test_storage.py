"""
Tests for record stores, backups and statement export
"""

import pytest
from decimal import Decimal
from datetime import datetime, timezone

from bank_ledger.clock import ManualClock
from bank_ledger.config import LedgerConfig
from bank_ledger.customers import Customer
from bank_ledger.ledger import Ledger, LedgerSnapshot, seed_sample_data
from bank_ledger.storage import (
    ACCOUNTS_FILE, CUSTOMERS_FILE, TRANSACTIONS_FILE,
    FlatFileRecordStore, InMemoryRecordStore
)


@pytest.fixture
def clock():
    return ManualClock(datetime(2024, 2, 29, 15, 30, tzinfo=timezone.utc))


@pytest.fixture
def ledger(clock):
    ledger = Ledger(config=LedgerConfig(), clock=clock)
    seed_sample_data(ledger)
    return ledger


class TestInMemoryRecordStore:
    """Test in-memory store"""

    def test_empty_store(self):
        store = InMemoryRecordStore()
        assert not store.exists()
        snapshot = store.load_snapshot()
        assert snapshot.customers == []
        assert snapshot.accounts == []
        assert snapshot.transactions == []

    def test_save_and_load(self, ledger):
        store = InMemoryRecordStore()
        store.save_snapshot(ledger.snapshot())

        assert store.exists()
        assert len(store.get_lines(ACCOUNTS_FILE)) == 3
        loaded = store.load_snapshot()
        assert loaded.accounts == ledger.snapshot().accounts
        assert loaded.customers == ledger.get_all_customers()


class TestFlatFileRecordStore:
    """Test flat-file store"""

    def test_creates_data_directory(self, tmp_path, clock):
        data_dir = tmp_path / "nested" / "data"
        store = FlatFileRecordStore(data_dir, clock=clock)

        assert data_dir.is_dir()
        assert not store.exists()
        assert store.file_info() == {}

    def test_writes_line_per_record(self, tmp_path, ledger, clock):
        store = FlatFileRecordStore(tmp_path, clock=clock)
        store.save_snapshot(ledger.snapshot())

        customer_lines = (tmp_path / CUSTOMERS_FILE).read_text(encoding="utf-8").splitlines()
        account_lines = (tmp_path / ACCOUNTS_FILE).read_text(encoding="utf-8").splitlines()
        transaction_lines = (tmp_path / TRANSACTIONS_FILE).read_text(encoding="utf-8").splitlines()

        assert customer_lines[0] == (
            "CUST001001,John Doe,john.doe@email.com,9876543210,123 Main St, City"
        )
        assert account_lines[0] == "ACC001001,password123,CUST001001,SAVINGS,5000,2024-02-29,true"
        assert len(transaction_lines) == 3
        assert transaction_lines[0].split(",")[1:5] == ["ACC001001", "DEPOSIT", "5000", "5000"]
        assert store.exists()
        assert set(store.file_info()) == {CUSTOMERS_FILE, ACCOUNTS_FILE, TRANSACTIONS_FILE}

    def test_round_trip_through_files(self, tmp_path, ledger, clock):
        ledger.transfer("ACC001002", "ACC001003", Decimal("2500.25"))
        store = FlatFileRecordStore(tmp_path, clock=clock)
        store.save_snapshot(ledger.snapshot())

        restored = Ledger(config=LedgerConfig(), clock=clock)
        restored.restore(store.load_snapshot())

        assert restored.get_balance("ACC001002") == Decimal("7499.75")
        assert restored.get_balance("ACC001003") == Decimal("5000.25")
        # Address containing a comma survives
        assert restored.get_customer("CUST001001").address == "123 Main St, City"
        assert restored.get_transaction_history("ACC001003")[-1].description == "Transfer from ACC001002"

    def test_blank_lines_ignored(self, tmp_path, clock):
        (tmp_path / CUSTOMERS_FILE).write_text("CUST1,A,a@x,1,addr\n\n", encoding="utf-8")
        (tmp_path / ACCOUNTS_FILE).write_text("\nACC1,pw,CUST1,SAVINGS,1,2024-01-01,true\n", encoding="utf-8")
        (tmp_path / TRANSACTIONS_FILE).write_text("", encoding="utf-8")

        snapshot = FlatFileRecordStore(tmp_path, clock=clock).load_snapshot()
        assert snapshot.customers == [Customer("CUST1", "A", "a@x", "1", "addr")]
        assert snapshot.accounts == ["ACC1,pw,CUST1,SAVINGS,1,2024-01-01,true"]

    def test_backup_and_cleanup(self, tmp_path, ledger, clock):
        store = FlatFileRecordStore(tmp_path, max_backups=3, clock=clock)
        created = []
        for _ in range(5):
            created.append(store.backup(ledger.snapshot()))
            clock.advance(seconds=1)

        backups = store.list_backups()
        assert backups == created[-3:]
        assert created[0].name == "backup_20240229_153000"
        for backup in backups:
            assert (backup / ACCOUNTS_FILE).exists()
            assert (backup / CUSTOMERS_FILE).exists()
            assert (backup / TRANSACTIONS_FILE).exists()

    def test_backup_same_second_gets_unique_name(self, tmp_path, ledger, clock):
        store = FlatFileRecordStore(tmp_path, clock=clock)
        first = store.backup(ledger.snapshot())
        second = store.backup(ledger.snapshot())

        assert first != second
        assert second.name == "backup_20240229_153000_01"

    def test_export_statement(self, tmp_path, ledger, clock):
        store = FlatFileRecordStore(tmp_path, clock=clock)
        ledger.withdraw("ACC001001", 250)
        account = ledger.get_account("ACC001001")
        customer = ledger.get_account_customer("ACC001001")

        path = store.export_statement(account, customer, "statement_ACC001001.txt")

        text = path.read_text(encoding="utf-8")
        assert path.parent == tmp_path
        assert "Account Number: ACC001001" in text
        assert "Account Holder: John Doe" in text
        assert "Current Balance: 4750.00" in text
        assert "WITHDRAWAL" in text
        assert "End of Statement" in text
        assert "Generated on: 2024-02-29T15:30:00+00:00" in text

    def test_export_statement_without_history(self, tmp_path, clock):
        ledger = Ledger(config=LedgerConfig(), clock=clock)
        from bank_ledger.customers import CustomerProfile
        number = ledger.create_account(CustomerProfile("Empty"), "SAVINGS", 0, "pw")
        store = FlatFileRecordStore(tmp_path, clock=clock)

        path = store.export_statement(
            ledger.get_account(number), ledger.get_account_customer(number), "empty.txt"
        )
        assert "No transactions found." in path.read_text(encoding="utf-8")


class TestLedgerSnapshot:
    """Test snapshot line helpers"""

    def test_from_lines_parses_all_kinds(self):
        snapshot = LedgerSnapshot.from_lines(
            ["CUST1,A,a@x,1,addr"],
            ["ACC1,pw,CUST1,CURRENT,1,2024-01-01,true"],
            ["TXN1,ACC1,DEPOSIT,1,1,2024-01-01T00:00:00,Initial deposit"],
        )

        assert snapshot.customer_lines() == ["CUST1,A,a@x,1,addr"]
        assert snapshot.account_lines() == ["ACC1,pw,CUST1,CURRENT,1,2024-01-01,true"]
        assert snapshot.transaction_lines() == [
            "TXN1,ACC1,DEPOSIT,1,1,2024-01-01T00:00:00,Initial deposit"
        ]
