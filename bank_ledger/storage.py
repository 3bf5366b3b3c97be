"""
Storage Backend Module

Persists ledger snapshots as line-oriented, comma-separated records: one
file each for customers, accounts and transactions. Provides an in-memory
store for testing and a flat-file store for a data directory, plus backups
and plain-text account statements.

No durability guarantees are made; files are simply rewritten on save.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Union
from pathlib import Path
import shutil
import threading

from .accounts import Account
from .clock import Clock, SystemClock
from .customers import Customer
from .ledger import LedgerSnapshot
from .logging_config import get_logger, log_action


CUSTOMERS_FILE = "customers.txt"
ACCOUNTS_FILE = "accounts.txt"
TRANSACTIONS_FILE = "transactions.txt"
DATA_FILES = (CUSTOMERS_FILE, ACCOUNTS_FILE, TRANSACTIONS_FILE)
BACKUP_PREFIX = "backup_"


class RecordStore(ABC):
    """Abstract interface for snapshot storage"""

    @abstractmethod
    def save_snapshot(self, snapshot: LedgerSnapshot) -> None:
        """Persist a full snapshot, replacing what was stored"""
        pass

    @abstractmethod
    def load_snapshot(self) -> LedgerSnapshot:
        """Load the stored snapshot; empty when nothing is stored"""
        pass

    @abstractmethod
    def exists(self) -> bool:
        """Check whether any data has been stored"""
        pass


class InMemoryRecordStore(RecordStore):
    """In-memory store for testing; keeps lines exactly as they would be written"""

    def __init__(self):
        self._files: Dict[str, List[str]] = {}
        self._lock = threading.RLock()

    def save_snapshot(self, snapshot: LedgerSnapshot) -> None:
        with self._lock:
            self._files = {
                CUSTOMERS_FILE: snapshot.customer_lines(),
                ACCOUNTS_FILE: snapshot.account_lines(),
                TRANSACTIONS_FILE: snapshot.transaction_lines(),
            }

    def load_snapshot(self) -> LedgerSnapshot:
        with self._lock:
            return LedgerSnapshot.from_lines(
                list(self._files.get(CUSTOMERS_FILE, [])),
                list(self._files.get(ACCOUNTS_FILE, [])),
                list(self._files.get(TRANSACTIONS_FILE, [])),
            )

    def exists(self) -> bool:
        with self._lock:
            return bool(self._files)

    def get_lines(self, filename: str) -> List[str]:
        """Stored lines of one file, for inspection"""
        with self._lock:
            return list(self._files.get(filename, []))


class FlatFileRecordStore(RecordStore):
    """Flat-file store rooted at a data directory"""

    def __init__(
        self,
        data_dir: Union[str, Path] = "data",
        max_backups: int = 5,
        clock: Optional[Clock] = None
    ):
        self.data_dir = Path(data_dir)
        self.max_backups = max_backups
        self.clock = clock or SystemClock()
        self.logger = get_logger("bank_ledger.storage")
        self._lock = threading.RLock()

        if not self.data_dir.exists():
            self.data_dir.mkdir(parents=True)
            log_action(self.logger, "info", "Created data directory",
                       action="init_storage", extra={"path": str(self.data_dir)})

    def _write_lines(self, path: Path, lines: List[str]) -> None:
        with path.open("w", encoding="utf-8") as handle:
            for line in lines:
                handle.write(line)
                handle.write("\n")

    def _read_lines(self, path: Path) -> List[str]:
        if not path.exists():
            return []
        with path.open("r", encoding="utf-8") as handle:
            return [line.rstrip("\n") for line in handle if line.strip()]

    def _write_snapshot(self, directory: Path, snapshot: LedgerSnapshot) -> None:
        self._write_lines(directory / CUSTOMERS_FILE, snapshot.customer_lines())
        self._write_lines(directory / ACCOUNTS_FILE, snapshot.account_lines())
        self._write_lines(directory / TRANSACTIONS_FILE, snapshot.transaction_lines())

    def save_snapshot(self, snapshot: LedgerSnapshot) -> None:
        with self._lock:
            self._write_snapshot(self.data_dir, snapshot)
        log_action(
            self.logger, "info", "Snapshot saved", action="save_snapshot",
            extra={
                "customers": len(snapshot.customers),
                "accounts": len(snapshot.accounts),
                "transactions": len(snapshot.transactions)
            }
        )

    def load_snapshot(self) -> LedgerSnapshot:
        with self._lock:
            return LedgerSnapshot.from_lines(
                self._read_lines(self.data_dir / CUSTOMERS_FILE),
                self._read_lines(self.data_dir / ACCOUNTS_FILE),
                self._read_lines(self.data_dir / TRANSACTIONS_FILE),
            )

    def exists(self) -> bool:
        return all((self.data_dir / name).exists() for name in DATA_FILES)

    def file_info(self) -> Dict[str, int]:
        """Size in bytes of each data file that exists"""
        info = {}
        for name in DATA_FILES:
            path = self.data_dir / name
            if path.exists():
                info[name] = path.stat().st_size
        return info

    def backup(self, snapshot: LedgerSnapshot) -> Path:
        """
        Write the snapshot to a new timestamped backup directory and prune
        old backups down to ``max_backups``.

        Returns:
            Path of the created backup directory
        """
        with self._lock:
            stamp = self.clock.now().strftime("%Y%m%d_%H%M%S")
            backup_dir = self.data_dir / f"{BACKUP_PREFIX}{stamp}"
            suffix = 1
            while backup_dir.exists():
                backup_dir = self.data_dir / f"{BACKUP_PREFIX}{stamp}_{suffix:02d}"
                suffix += 1
            backup_dir.mkdir(parents=True)
            self._write_snapshot(backup_dir, snapshot)
            self.cleanup_old_backups()

        log_action(self.logger, "info", "Backup created", action="backup",
                   extra={"path": str(backup_dir)})
        return backup_dir

    def list_backups(self) -> List[Path]:
        """Backup directories, oldest first"""
        backups = [
            path for path in self.data_dir.iterdir()
            if path.is_dir() and path.name.startswith(BACKUP_PREFIX)
        ]
        return sorted(backups, key=lambda path: path.name)

    def cleanup_old_backups(self) -> List[Path]:
        """Delete the oldest backups beyond ``max_backups``; returns what was removed"""
        with self._lock:
            backups = self.list_backups()
            excess = len(backups) - self.max_backups
            removed = backups[:excess] if excess > 0 else []
            for path in removed:
                shutil.rmtree(path)
        return removed

    def export_statement(self, account: Account, customer: Customer, filename: str,
                         generated_at: Optional[datetime] = None) -> Path:
        """Write a plain-text statement of one account into the data directory"""
        generated_at = generated_at or self.clock.now()
        lines = [
            "ACCOUNT STATEMENT",
            "=================",
            "",
            f"Account Number: {account.account_number}",
            f"Account Holder: {customer.name}",
            f"Account Type: {account.kind.value}",
            f"Current Balance: {account.balance:.2f}",
            f"Date Created: {account.date_created.isoformat()}",
            "",
            "TRANSACTION HISTORY",
            "===================",
        ]

        history = account.transaction_history
        if not history:
            lines.append("No transactions found.")
        else:
            lines.append(f"{'Transaction ID':<20} {'Type':<12} {'Amount':>12} {'Balance':>12} {'Timestamp':<20}")
            lines.append("-" * 80)
            for transaction in history:
                lines.append(
                    f"{transaction.id:<20} {transaction.transaction_type.value:<12} "
                    f"{transaction.amount:>12.2f} {transaction.balance_after:>12.2f} "
                    f"{transaction.timestamp.strftime('%d-%m-%Y %H:%M:%S'):<20}"
                )

        lines.extend(["", "End of Statement", f"Generated on: {generated_at.isoformat()}"])

        path = self.data_dir / filename
        with self._lock:
            self._write_lines(path, lines)
        log_action(self.logger, "info", "Statement exported",
                   account_number=account.account_number, action="export_statement",
                   extra={"path": str(path)})
        return path
