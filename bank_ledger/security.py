"""
Lockout Guard Module

Tracks failed login attempts per account and suspends an account for a fixed
window once too many attempts fail in a row.

Per-account states:
    OPEN        no failed attempts recorded, not locked
    WARNED(n)   n failed attempts, 1 <= n < max_login_attempts
    LOCKED      lock timestamp recorded; every login is refused until
                now - locked_at >= lockout duration, at which point the
                entry is dropped on the next check and the account is OPEN

Guard state for an account is only changed while that account's ledger lock
is held.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional
import math
import threading

from .accounts import Account
from .clock import Clock
from .config import LedgerConfig
from .customers import has_line_break
from .errors import InvalidCredentialsError
from .ledger import Ledger
from .logging_config import get_logger, log_action


class LockState(Enum):
    """Lockout state of one account"""
    OPEN = "open"
    WARNED = "warned"
    LOCKED = "locked"


@dataclass
class SecurityStatus:
    """Failed-attempt and lock information for one account"""
    account_number: str
    state: LockState
    failed_attempts: int
    remaining_seconds: int = 0

    def to_dict(self) -> Dict:
        return {
            "account_number": self.account_number,
            "state": self.state.value,
            "failed_attempts": self.failed_attempts,
            "remaining_seconds": self.remaining_seconds,
        }


class LockoutGuard:
    """
    Failed-login counter and timed account suspension in front of the ledger
    """

    def __init__(
        self,
        ledger: Ledger,
        clock: Optional[Clock] = None,
        config: Optional[LedgerConfig] = None
    ):
        self.ledger = ledger
        self.clock = clock or ledger.clock
        self.config = config or ledger.config
        self.logger = get_logger("bank_ledger.security")

        self._failed_attempts: Dict[str, int] = {}
        self._locked_at: Dict[str, datetime] = {}
        # Guards the maps themselves for whole-map reads and resets
        self._state_lock = threading.Lock()

    @property
    def max_attempts(self) -> int:
        return self.config.max_login_attempts

    @property
    def lockout_duration(self) -> timedelta:
        return timedelta(seconds=self.config.lockout_duration_seconds)

    def _remaining(self, locked_at: datetime, now: datetime) -> timedelta:
        return self.lockout_duration - (now - locked_at)

    def _check_lock(self, account_number: str) -> Optional[int]:
        """
        Seconds left on an active lock, or None when not locked.

        An expired lock is removed together with its attempt count. Caller
        holds the account lock.
        """
        with self._state_lock:
            locked_at = self._locked_at.get(account_number)
            if locked_at is None:
                return None

            remaining = self._remaining(locked_at, self.clock.now())
            if remaining > timedelta(0):
                return max(1, math.ceil(remaining.total_seconds()))

            del self._locked_at[account_number]
            self._failed_attempts.pop(account_number, None)

        log_action(self.logger, "info", "Lockout expired",
                   account_number=account_number, action="unlock")
        return None

    def _locked_error(self, account_number: str, remaining_seconds: int) -> InvalidCredentialsError:
        return InvalidCredentialsError(
            "Account is locked due to multiple failed attempts. "
            f"Try again in {remaining_seconds} seconds",
            account_number,
            attempt_count=self.get_login_attempts(account_number),
            remaining_seconds=remaining_seconds,
            locked=True
        )

    def _record_failure(self, account_number: str) -> int:
        with self._state_lock:
            attempts = self._failed_attempts.get(account_number, 0) + 1
            self._failed_attempts[account_number] = attempts
        return attempts

    def login(self, account_number: str, secret: str) -> Account:
        """
        Authenticate against the ledger, counting failures.

        A locked account is refused without looking at the secret.

        Returns:
            The authenticated account

        Raises:
            NotFoundError: no such account
            InvalidCredentialsError: wrong secret, or account locked
        """
        with self.ledger.account_lock(account_number):
            remaining = self._check_lock(account_number)
            if remaining is not None:
                raise self._locked_error(account_number, remaining)

            if self.ledger.authenticate(account_number, secret):
                with self._state_lock:
                    self._failed_attempts.pop(account_number, None)
                return self.ledger.get_account(account_number)

            attempts = self._record_failure(account_number)
            if attempts >= self.max_attempts:
                with self._state_lock:
                    self._locked_at[account_number] = self.clock.now()
                log_action(
                    self.logger, "warning", "Account locked after failed logins",
                    account_number=account_number, action="lock",
                    extra={
                        "attempts": attempts,
                        "lockout_seconds": self.config.lockout_duration_seconds
                    }
                )
                raise InvalidCredentialsError(
                    f"Account locked due to {self.max_attempts} failed login attempts",
                    account_number,
                    attempt_count=attempts,
                    remaining_seconds=self.config.lockout_duration_seconds,
                    locked=True
                )

            raise InvalidCredentialsError(
                f"Invalid credentials. Attempt {attempts} of {self.max_attempts}",
                account_number,
                attempt_count=attempts
            )

    def ensure_unlocked(self, account_number: str) -> None:
        """
        Raises:
            NotFoundError: no such account
            InvalidCredentialsError: account is locked
        """
        with self.ledger.account_lock(account_number):
            remaining = self._check_lock(account_number)
            if remaining is not None:
                raise self._locked_error(account_number, remaining)

    def change_password(self, account_number: str, current_secret: str, new_secret: str) -> None:
        """
        Change a password after verifying the current one.

        A wrong current password counts as a failed attempt but never locks
        the account by itself.

        Raises:
            NotFoundError: no such account
            InvalidCredentialsError: account locked, wrong current password,
                or new password too weak
        """
        with self.ledger.account_lock(account_number):
            remaining = self._check_lock(account_number)
            if remaining is not None:
                raise self._locked_error(account_number, remaining)

            if not self.ledger.authenticate(account_number, current_secret):
                attempts = self._record_failure(account_number)
                raise InvalidCredentialsError(
                    "Current password is incorrect", account_number, attempt_count=attempts
                )

            if not self.is_valid_password(new_secret):
                raise InvalidCredentialsError(
                    "New password does not meet security requirements. "
                    f"Password must be at least {self.config.password_min_length} characters "
                    "long and contain letters and numbers.",
                    account_number
                )

            self.ledger.change_password(account_number, current_secret, new_secret)

    def is_valid_password(self, password: Optional[str]) -> bool:
        if not password or len(password) < self.config.password_min_length:
            return False
        if has_line_break(password):
            return False
        has_letter = any(c.isalpha() for c in password)
        has_digit = any(c.isdigit() for c in password)
        return has_letter and has_digit

    def is_locked(self, account_number: str) -> bool:
        with self.ledger.account_lock(account_number):
            return self._check_lock(account_number) is not None

    def remaining_lock_seconds(self, account_number: str) -> int:
        """Seconds until the lock lifts; 0 when not locked"""
        with self.ledger.account_lock(account_number):
            return self._check_lock(account_number) or 0

    def get_login_attempts(self, account_number: str) -> int:
        with self._state_lock:
            return self._failed_attempts.get(account_number, 0)

    def get_state(self, account_number: str) -> LockState:
        if self.is_locked(account_number):
            return LockState.LOCKED
        if self.get_login_attempts(account_number) > 0:
            return LockState.WARNED
        return LockState.OPEN

    def unlock(self, account_number: str) -> None:
        """Administrative override: clear attempts and any lock"""
        with self.ledger.account_lock(account_number):
            with self._state_lock:
                self._locked_at.pop(account_number, None)
                self._failed_attempts.pop(account_number, None)
        log_action(self.logger, "info", "Account unlocked by administrator",
                   account_number=account_number, action="unlock")

    def security_status(self) -> List[SecurityStatus]:
        """Accounts with failed attempts or an unexpired lock"""
        now = self.clock.now()
        with self._state_lock:
            attempts = dict(self._failed_attempts)
            locks = dict(self._locked_at)

        statuses = []
        for account_number in sorted(set(attempts) | set(locks)):
            remaining = 0
            locked_at = locks.get(account_number)
            if locked_at is not None:
                left = self._remaining(locked_at, now)
                if left > timedelta(0):
                    remaining = max(1, math.ceil(left.total_seconds()))

            if remaining:
                state = LockState.LOCKED
            elif locked_at is not None:
                # Lock lapsed; the account is OPEN from the next check on
                state = LockState.OPEN
            else:
                state = LockState.WARNED

            if state == LockState.OPEN:
                continue
            statuses.append(SecurityStatus(
                account_number=account_number,
                state=state,
                failed_attempts=attempts.get(account_number, 0),
                remaining_seconds=remaining
            ))
        return statuses

    def reset(self) -> None:
        """Clear all attempt counts and locks"""
        with self._state_lock:
            self._failed_attempts.clear()
            self._locked_at.clear()
        log_action(self.logger, "info", "Security data reset", action="reset")
