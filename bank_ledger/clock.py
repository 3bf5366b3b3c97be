"""
Clock Module

Single source of time for the ledger and the lockout guard. Tests swap in a
ManualClock so lock expiry can be driven without sleeping.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


class Clock(ABC):
    """Abstract time source"""
    
    @abstractmethod
    def now(self) -> datetime:
        """Current time as a timezone-aware UTC datetime"""
        pass


class SystemClock(Clock):
    """Wall-clock time"""
    
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock(Clock):
    """Clock that only moves when told to"""
    
    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
    
    def now(self) -> datetime:
        return self._now
    
    def advance(self, seconds: float = 0, **kwargs) -> datetime:
        """Move the clock forward; keyword arguments are passed to timedelta"""
        self._now = self._now + timedelta(seconds=seconds, **kwargs)
        return self._now
    
    def set(self, moment: datetime) -> None:
        self._now = moment
