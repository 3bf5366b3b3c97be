"""
Identifier Generation Module

Account numbers and customer ids come from an injected generator instead of
process-wide counters, so every Ledger instance numbers independently.
"""

from abc import ABC, abstractmethod
import threading
import uuid


class IdGenerator(ABC):
    """Abstract identifier source"""
    
    @abstractmethod
    def next_id(self) -> str:
        """Return a fresh identifier"""
        pass


class SequentialIdGenerator(IdGenerator):
    """
    Monotonic prefixed counter, e.g. ACC001001, ACC001002, ...
    
    The counter is guarded by its own lock; ``advance_past`` lets a restored
    ledger continue numbering after the highest id it loaded.
    """
    
    def __init__(self, prefix: str, start: int = 1000, width: int = 6):
        self.prefix = prefix
        self.width = width
        self._counter = start
        self._lock = threading.Lock()
    
    def next_id(self) -> str:
        with self._lock:
            self._counter += 1
            return f"{self.prefix}{self._counter:0{self.width}d}"
    
    def advance_past(self, identifier: str) -> None:
        """Make sure the next id issued sorts after ``identifier``"""
        if not identifier.startswith(self.prefix):
            return
        suffix = identifier[len(self.prefix):]
        if not suffix.isdigit():
            return
        with self._lock:
            self._counter = max(self._counter, int(suffix))


class UUIDIdGenerator(IdGenerator):
    """Random identifiers with an optional prefix"""
    
    def __init__(self, prefix: str = "", length: int = 12):
        self.prefix = prefix
        self.length = length
    
    def next_id(self) -> str:
        return f"{self.prefix}{uuid.uuid4().hex[:self.length].upper()}"
