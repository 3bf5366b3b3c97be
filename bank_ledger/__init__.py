"""
Bank Ledger

An in-process banking ledger with bounded per-account transaction history,
atomic transfers, and a failed-login lockout guard.
"""

__version__ = "1.0.0"
