"""Ledger package."""

from snapledger.ledger.events import ChangeNotifier, LedgerChange
from snapledger.ledger.store import LedgerStore

__all__ = ["ChangeNotifier", "LedgerChange", "LedgerStore"]
