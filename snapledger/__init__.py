"""
SnapLedger - Source Package

Photograph a receipt, confirm what was read, and keep a monthly
household expense ledger with month-over-month trends.

DESIGN PRINCIPLES:
1. AI reads → Human confirms → Ledger records
2. A failed read is never a dead end: the user can always type it in
3. No silent corrections
4. Memory and disk never disagree
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "SnapLedger Team"
