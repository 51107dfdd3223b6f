"""
PocketLedger - Ledger Consistency Layer

The durable core of a personal-finance tracker: a single-file snapshot
store, pure commands that change it, and the totals and unified ledger
views derived from it.

DESIGN PRINCIPLES:
1. One document, one write
2. A corrupt file never blocks the user, but the reset is always audited
3. Stored balances are authoritative; the ledger reconciles to them
4. Derived views are pure functions of one snapshot
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "PocketLedger Team"
