"""Derived views: totals and the unified ledger."""

from pocketledger.queries.ledger import (
    balance_label,
    build_ledger,
    build_ledger_view,
    displayed_balance,
    paginate,
    synthesize_opening_balance,
)
from pocketledger.queries.totals import compute_totals

__all__ = [
    "balance_label",
    "build_ledger",
    "build_ledger_view",
    "compute_totals",
    "displayed_balance",
    "paginate",
    "synthesize_opening_balance",
]
