"""
Aggregation Engine

DESIGN DECISION: Totals are a pure fold over one snapshot.
- No I/O, no clock, no settings lookup
- Missing collections count as empty and missing amounts as zero
- Bank totals trust the stored running balance, never the transaction log

Calling `compute_totals` twice on the same snapshot yields equal results.
"""

from decimal import Decimal
from typing import Iterable, Optional

from pocketledger.models.ledger import Totals, TotalsOptions
from pocketledger.models.state import Money, Snapshot


ZERO = Decimal("0")


def _sum(amounts: Iterable[Money]) -> Decimal:
    return sum((m.amount for m in amounts), ZERO)


def fixed_income_by_currency(snapshot: Snapshot) -> dict[str, Decimal]:
    """Current value of fixed income instruments per currency, keys sorted."""
    totals: dict[str, Decimal] = {}
    for entry in snapshot.fixed_income_entries:
        currency = entry.current_value.currency
        totals[currency] = totals.get(currency, ZERO) + entry.current_value.amount
    return dict(sorted(totals.items()))


def compute_totals(
    snapshot: Optional[Snapshot],
    options: Optional[TotalsOptions] = None,
) -> Totals:
    """
    Compute summary figures for a snapshot.

    Net worth counts bank balances, crypto, investments and physical assets
    against loans and card balances. Cash in hand is reported separately
    and is not part of net worth.
    """
    if snapshot is None:
        return Totals()
    options = options or TotalsOptions()

    total_cash = _sum(e.amount for e in snapshot.cash_entries)
    total_bank_accounts = _sum(a.balance for a in snapshot.accounts)
    total_loans = _sum(l.current_balance for l in snapshot.loan_entries)
    total_credit_cards = _sum(c.current_balance for c in snapshot.credit_card_entries)
    total_fixed_income = _sum(f.current_value for f in snapshot.fixed_income_entries)
    total_physical_assets = _sum(p.current_value for p in snapshot.physical_assets)
    total_crypto = _sum(h.current_value for h in snapshot.crypto_holdings)

    # Only fixed income counts as an investment for now
    total_investments = total_fixed_income

    net_worth = (
        total_bank_accounts + total_crypto + total_investments + total_physical_assets
    ) - (total_loans + total_credit_cards)

    total_liquidity = total_bank_accounts
    if options.include_crypto_in_liquidity:
        total_liquidity += total_crypto

    return Totals(
        total_cash=total_cash,
        total_bank_accounts=total_bank_accounts,
        total_loans=total_loans,
        total_credit_cards=total_credit_cards,
        total_fixed_income=total_fixed_income,
        fixed_income_by_currency=fixed_income_by_currency(snapshot),
        total_investments=total_investments,
        total_physical_assets=total_physical_assets,
        total_crypto=total_crypto,
        net_worth=net_worth,
        total_liquidity=total_liquidity,
    )
