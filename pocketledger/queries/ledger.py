"""
Ledger View Builder

DESIGN DECISION: The ledger is DERIVED, never stored.
Each asset type's native rows are projected into one record shape,
filtered, sorted newest first and paged, all in memory from a single
snapshot. Nothing here performs I/O or mutates the snapshot.

OPENING BALANCES:
An account's stored balance is authoritative, but its transaction log
may be incomplete (migrated accounts, manual corrections). When an
account is viewed on its own and nothing in its log is marked as an
opening balance, a synthetic "Opening Balance" row covering the
difference is added just before the earliest real transaction. The
account's rows then always add up to its balance.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Optional, Sequence

from pocketledger.models.ledger import (
    OPENING_BALANCE_DESCRIPTION,
    OPENING_BALANCE_TYPE,
    AccountRecord,
    AssetType,
    CashRecord,
    CreditCardRecord,
    FilterCriteria,
    FilterType,
    LedgerView,
    LoanRecord,
    TransactionRecord,
)
from pocketledger.models.state import (
    EMI_PAYMENT,
    Account,
    CardTransactionType,
    CreditCardEntry,
    Snapshot,
)


OPENING_BALANCE_TICK = timedelta(milliseconds=1)
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
DEFAULT_PAGE_SIZE = 20

# Card transactions that raise the outstanding balance
_CARD_DEBITS = frozenset({CardTransactionType.CHARGE, CardTransactionType.FEE})


# =============================================================================
# PROJECTION
# =============================================================================

def project_cash(snapshot: Snapshot) -> list[CashRecord]:
    """One record per cash row, grouped by cash category."""
    return [
        CashRecord(
            id=entry.id,
            occurred_at=entry.timestamp,
            amount=entry.amount,
            description=entry.description,
            notes=entry.notes,
            type=entry.type.value,
            asset_id=entry.cash_category,
            asset_label=entry.cash_category,
            cash_category=entry.cash_category,
            expense_category=entry.expense_category,
        )
        for entry in snapshot.cash_entries
    ]


def project_account(account: Account) -> list[AccountRecord]:
    label = account.composite_label
    return [
        AccountRecord(
            id=tx.id,
            occurred_at=tx.occurred_at,
            amount=tx.amount,
            description=tx.description,
            notes=tx.notes,
            type=tx.type.value,
            asset_id=account.id,
            asset_label=label,
            bank_name=account.bank_name,
            account_type=account.account_type,
            account_number_masked=account.account_number_masked,
            balance_after=tx.balance,
            reference_number=tx.transaction_id,
        )
        for tx in account.transactions
    ]


def project_accounts(snapshot: Snapshot) -> list[AccountRecord]:
    """Every account's embedded transactions, flattened."""
    records: list[AccountRecord] = []
    for account in snapshot.accounts:
        records.extend(project_account(account))
    return records


def project_loans(snapshot: Snapshot) -> list[LoanRecord]:
    """
    EMI payments of every loan.

    Amounts are signed by their effect on the outstanding balance,
    so payments are negative.
    """
    records: list[LoanRecord] = []
    for loan in snapshot.loan_entries:
        label = loan.label
        for payment in loan.linked_transactions:
            if payment.type != EMI_PAYMENT:
                continue
            if payment.due_date is not None:
                description = f"EMI Payment - {payment.due_date:%b %Y}"
            else:
                description = "EMI Payment"
            records.append(LoanRecord(
                id=payment.id,
                occurred_at=payment.paid_on,
                amount=payment.amount.with_amount(-payment.amount.amount),
                description=description,
                notes=payment.notes,
                type=payment.type,
                asset_id=loan.id,
                asset_label=label,
                remaining_balance=payment.remaining_balance,
            ))
    return records


def project_credit_cards(snapshot: Snapshot) -> list[CreditCardRecord]:
    """
    Card transactions signed by their effect on the card balance.

    Charges and fees are positive, payments and credits negative.
    """
    cards: dict[str, CreditCardEntry] = {c.id: c for c in snapshot.credit_card_entries}
    records: list[CreditCardRecord] = []
    for tx in snapshot.credit_card_transactions:
        card = cards.get(tx.card_id)
        sign = Decimal("1") if tx.type in _CARD_DEBITS else Decimal("-1")
        records.append(CreditCardRecord(
            id=tx.id,
            occurred_at=tx.timestamp,
            amount=tx.amount.with_amount(sign * abs(tx.amount.amount)),
            description=tx.description,
            notes=tx.notes,
            type=tx.type.value,
            asset_id=tx.card_id,
            asset_label=card.label if card else tx.card_id,
            card_ending=card.card_ending if card else "",
            merchant=tx.merchant_name,
            merchant_category=tx.category or None,
        ))
    return records


_PROJECTIONS: dict[AssetType, Callable[[Snapshot], Sequence[TransactionRecord]]] = {
    AssetType.CASH: project_cash,
    AssetType.ACCOUNT: project_accounts,
    AssetType.LOAN: project_loans,
    AssetType.CREDIT_CARD: project_credit_cards,
}


# =============================================================================
# OPENING BALANCE
# =============================================================================

def opening_balance_amount(account: Account) -> Decimal:
    """Part of the stored balance not explained by recorded transactions."""
    recorded = sum((tx.amount.amount for tx in account.transactions), Decimal("0"))
    return account.balance.amount - recorded


def has_opening_marker(account: Account) -> bool:
    return any(tx.is_opening_marker for tx in account.transactions)


def _opening_anchor(account: Account) -> Optional[datetime]:
    if account.transactions:
        return min(tx.occurred_at for tx in account.transactions)
    return account.last_synced or account.created_at


def synthesize_opening_balance(
    account: Account,
    epsilon: Decimal = Decimal("0"),
) -> Optional[AccountRecord]:
    """
    Build the synthetic opening-balance row for one account.

    Returns None when the log already carries an opening marker, or when
    the unexplained amount is within `epsilon` of zero.
    """
    if has_opening_marker(account):
        return None

    amount = opening_balance_amount(account)
    if abs(amount) <= epsilon:
        return None

    anchor = _opening_anchor(account)
    occurred_at = anchor - OPENING_BALANCE_TICK if anchor is not None else EPOCH

    return AccountRecord(
        id=f"{account.id}-opening-balance",
        occurred_at=occurred_at,
        amount=account.balance.with_amount(amount),
        description=OPENING_BALANCE_DESCRIPTION,
        type=OPENING_BALANCE_TYPE,
        asset_id=account.id,
        asset_label=account.composite_label,
        bank_name=account.bank_name,
        account_type=account.account_type,
        account_number_masked=account.account_number_masked,
        is_synthetic=True,
    )


# =============================================================================
# FILTERING
# =============================================================================

def matches_category(asset_id: str, asset_label: str, criteria: FilterCriteria) -> bool:
    """
    Category key match.

    An explicit `asset_id` wins; otherwise the display label is the key
    (cash category name, account composite label, loan or card label).
    """
    if criteria.asset_id:
        return asset_id == criteria.asset_id
    return asset_label == criteria.asset_label


def _in_range(record: TransactionRecord, criteria: FilterCriteria) -> bool:
    if criteria.start_date and record.occurred_at < criteria.start_date:
        return False
    if criteria.end_date and record.occurred_at > criteria.end_date:
        return False
    return True


def sort_newest_first(records: list[TransactionRecord]) -> list[TransactionRecord]:
    """Newest first. Ties are broken by id so the order is total."""
    return sorted(records, key=lambda r: (r.occurred_at, r.id), reverse=True)


def _accounts_in_view(snapshot: Snapshot, criteria: FilterCriteria) -> list[Account]:
    if criteria.filter_type == FilterType.ALL:
        return list(snapshot.accounts)
    return [
        a for a in snapshot.accounts
        if matches_category(a.id, a.composite_label, criteria)
    ]


def build_ledger(
    snapshot: Snapshot,
    criteria: FilterCriteria,
    epsilon: Decimal = Decimal("0"),
    synthesize_in_all_view: bool = False,
) -> list[TransactionRecord]:
    """
    The full filtered ledger for one asset type, newest first.

    Opening-balance rows are added to account category views, and to the
    all-accounts view when `synthesize_in_all_view` is set. Asset types
    without a transaction source yield an empty ledger.
    """
    projection = _PROJECTIONS.get(criteria.asset_type)
    if projection is None:
        return []

    records: list[TransactionRecord] = list(projection(snapshot))

    if criteria.asset_type == AssetType.ACCOUNT and (
        criteria.filter_type == FilterType.CATEGORY or synthesize_in_all_view
    ):
        for account in _accounts_in_view(snapshot, criteria):
            opening = synthesize_opening_balance(account, epsilon)
            if opening is not None:
                records.append(opening)

    if criteria.filter_type == FilterType.CATEGORY:
        records = [
            r for r in records
            if matches_category(r.asset_id, r.asset_label, criteria)
        ]

    if criteria.start_date or criteria.end_date:
        records = [r for r in records if _in_range(r, criteria)]

    return sort_newest_first(records)


# =============================================================================
# PAGINATION AND BALANCE
# =============================================================================

def paginate(
    records: Sequence[TransactionRecord],
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> tuple[list[TransactionRecord], bool]:
    """
    First `page` pages of an already sorted ledger.

    Returns the shown records and whether more remain.
    """
    if page < 1:
        raise ValueError("page must be >= 1")
    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    shown = list(records[: page * page_size])
    return shown, len(shown) < len(records)


def displayed_balance(
    snapshot: Snapshot,
    criteria: FilterCriteria,
    records: Sequence[TransactionRecord],
) -> Decimal:
    """
    Balance figure shown above a ledger view.

    A single-account view shows the account's stored balance. Every other
    view shows the sum of all filtered records, not only the shown page.
    """
    if criteria.asset_type == AssetType.ACCOUNT and criteria.filter_type == FilterType.CATEGORY:
        accounts = _accounts_in_view(snapshot, criteria)
        if accounts:
            return sum((a.balance.amount for a in accounts), Decimal("0"))
    return sum((r.amount.amount for r in records), Decimal("0"))


_ALL_LABELS = {
    AssetType.CASH: "Total Liquid Cash",
    AssetType.ACCOUNT: "Total Bank Accounts",
    AssetType.LOAN: "Total Outstanding Loans",
    AssetType.CREDIT_CARD: "Total Credit Card Balances",
    AssetType.INVESTMENT: "Total Investments",
    AssetType.CRYPTO: "Total Crypto Holdings",
}

_CATEGORY_LABELS = {
    AssetType.CASH: "Category Total",
    AssetType.ACCOUNT: "Account Balance",
    AssetType.LOAN: "Outstanding Balance",
    AssetType.CREDIT_CARD: "Card Balance",
    AssetType.INVESTMENT: "Investment Value",
    AssetType.CRYPTO: "Holding Value",
}


def balance_label(asset_type: AssetType, filter_type: FilterType) -> str:
    if filter_type == FilterType.ALL:
        return _ALL_LABELS.get(asset_type, "Total Balance")
    return _CATEGORY_LABELS.get(asset_type, "Balance")


def build_ledger_view(
    snapshot: Snapshot,
    criteria: FilterCriteria,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    epsilon: Decimal = Decimal("0"),
    synthesize_in_all_view: bool = False,
) -> LedgerView:
    """Build the ledger, then materialize the first `page` pages of it."""
    records = build_ledger(
        snapshot,
        criteria,
        epsilon=epsilon,
        synthesize_in_all_view=synthesize_in_all_view,
    )
    shown, has_more = paginate(records, page, page_size)
    return LedgerView(
        criteria=criteria,
        records=shown,
        total_count=len(records),
        page=page,
        page_size=page_size,
        has_more=has_more,
        displayed_balance=displayed_balance(snapshot, criteria, records),
        balance_label=balance_label(criteria.asset_type, criteria.filter_type),
    )
