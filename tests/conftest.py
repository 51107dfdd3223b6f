"""
Shared fixtures for PocketLedger tests.

Every test gets its own temporary data directory; nothing touches the
real working directory or the network.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from pocketledger.config import ExportSettings, LedgerSettings, StoreSettings
from pocketledger.models.state import (
    Account,
    AccountTransaction,
    AccountTransactionType,
    CashEntry,
    CashEntryType,
    Money,
    Snapshot,
)


T0 = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def store_settings(tmp_path) -> StoreSettings:
    return StoreSettings(data_dir=tmp_path / "data", write_retries=2)


@pytest.fixture
def ledger_settings() -> LedgerSettings:
    return LedgerSettings(
        page_size=20,
        include_crypto_in_liquidity=False,
        opening_balance_epsilon=Decimal("0"),
        synthesize_opening_in_all_view=False,
    )


@pytest.fixture
def export_settings(tmp_path) -> ExportSettings:
    return ExportSettings(export_dir=tmp_path / "exports", timezone="UTC")


@pytest.fixture
def salary_account() -> Account:
    """Balance 5000, one debit of 500 recorded."""
    return Account(
        id="acc-salary",
        nickname="Salary",
        bank_name="HDFC",
        account_number_masked="****1234",
        balance=Money(amount=Decimal("5000")),
        created_at=T0,
        last_synced=T0,
        transactions=[
            AccountTransaction(
                id="tx-1",
                occurred_at=datetime(2024, 2, 1, 9, 0, tzinfo=timezone.utc),
                amount=Money(amount=Decimal("-500")),
                description="Electricity",
                type=AccountTransactionType.WITHDRAWAL,
            ),
        ],
    )


@pytest.fixture
def savings_account() -> Account:
    """Balance 12000, no transactions."""
    return Account(
        id="acc-savings",
        nickname="Rainy Day",
        bank_name="SBI",
        account_number_masked="****9876",
        balance=Money(amount=Decimal("12000")),
        last_synced=T0,
    )


@pytest.fixture
def cash_snapshot() -> Snapshot:
    """Cash spread over two categories."""
    return Snapshot(
        cash_entries=[
            CashEntry(
                id="cash-1",
                description="ATM withdrawal",
                amount=Money(amount=Decimal("2000")),
                type=CashEntryType.ADD_CASH,
                cash_category="Wallet",
                timestamp=datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc),
            ),
            CashEntry(
                id="cash-2",
                description="Groceries",
                amount=Money(amount=Decimal("-350")),
                type=CashEntryType.RECORD_EXPENSE,
                cash_category="Wallet",
                expense_category="Food",
                timestamp=datetime(2024, 1, 3, 18, 0, tzinfo=timezone.utc),
            ),
            CashEntry(
                id="cash-3",
                description="Emergency stash",
                amount=Money(amount=Decimal("10000")),
                type=CashEntryType.ADD_CASH,
                cash_category="Home Safe",
                timestamp=datetime(2024, 1, 2, 12, 0, tzinfo=timezone.utc),
            ),
        ]
    )
