"""
Tests for the ledger view builder.

Most tests build a small snapshot by hand and check the derived rows;
the opening-balance rules get the closest attention.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from pocketledger.models.ledger import (
    AccountRecord,
    AssetType,
    FilterCriteria,
    FilterType,
)
from pocketledger.models.state import (
    EMI_PAYMENT,
    Account,
    AccountTransaction,
    AccountTransactionType,
    CardTransactionType,
    CashEntry,
    CreditCardEntry,
    CreditCardTransaction,
    LoanEntry,
    LoanPayment,
    LoanType,
    Money,
    Snapshot,
)
from pocketledger.queries import (
    balance_label,
    build_ledger,
    build_ledger_view,
    displayed_balance,
    paginate,
    synthesize_opening_balance,
)
from pocketledger.queries.ledger import EPOCH, OPENING_BALANCE_TICK


T0 = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


def _account_view(account_id: str) -> FilterCriteria:
    return FilterCriteria(
        asset_type=AssetType.ACCOUNT,
        filter_type=FilterType.CATEGORY,
        asset_id=account_id,
    )


def _total(records) -> Decimal:
    return sum((r.amount.amount for r in records), Decimal("0"))


def _wallet_entries(count: int) -> list[CashEntry]:
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [
        CashEntry(
            id=f"cash-{i:03d}",
            description=f"Entry {i}",
            amount=Money(amount=Decimal(i)),
            cash_category="Wallet",
            timestamp=start + timedelta(hours=i),
        )
        for i in range(count)
    ]


class TestOpeningBalance:
    """Synthetic opening-balance rows on single-account views."""

    def test_account_without_transactions_gets_one_opening_row(self):
        account = Account(
            id="acc-1",
            nickname="Salary",
            bank_name="HDFC",
            balance=Money(amount=Decimal("5000")),
            last_synced=T0,
        )
        records = build_ledger(Snapshot(accounts=[account]), _account_view("acc-1"))

        assert len(records) == 1
        assert records[0].description == "Opening Balance"
        assert records[0].amount.amount == Decimal("5000")
        assert records[0].type == "ACCT_OPENING_BAL"
        assert records[0].is_synthetic is True

    def test_opening_row_explains_missing_history(self, salary_account):
        records = build_ledger(Snapshot(accounts=[salary_account]), _account_view("acc-salary"))

        assert [r.id for r in records] == ["tx-1", "acc-salary-opening-balance"]
        opening = records[1]
        assert opening.amount.amount == Decimal("5500")
        assert _total(records) == salary_account.balance.amount

    def test_opening_row_dated_just_before_earliest_transaction(self, salary_account):
        records = build_ledger(Snapshot(accounts=[salary_account]), _account_view("acc-salary"))

        earliest = salary_account.transactions[0].occurred_at
        assert records[-1].occurred_at == earliest - OPENING_BALANCE_TICK
        assert records[-1].occurred_at == earliest - timedelta(milliseconds=1)

    def test_opening_row_without_transactions_uses_last_synced(self, savings_account):
        opening = synthesize_opening_balance(savings_account)
        assert opening.occurred_at == T0 - OPENING_BALANCE_TICK

    def test_opening_row_falls_back_to_epoch(self):
        account = Account(id="acc-1", balance=Money(amount=Decimal("10")))
        opening = synthesize_opening_balance(account)
        assert opening.occurred_at == EPOCH

    def test_no_opening_row_when_log_is_complete(self, salary_account):
        complete = salary_account.model_copy(update={"balance": Money(amount=Decimal("-500"))})
        records = build_ledger(Snapshot(accounts=[complete]), _account_view("acc-salary"))

        assert [r.id for r in records] == ["tx-1"]

    def test_explicit_opening_marker_suppresses_synthesis(self, salary_account):
        marker = AccountTransaction(
            id="tx-open",
            occurred_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            amount=Money(amount=Decimal("1000")),
            description="Opening Balance",
            type=AccountTransactionType.OPENING_BALANCE,
        )
        account = salary_account.model_copy(
            update={"transactions": [*salary_account.transactions, marker]}
        )

        records = build_ledger(Snapshot(accounts=[account]), _account_view("acc-salary"))

        assert not any(isinstance(r, AccountRecord) and r.is_synthetic for r in records)
        assert {r.id for r in records} == {"tx-1", "tx-open"}

    def test_legacy_marker_type_also_counts(self, salary_account):
        marker = AccountTransaction(
            id="tx-open",
            amount=Money(amount=Decimal("1")),
            type=AccountTransactionType.OPENING_BALANCE_LEGACY,
        )
        account = salary_account.model_copy(
            update={"transactions": [*salary_account.transactions, marker]}
        )
        assert synthesize_opening_balance(account) is None

    def test_epsilon_tolerates_rounding(self, salary_account):
        nearly = salary_account.model_copy(update={"balance": Money(amount=Decimal("-499.995"))})

        assert synthesize_opening_balance(nearly) is not None
        assert synthesize_opening_balance(nearly, epsilon=Decimal("0.01")) is None

    def test_every_account_reconciles(self, salary_account, savings_account):
        snapshot = Snapshot(accounts=[salary_account, savings_account])

        for account in snapshot.accounts:
            records = build_ledger(snapshot, _account_view(account.id))
            assert _total(records) == account.balance.amount

    def test_all_view_has_no_synthetic_rows_by_default(self, salary_account, savings_account):
        snapshot = Snapshot(accounts=[salary_account, savings_account])
        records = build_ledger(snapshot, FilterCriteria(asset_type=AssetType.ACCOUNT))

        assert [r.id for r in records] == ["tx-1"]

    def test_all_view_can_include_synthetic_rows(self, salary_account, savings_account):
        snapshot = Snapshot(accounts=[salary_account, savings_account])
        records = build_ledger(
            snapshot,
            FilterCriteria(asset_type=AssetType.ACCOUNT),
            synthesize_in_all_view=True,
        )

        assert len(records) == 3
        assert _total(records) == Decimal("17000")


class TestFiltering:
    """Category, date range and ordering."""

    def test_cash_category_view(self, cash_snapshot):
        criteria = FilterCriteria(
            asset_type=AssetType.CASH,
            filter_type=FilterType.CATEGORY,
            asset_label="Wallet",
        )
        records = build_ledger(cash_snapshot, criteria)

        assert [r.id for r in records] == ["cash-2", "cash-1"]
        assert all(r.asset_label == "Wallet" for r in records)

    def test_cash_categories_partition_the_all_view(self, cash_snapshot):
        everything = build_ledger(cash_snapshot, FilterCriteria(asset_type=AssetType.CASH))

        union = []
        for category in ("Wallet", "Home Safe"):
            union.extend(build_ledger(cash_snapshot, FilterCriteria(
                asset_type=AssetType.CASH,
                filter_type=FilterType.CATEGORY,
                asset_label=category,
            )))

        assert sorted(r.id for r in union) == sorted(r.id for r in everything)

    def test_account_views_partition_the_all_view(self, salary_account, savings_account):
        snapshot = Snapshot(accounts=[salary_account, savings_account])
        everything = build_ledger(
            snapshot,
            FilterCriteria(asset_type=AssetType.ACCOUNT),
            synthesize_in_all_view=True,
        )

        union = []
        for account in snapshot.accounts:
            union.extend(build_ledger(snapshot, _account_view(account.id)))

        assert sorted(r.id for r in union) == sorted(r.id for r in everything)

    def test_account_view_by_composite_label(self, salary_account, savings_account):
        snapshot = Snapshot(accounts=[salary_account, savings_account])
        criteria = FilterCriteria(
            asset_type=AssetType.ACCOUNT,
            filter_type=FilterType.CATEGORY,
            asset_label=salary_account.composite_label,
        )

        records = build_ledger(snapshot, criteria)

        assert {r.asset_id for r in records} == {"acc-salary"}

    def test_account_without_nickname_found_by_its_label(self):
        account = Account(
            id="acc-plain",
            bank_name="HDFC",
            account_number_masked="****1234",
            balance=Money(amount=Decimal("5000")),
            created_at=T0,
        )
        criteria = FilterCriteria(
            asset_type=AssetType.ACCOUNT,
            filter_type=FilterType.CATEGORY,
            asset_label=account.composite_label,
        )

        records = build_ledger(Snapshot(accounts=[account]), criteria)

        assert criteria.asset_label == account.composite_label
        assert len(records) == 1
        assert records[0].is_synthetic
        assert records[0].amount.amount == Decimal("5000")

    def test_asset_id_takes_precedence_over_label(self, salary_account, savings_account):
        snapshot = Snapshot(accounts=[salary_account, savings_account])
        criteria = FilterCriteria(
            asset_type=AssetType.ACCOUNT,
            filter_type=FilterType.CATEGORY,
            asset_id="acc-savings",
            asset_label=salary_account.composite_label,
        )

        records = build_ledger(snapshot, criteria)

        assert {r.asset_id for r in records} == {"acc-savings"}

    def test_date_range_is_inclusive(self, cash_snapshot):
        criteria = FilterCriteria(
            asset_type=AssetType.CASH,
            start_date=datetime(2024, 1, 2, 12, 0, tzinfo=timezone.utc),
            end_date=datetime(2024, 1, 3, 18, 0, tzinfo=timezone.utc),
        )
        records = build_ledger(cash_snapshot, criteria)

        assert [r.id for r in records] == ["cash-2", "cash-3"]

    def test_newest_first(self, cash_snapshot):
        records = build_ledger(cash_snapshot, FilterCriteria(asset_type=AssetType.CASH))
        stamps = [r.occurred_at for r in records]
        assert stamps == sorted(stamps, reverse=True)

    def test_unsupported_asset_types_are_empty(self, cash_snapshot):
        assert build_ledger(cash_snapshot, FilterCriteria(asset_type=AssetType.INVESTMENT)) == []
        assert build_ledger(cash_snapshot, FilterCriteria(asset_type=AssetType.CRYPTO)) == []

    def test_snapshot_is_not_modified(self, salary_account):
        snapshot = Snapshot(accounts=[salary_account])
        before = snapshot.model_dump()

        build_ledger_view(snapshot, _account_view("acc-salary"))

        assert snapshot.model_dump() == before
        assert len(snapshot.accounts[0].transactions) == 1


class TestProjections:
    """Per-asset projections into the unified record."""

    def test_card_amounts_are_signed(self):
        card = CreditCardEntry(id="card-1", bank="ICICI", card_name="Amazon Pay", card_number="4111111111115678")
        snapshot = Snapshot(
            credit_card_entries=[card],
            credit_card_transactions=[
                CreditCardTransaction(
                    id="ct-1",
                    card_id="card-1",
                    amount=Money(amount=Decimal("1200")),
                    type=CardTransactionType.CHARGE,
                    timestamp=datetime(2024, 2, 1, tzinfo=timezone.utc),
                ),
                CreditCardTransaction(
                    id="ct-2",
                    card_id="card-1",
                    amount=Money(amount=Decimal("1000")),
                    type=CardTransactionType.PAYMENT,
                    timestamp=datetime(2024, 2, 5, tzinfo=timezone.utc),
                ),
            ],
        )

        records = build_ledger(snapshot, FilterCriteria(asset_type=AssetType.CREDIT_CARD))

        amounts = {r.id: r.amount.amount for r in records}
        assert amounts == {"ct-1": Decimal("1200"), "ct-2": Decimal("-1000")}
        assert records[0].asset_label == "Amazon Pay ****5678"
        assert records[0].card_ending == "5678"

    def test_loan_payments_are_negative(self):
        loan = LoanEntry(
            id="loan-1",
            type=LoanType.HOME,
            bank="SBI",
            linked_transactions=[
                LoanPayment(
                    id="pay-1",
                    type=EMI_PAYMENT,
                    amount=Money(amount=Decimal("25000")),
                    due_date=datetime(2024, 3, 5, tzinfo=timezone.utc),
                    paid_on=datetime(2024, 3, 4, tzinfo=timezone.utc),
                    remaining_balance=Decimal("975000"),
                ),
                LoanPayment(
                    id="prepay-1",
                    type="PREPAYMENT",
                    amount=Money(amount=Decimal("5000")),
                ),
            ],
        )

        records = build_ledger(Snapshot(loan_entries=[loan]), FilterCriteria(asset_type=AssetType.LOAN))

        assert len(records) == 1
        assert records[0].amount.amount == Decimal("-25000")
        assert records[0].description == "EMI Payment - Mar 2024"
        assert records[0].asset_label == "SBI • HOME"
        assert records[0].remaining_balance == Decimal("975000")


class TestPagination:
    """Prefix pagination over the sorted ledger."""

    def test_first_page(self):
        records = build_ledger(Snapshot(cash_entries=_wallet_entries(45)), FilterCriteria(asset_type=AssetType.CASH))

        shown, has_more = paginate(records, page=1, page_size=20)

        assert len(shown) == 20
        assert has_more is True

    def test_last_page_shows_everything(self):
        records = build_ledger(Snapshot(cash_entries=_wallet_entries(45)), FilterCriteria(asset_type=AssetType.CASH))

        shown, has_more = paginate(records, page=3, page_size=20)

        assert len(shown) == 45
        assert has_more is False

    def test_pages_are_prefixes(self):
        records = build_ledger(Snapshot(cash_entries=_wallet_entries(45)), FilterCriteria(asset_type=AssetType.CASH))

        page_one, _ = paginate(records, page=1)
        page_two, _ = paginate(records, page=2)

        assert page_two[: len(page_one)] == page_one

    @pytest.mark.parametrize("page, page_size", [(0, 20), (1, 0)])
    def test_rejects_non_positive_values(self, page, page_size):
        with pytest.raises(ValueError):
            paginate([], page=page, page_size=page_size)


class TestLedgerView:
    """The materialized view with its balance figure."""

    def test_view_carries_counts(self):
        snapshot = Snapshot(cash_entries=_wallet_entries(45))
        view = build_ledger_view(snapshot, FilterCriteria(asset_type=AssetType.CASH), page=1, page_size=20)

        assert view.total_count == 45
        assert len(view.records) == 20
        assert view.has_more is True

    def test_displayed_balance_covers_all_pages(self):
        snapshot = Snapshot(cash_entries=_wallet_entries(45))
        view = build_ledger_view(snapshot, FilterCriteria(asset_type=AssetType.CASH), page=1, page_size=20)

        # 0 + 1 + ... + 44
        assert view.displayed_balance == Decimal("990")

    def test_account_view_shows_stored_balance(self, salary_account):
        snapshot = Snapshot(accounts=[salary_account])
        criteria = _account_view("acc-salary")

        records = build_ledger(snapshot, criteria)

        assert displayed_balance(snapshot, criteria, records) == Decimal("5000")

    def test_balance_labels(self):
        assert balance_label(AssetType.CASH, FilterType.ALL) == "Total Liquid Cash"
        assert balance_label(AssetType.ACCOUNT, FilterType.CATEGORY) == "Account Balance"
        assert balance_label(AssetType.CREDIT_CARD, FilterType.ALL) == "Total Credit Card Balances"
