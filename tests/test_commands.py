"""
Tests for the pure command handlers.

Every handler takes a snapshot and returns a new one; the input is never
modified, even when the command is rejected.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from pocketledger.commands import (
    CommandError,
    NotFoundError,
    apply_command,
    build_schedule,
    mask_account_number,
    minimum_payment_for,
)
from pocketledger.models.commands import (
    AddAccount,
    AddCash,
    AddCreditCard,
    AddFixedIncome,
    AddLoan,
    CloseAccount,
    Command,
    CorrectAccountBalance,
    DeleteCashCategory,
    DeleteCashEntry,
    DepositCashToBank,
    MoveCash,
    PayLoanEmi,
    RecordAccountTransaction,
    RecordCardCharge,
    RecordCardPayment,
    RecordCashExpense,
)
from pocketledger.models.state import (
    AccountStatus,
    AccountTransactionType,
    CardTransactionType,
    CashEntryType,
    FixedIncomeTransactionType,
    LoanType,
    Money,
    ScheduleStatus,
    Snapshot,
)
from pocketledger.queries import compute_totals


NOW = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def snapshot_with_account() -> Snapshot:
    return apply_command(Snapshot(), AddAccount(
        account_id="acc-1",
        nickname="Salary",
        bank_name="HDFC",
        account_number_masked="50100012341234",
        balance=Decimal("50000"),
        timestamp=NOW,
    ))


@pytest.fixture
def snapshot_with_card(snapshot_with_account) -> Snapshot:
    return apply_command(snapshot_with_account, AddCreditCard(
        card_id="card-1",
        bank="ICICI",
        card_name="Amazon Pay",
        card_number="4111 1111 1111 5678",
        credit_limit=Decimal("200000"),
        current_balance=Decimal("125000"),
        timestamp=NOW,
    ))


@pytest.fixture
def snapshot_with_loan(snapshot_with_account) -> Snapshot:
    return apply_command(snapshot_with_account, AddLoan(
        loan_id="loan-1",
        type=LoanType.HOME,
        bank="SBI",
        principal_amount=Decimal("1000000"),
        interest_rate=8.5,
        tenure_months=60,
        emi_amount=Decimal("20000"),
        start_date=datetime(2024, 1, 5, tzinfo=timezone.utc),
        monthly_due_day=5,
        timestamp=NOW,
    ))


class TestCashCommands:
    """Tests for cash handlers."""

    def test_add_cash(self):
        state = apply_command(Snapshot(), AddCash(
            entry_id="c1",
            description="ATM",
            amount=Decimal("2000"),
            cash_category="Wallet",
            timestamp=NOW,
        ))

        entry = state.cash_entries[0]
        assert entry.amount.amount == Decimal("2000")
        assert entry.type == CashEntryType.ADD_CASH
        assert entry.timestamp == NOW

    def test_expense_is_stored_negative(self):
        state = apply_command(Snapshot(), RecordCashExpense(
            description="Chai",
            amount=Decimal("30"),
            cash_category="Wallet",
            expense_category="Food",
        ))

        entry = state.cash_entries[0]
        assert entry.amount.amount == Decimal("-30")
        assert entry.expense_category == "Food"

    def test_move_cash_writes_two_cancelling_rows(self, cash_snapshot):
        state = apply_command(cash_snapshot, MoveCash(
            amount=Decimal("500"),
            from_category="Home Safe",
            to_category="Wallet",
        ))

        out_row, in_row = state.cash_entries[-2:]
        assert out_row.cash_category == "Home Safe"
        assert out_row.amount.amount == Decimal("-500")
        assert out_row.description == "Moved to Wallet"
        assert in_row.cash_category == "Wallet"
        assert in_row.amount.amount == Decimal("500")
        assert compute_totals(state).total_cash == compute_totals(cash_snapshot).total_cash

    def test_delete_entry(self, cash_snapshot):
        state = apply_command(cash_snapshot, DeleteCashEntry(entry_id="cash-2"))
        assert [e.id for e in state.cash_entries] == ["cash-1", "cash-3"]

    def test_delete_unknown_entry(self, cash_snapshot):
        with pytest.raises(NotFoundError):
            apply_command(cash_snapshot, DeleteCashEntry(entry_id="nope"))

    def test_delete_category(self, cash_snapshot):
        state = apply_command(cash_snapshot, DeleteCashCategory(cash_category="Wallet"))
        assert [e.id for e in state.cash_entries] == ["cash-3"]

    def test_delete_unknown_category(self, cash_snapshot):
        with pytest.raises(NotFoundError, match="Cash category not found"):
            apply_command(cash_snapshot, DeleteCashCategory(cash_category="Piggy Bank"))

    def test_deposit_to_bank_touches_both_collections(self, snapshot_with_account):
        state = apply_command(snapshot_with_account, DepositCashToBank(
            account_id="acc-1",
            amount=Decimal("1500"),
            cash_category="Wallet",
            timestamp=NOW,
        ))

        cash_row = state.cash_entries[0]
        assert cash_row.type == CashEntryType.DEPOSIT_TO_BANK
        assert cash_row.amount.amount == Decimal("-1500")

        account = state.find_account("acc-1")
        assert account.balance.amount == Decimal("51500")
        assert account.transactions[-1].type == AccountTransactionType.DEPOSIT
        assert account.transactions[-1].balance == Decimal("51500")


class TestAccountCommands:
    """Tests for bank account handlers."""

    def test_add_account_masks_number(self, snapshot_with_account):
        account = snapshot_with_account.find_account("acc-1")

        assert account.account_number_masked == "****1234"
        assert account.transactions == []
        assert account.created_at == NOW
        assert account.status == AccountStatus.ACTIVE

    @pytest.mark.parametrize("raw, masked", [
        ("1234 5678 9012", "****9012"),
        ("****4321", "****4321"),
        ("12", "****XXXX"),
        ("", "****XXXX"),
    ])
    def test_mask_account_number(self, raw, masked):
        assert mask_account_number(raw) == masked

    def test_duplicate_account_rejected(self, snapshot_with_account):
        with pytest.raises(CommandError, match="already exists"):
            apply_command(snapshot_with_account, AddAccount(
                account_id="acc-1",
                nickname="Again",
                bank_name="HDFC",
                balance=Decimal("0"),
            ))

    def test_record_transaction_updates_balance(self, snapshot_with_account):
        state = apply_command(snapshot_with_account, RecordAccountTransaction(
            transaction_id="tx-1",
            account_id="acc-1",
            amount=Decimal("-1200"),
            description="Electricity",
            type=AccountTransactionType.WITHDRAWAL,
        ))

        account = state.find_account("acc-1")
        assert account.balance.amount == Decimal("48800")
        assert account.transactions[0].balance == Decimal("48800")

    def test_currency_mismatch_rejected(self, snapshot_with_account):
        with pytest.raises(CommandError, match="Currency mismatch"):
            apply_command(snapshot_with_account, RecordAccountTransaction(
                account_id="acc-1",
                amount=Decimal("10"),
                currency="USD",
                description="Refund",
            ))

    def test_unknown_account(self):
        with pytest.raises(NotFoundError, match="Account not found"):
            apply_command(Snapshot(), RecordAccountTransaction(
                account_id="ghost",
                amount=Decimal("10"),
                description="x",
            ))

    def test_correct_balance_leaves_log_alone(self, snapshot_with_account):
        state = apply_command(snapshot_with_account, CorrectAccountBalance(
            account_id="acc-1",
            balance=Decimal("61000"),
        ))

        account = state.find_account("acc-1")
        assert account.balance.amount == Decimal("61000")
        assert account.transactions == []

    def test_closed_account_rejects_transactions(self, snapshot_with_account):
        closed = apply_command(snapshot_with_account, CloseAccount(account_id="acc-1"))

        assert closed.find_account("acc-1").status == AccountStatus.CLOSED
        with pytest.raises(CommandError, match="closed"):
            apply_command(closed, RecordAccountTransaction(
                account_id="acc-1",
                amount=Decimal("10"),
                description="Late credit",
            ))

    def test_rejected_command_leaves_input_untouched(self, snapshot_with_account):
        before = snapshot_with_account.model_dump()

        with pytest.raises(CommandError):
            apply_command(snapshot_with_account, RecordAccountTransaction(
                account_id="acc-1",
                amount=Decimal("10"),
                currency="EUR",
                description="x",
            ))

        assert snapshot_with_account.model_dump() == before

    def test_applied_command_leaves_input_untouched(self, snapshot_with_account):
        before = snapshot_with_account.model_dump()

        apply_command(snapshot_with_account, RecordAccountTransaction(
            account_id="acc-1",
            amount=Decimal("10"),
            description="Interest",
        ))

        assert snapshot_with_account.model_dump() == before


class TestCreditCardCommands:
    """Tests for credit card handlers."""

    def test_add_card_derives_fields(self, snapshot_with_card):
        card = snapshot_with_card.find_credit_card("card-1")

        assert card.available_credit.amount == Decimal("75000")
        assert card.minimum_payment.amount == Decimal("6250")

    @pytest.mark.parametrize("balance, expected", [
        ("0", "0"),
        ("-300", "0"),
        ("1010", "51"),
        ("1030", "52"),
        ("999", "50"),
    ])
    def test_minimum_payment_rounding(self, balance, expected):
        assert minimum_payment_for(Decimal(balance)) == Decimal(expected)

    def test_charge_raises_balance(self, snapshot_with_card):
        state = apply_command(snapshot_with_card, RecordCardCharge(
            card_id="card-1",
            amount=Decimal("5000"),
            description="Flight",
            merchant_name="IndiGo",
        ))

        card = state.find_credit_card("card-1")
        assert card.current_balance.amount == Decimal("130000")
        assert card.available_credit.amount == Decimal("70000")
        assert card.minimum_payment.amount == Decimal("6500")
        assert state.credit_card_transactions[0].type == CardTransactionType.CHARGE

    def test_charge_on_unknown_card(self, snapshot_with_account):
        with pytest.raises(NotFoundError, match="Credit card not found"):
            apply_command(snapshot_with_account, RecordCardCharge(
                card_id="card-9",
                amount=Decimal("1"),
                description="x",
            ))

    def test_payment_from_account_is_one_transition(self, snapshot_with_card):
        state = apply_command(snapshot_with_card, RecordCardPayment(
            transaction_id="pay-1",
            withdrawal_id="wd-1",
            card_id="card-1",
            amount=Decimal("25000"),
            source_account_id="acc-1",
            timestamp=NOW,
        ))

        card = state.find_credit_card("card-1")
        assert card.current_balance.amount == Decimal("100000")
        assert state.credit_card_transactions[-1].type == CardTransactionType.PAYMENT

        account = state.find_account("acc-1")
        withdrawal = account.transactions[-1]
        assert withdrawal.id == "wd-1"
        assert withdrawal.amount.amount == Decimal("-25000")
        assert withdrawal.description == "Credit Card Payment - Amazon Pay ****5678"
        assert account.balance.amount == Decimal("25000")

    def test_payment_without_account(self, snapshot_with_card):
        state = apply_command(snapshot_with_card, RecordCardPayment(
            card_id="card-1",
            amount=Decimal("1000"),
        ))

        assert state.find_account("acc-1").transactions == []
        assert state.find_credit_card("card-1").current_balance.amount == Decimal("124000")

    def test_payment_from_closed_account_changes_nothing(self, snapshot_with_card):
        closed = apply_command(snapshot_with_card, CloseAccount(account_id="acc-1"))

        with pytest.raises(CommandError):
            apply_command(closed, RecordCardPayment(
                card_id="card-1",
                amount=Decimal("1000"),
                source_account_id="acc-1",
            ))

        assert closed.find_credit_card("card-1").current_balance.amount == Decimal("125000")


class TestLoanCommands:
    """Tests for loan handlers."""

    def test_schedule_with_existing_payments(self):
        schedule = build_schedule(
            loan_id="loan-1",
            start_date=datetime(2024, 1, 5, tzinfo=timezone.utc),
            tenure_months=60,
            emi=Money(amount=Decimal("20000")),
            due_day=5,
            emis_paid=5,
        )

        assert len(schedule) == 60
        assert [i.status for i in schedule[:6]] == [ScheduleStatus.PAID] * 5 + [ScheduleStatus.DUE]
        assert schedule[0].id == "loan-1-202402"
        assert schedule[0].notes == "Pre-existing payment"

    def test_due_day_is_clamped_to_month_length(self):
        schedule = build_schedule(
            loan_id="loan-1",
            start_date=datetime(2024, 1, 31, tzinfo=timezone.utc),
            tenure_months=3,
            emi=Money(amount=Decimal("1")),
            due_day=31,
        )

        assert [i.due_date.day for i in schedule] == [29, 31, 30]

    def test_past_unpaid_items_are_overdue(self):
        schedule = build_schedule(
            loan_id="loan-1",
            start_date=datetime(2024, 1, 5, tzinfo=timezone.utc),
            tenure_months=3,
            emi=Money(amount=Decimal("1")),
            due_day=5,
            as_of=datetime(2024, 3, 10, tzinfo=timezone.utc),
        )

        assert [i.status for i in schedule] == [
            ScheduleStatus.OVERDUE,
            ScheduleStatus.OVERDUE,
            ScheduleStatus.DUE,
        ]

    def test_add_loan_with_paid_emis(self, snapshot_with_account):
        state = apply_command(snapshot_with_account, AddLoan(
            loan_id="loan-1",
            bank="SBI",
            principal_amount=Decimal("1000000"),
            interest_rate=8.5,
            tenure_months=60,
            emi_amount=Decimal("20000"),
            start_date=datetime(2024, 1, 5, tzinfo=timezone.utc),
            emis_paid=5,
            monthly_due_day=5,
            timestamp=datetime(2024, 6, 1, tzinfo=timezone.utc),
        ))

        loan = state.find_loan("loan-1")
        assert loan.current_balance.amount == Decimal("900000")
        assert len(loan.schedule) == 60
        assert loan.next_payment_date == datetime(2024, 7, 5, tzinfo=timezone.utc)
        assert loan.end_date == datetime(2029, 1, 5, tzinfo=timezone.utc)

    def test_pay_emi(self, snapshot_with_loan):
        state = apply_command(snapshot_with_loan, PayLoanEmi(
            payment_id="emi-1",
            withdrawal_id="wd-1",
            loan_id="loan-1",
            source_account_id="acc-1",
            due_date=datetime(2024, 2, 5, tzinfo=timezone.utc),
            timestamp=datetime(2024, 2, 4, tzinfo=timezone.utc),
        ))

        loan = state.find_loan("loan-1")
        assert loan.current_balance.amount == Decimal("980000")
        assert loan.linked_transactions[0].remaining_balance == Decimal("980000")
        assert loan.schedule[0].status == ScheduleStatus.PAID
        assert loan.next_payment_date == datetime(2024, 3, 5, tzinfo=timezone.utc)

        account = state.find_account("acc-1")
        assert account.balance.amount == Decimal("30000")
        assert account.transactions[-1].description == "EMI Payment - SBI HOME"
        assert account.transactions[-1].notes == "EMI for Feb 2024"

    def test_second_emi_in_same_month_rejected(self, snapshot_with_loan):
        pay = PayLoanEmi(
            loan_id="loan-1",
            source_account_id="acc-1",
            due_date=datetime(2024, 2, 5, tzinfo=timezone.utc),
        )
        once = apply_command(snapshot_with_loan, pay)

        with pytest.raises(CommandError, match="already paid"):
            apply_command(once, pay.model_copy(update={"payment_id": "emi-2"}))

    def test_unknown_loan(self, snapshot_with_account):
        with pytest.raises(NotFoundError, match="Loan not found"):
            apply_command(snapshot_with_account, PayLoanEmi(
                loan_id="loan-9",
                source_account_id="acc-1",
                due_date=NOW,
            ))


class TestFixedIncomeCommands:
    """Tests for fixed income handlers."""

    def test_add_fixed_income_records_deposit(self):
        state = apply_command(Snapshot(), AddFixedIncome(
            entry_id="fd-1",
            bank_or_issuer="HDFC",
            principal_amount=Decimal("100000"),
            interest_rate=7.1,
        ))

        entry = state.fixed_income_entries[0]
        assert entry.current_value.amount == Decimal("100000")
        assert entry.instrument_name == "HDFC FD"

        deposit = state.fixed_income_transactions[0]
        assert deposit.id == "fd-1-deposit"
        assert deposit.type == FixedIncomeTransactionType.DEPOSIT
        assert deposit.instrument_id == "fd-1"
        assert compute_totals(state).total_investments == Decimal("100000")


class TestDispatch:
    """Tests for apply_command."""

    def test_unregistered_command(self):
        class ArchiveEverything(Command):
            pass

        with pytest.raises(CommandError, match="No handler registered for ArchiveEverything"):
            apply_command(Snapshot(), ArchiveEverything())
