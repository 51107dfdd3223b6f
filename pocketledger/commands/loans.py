"""
Loan commands.

A loan carries its full EMI schedule. Paying an EMI touches the loan,
its schedule, its linked payments and the paying bank account, all in
one transition.
"""

import calendar
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pocketledger.commands.common import (
    CommandError,
    NotFoundError,
    check_currency,
    require_account,
    working_copy,
)
from pocketledger.models.commands import AddLoan, PayLoanEmi
from pocketledger.models.state import (
    EMI_PAYMENT,
    AccountTransaction,
    AccountTransactionType,
    LoanEntry,
    LoanPayment,
    LoanScheduleItem,
    Money,
    ScheduleStatus,
    Snapshot,
)


def add_months(start: datetime, months: int, day: int) -> datetime:
    """Same time of day, `months` later, on `day` clamped to the month's length."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return start.replace(year=year, month=month, day=min(day, last_day))


def same_month(a: datetime, b: datetime) -> bool:
    return a.year == b.year and a.month == b.month


def outstanding_after(principal: Decimal, emi: Decimal, emis_paid: int) -> Decimal:
    """Simple outstanding balance: principal less the EMIs already paid."""
    return max(Decimal("0"), principal - emi * emis_paid)


def build_schedule(
    loan_id: str,
    start_date: datetime,
    tenure_months: int,
    emi: Money,
    due_day: int,
    emis_paid: int = 0,
    as_of: Optional[datetime] = None,
) -> list[LoanScheduleItem]:
    """
    Every EMI of the loan, one per month after the start date.

    The first `emis_paid` items are marked paid. Unpaid items already
    past `as_of` are overdue.
    """
    items = []
    for i in range(tenure_months):
        due = add_months(start_date, i + 1, due_day)
        if i < emis_paid:
            status = ScheduleStatus.PAID
            notes = "Pre-existing payment"
        elif as_of is not None and due < as_of:
            status = ScheduleStatus.OVERDUE
            notes = None
        else:
            status = ScheduleStatus.DUE
            notes = None
        items.append(LoanScheduleItem(
            id=f"{loan_id}-{due:%Y%m}",
            due_date=due,
            amount=emi,
            status=status,
            notes=notes,
        ))
    return items


def _next_unpaid(schedule: list[LoanScheduleItem]) -> Optional[datetime]:
    return next(
        (item.due_date for item in schedule if item.status != ScheduleStatus.PAID),
        None,
    )


def apply_add_loan(snapshot: Snapshot, command: AddLoan) -> Snapshot:
    state = working_copy(snapshot)
    if state.find_loan(command.loan_id) is not None:
        raise CommandError(f"Loan already exists: {command.loan_id}")

    emi = Money(amount=command.emi_amount, currency=command.currency)
    schedule = build_schedule(
        loan_id=command.loan_id,
        start_date=command.start_date,
        tenure_months=command.tenure_months,
        emi=emi,
        due_day=command.monthly_due_day,
        emis_paid=command.emis_paid,
        as_of=command.timestamp,
    )
    balance = outstanding_after(
        command.principal_amount,
        command.emi_amount,
        command.emis_paid,
    )

    state.loan_entries.append(LoanEntry(
        id=command.loan_id,
        type=command.type,
        bank=command.bank,
        loan_number=command.loan_number,
        principal_amount=Money(amount=command.principal_amount, currency=command.currency),
        current_balance=Money(amount=balance, currency=command.currency),
        interest_rate=command.interest_rate,
        tenure_months=command.tenure_months,
        emi_amount=emi,
        next_payment_date=_next_unpaid(schedule),
        start_date=command.start_date,
        end_date=add_months(command.start_date, command.tenure_months, command.monthly_due_day),
        preferred_account_id=command.preferred_account_id,
        monthly_due_day=command.monthly_due_day,
        timestamp=command.timestamp,
        schedule=schedule,
    ))
    return state


def apply_pay_loan_emi(snapshot: Snapshot, command: PayLoanEmi) -> Snapshot:
    """
    Pay the EMI due in the month of `command.due_date`.

    A month that already has an EMI payment is rejected rather than
    recorded twice.
    """
    state = working_copy(snapshot)
    loan = state.find_loan(command.loan_id)
    if loan is None:
        raise NotFoundError(f"Loan not found: {command.loan_id}")
    account = require_account(state, command.source_account_id)

    currency = loan.current_balance.currency
    check_currency(account.balance, currency, account.composite_label)

    amount = command.amount if command.amount is not None else loan.emi_amount.amount
    if amount <= 0:
        raise CommandError(f"Loan {loan.label} has no EMI amount to pay")

    for payment in loan.linked_transactions:
        if payment.type == EMI_PAYMENT and payment.due_date and same_month(payment.due_date, command.due_date):
            raise CommandError(
                f"EMI for {command.due_date:%b %Y} is already paid on {loan.label}"
            )

    new_loan_balance = max(Decimal("0"), loan.current_balance.amount - amount)
    payer = account.nickname or account.bank_name

    loan.linked_transactions.append(LoanPayment(
        id=command.payment_id,
        type=EMI_PAYMENT,
        amount=Money(amount=amount, currency=currency),
        due_date=command.due_date,
        paid_on=command.timestamp,
        notes=f"EMI paid from {payer}",
        source_account_id=account.id,
        remaining_balance=new_loan_balance,
    ))

    for item in loan.schedule:
        if same_month(item.due_date, command.due_date):
            item.status = ScheduleStatus.PAID
            item.paid_on = command.timestamp
            item.source_account_id = account.id
            item.notes = f"Paid from {payer}"
            break

    loan.current_balance = loan.current_balance.with_amount(new_loan_balance)
    loan.next_payment_date = _next_unpaid(loan.schedule)

    new_account_balance = account.balance.amount - amount
    account.transactions.append(AccountTransaction(
        id=command.withdrawal_id,
        occurred_at=command.timestamp,
        amount=Money(amount=-amount, currency=currency),
        description=f"EMI Payment - {loan.bank} {loan.type.value.upper()}",
        type=AccountTransactionType.WITHDRAWAL,
        notes=f"EMI for {command.due_date:%b %Y}",
        balance=new_account_balance,
    ))
    account.balance = account.balance.with_amount(new_account_balance)
    account.last_synced = command.timestamp

    return state
