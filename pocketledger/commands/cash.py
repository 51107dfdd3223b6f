"""
Cash ledger commands.

Cash lives in named categories (Wallet, Home Safe, ...). Rows are signed:
money coming in is positive, expenses and outgoing moves are negative.
"""

from pocketledger.commands.common import (
    NotFoundError,
    check_currency,
    require_account,
    working_copy,
)
from pocketledger.models.commands import (
    AddCash,
    DeleteCashCategory,
    DeleteCashEntry,
    DepositCashToBank,
    MoveCash,
    RecordCashExpense,
)
from pocketledger.models.state import (
    AccountTransaction,
    AccountTransactionType,
    CashEntry,
    CashEntryType,
    Money,
    Snapshot,
)


def apply_add_cash(snapshot: Snapshot, command: AddCash) -> Snapshot:
    state = working_copy(snapshot)
    state.cash_entries.append(CashEntry(
        id=command.entry_id,
        description=command.description,
        amount=Money(amount=command.amount, currency=command.currency),
        type=CashEntryType.ADD_CASH,
        cash_category=command.cash_category,
        notes=command.notes,
        timestamp=command.timestamp,
    ))
    return state


def apply_record_cash_expense(snapshot: Snapshot, command: RecordCashExpense) -> Snapshot:
    state = working_copy(snapshot)
    state.cash_entries.append(CashEntry(
        id=command.entry_id,
        description=command.description,
        amount=Money(amount=-command.amount, currency=command.currency),
        type=CashEntryType.RECORD_EXPENSE,
        cash_category=command.cash_category,
        expense_category=command.expense_category,
        notes=command.notes,
        timestamp=command.timestamp,
    ))
    return state


def apply_move_cash(snapshot: Snapshot, command: MoveCash) -> Snapshot:
    """Two MOVE_CASH rows that cancel out across categories."""
    state = working_copy(snapshot)
    state.cash_entries.append(CashEntry(
        id=command.out_entry_id,
        description=f"Moved to {command.to_category}",
        amount=Money(amount=-command.amount, currency=command.currency),
        type=CashEntryType.MOVE_CASH,
        cash_category=command.from_category,
        notes=command.notes,
        timestamp=command.timestamp,
    ))
    state.cash_entries.append(CashEntry(
        id=command.in_entry_id,
        description=f"Moved from {command.from_category}",
        amount=Money(amount=command.amount, currency=command.currency),
        type=CashEntryType.MOVE_CASH,
        cash_category=command.to_category,
        notes=command.notes,
        timestamp=command.timestamp,
    ))
    return state


def apply_delete_cash_entry(snapshot: Snapshot, command: DeleteCashEntry) -> Snapshot:
    state = working_copy(snapshot)
    remaining = [e for e in state.cash_entries if e.id != command.entry_id]
    if len(remaining) == len(state.cash_entries):
        raise NotFoundError(f"Cash entry not found: {command.entry_id}")
    state.cash_entries = remaining
    return state


def apply_delete_cash_category(snapshot: Snapshot, command: DeleteCashCategory) -> Snapshot:
    """Remove every row of one category."""
    state = working_copy(snapshot)
    remaining = [e for e in state.cash_entries if e.cash_category != command.cash_category]
    if len(remaining) == len(state.cash_entries):
        raise NotFoundError(f"Cash category not found: {command.cash_category}")
    state.cash_entries = remaining
    return state


def apply_deposit_cash_to_bank(snapshot: Snapshot, command: DepositCashToBank) -> Snapshot:
    """
    Move cash into a bank account.

    The cash row and the bank deposit are written in the same transition.
    """
    state = working_copy(snapshot)
    account = require_account(state, command.account_id)
    check_currency(account.balance, command.currency, account.composite_label)

    state.cash_entries.append(CashEntry(
        id=command.entry_id,
        description=f"Deposited to {account.nickname or account.bank_name}",
        amount=Money(amount=-command.amount, currency=command.currency),
        type=CashEntryType.DEPOSIT_TO_BANK,
        cash_category=command.cash_category,
        notes=command.notes,
        timestamp=command.timestamp,
    ))

    new_balance = account.balance.amount + command.amount
    account.transactions.append(AccountTransaction(
        id=command.transaction_id,
        occurred_at=command.timestamp,
        amount=Money(amount=command.amount, currency=command.currency),
        description=f"Cash deposit from {command.cash_category}",
        type=AccountTransactionType.DEPOSIT,
        notes=command.notes,
        balance=new_balance,
    ))
    account.balance = account.balance.with_amount(new_balance)
    account.last_synced = command.timestamp
    return state
