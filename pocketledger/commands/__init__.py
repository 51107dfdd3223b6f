"""
Commands Package

Pure state transitions: `apply_<command>(snapshot, command) -> snapshot`.
The service applies exactly one of these inside each save, so every
command, including the ones touching two collections, is one write.
"""

from typing import Callable

from pocketledger.commands.accounts import (
    apply_add_account,
    apply_close_account,
    apply_correct_account_balance,
    apply_record_account_transaction,
    mask_account_number,
)
from pocketledger.commands.cash import (
    apply_add_cash,
    apply_delete_cash_category,
    apply_delete_cash_entry,
    apply_deposit_cash_to_bank,
    apply_move_cash,
    apply_record_cash_expense,
)
from pocketledger.commands.common import CommandError, NotFoundError
from pocketledger.commands.credit_cards import (
    apply_add_credit_card,
    apply_record_card_charge,
    apply_record_card_payment,
    minimum_payment_for,
    refresh_card_derivations,
)
from pocketledger.commands.fixed_income import apply_add_fixed_income
from pocketledger.commands.loans import (
    apply_add_loan,
    apply_pay_loan_emi,
    build_schedule,
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
from pocketledger.models.state import Snapshot


COMMAND_HANDLERS: dict[type[Command], Callable[[Snapshot, Command], Snapshot]] = {
    AddCash: apply_add_cash,
    RecordCashExpense: apply_record_cash_expense,
    MoveCash: apply_move_cash,
    DeleteCashEntry: apply_delete_cash_entry,
    DeleteCashCategory: apply_delete_cash_category,
    DepositCashToBank: apply_deposit_cash_to_bank,
    AddAccount: apply_add_account,
    RecordAccountTransaction: apply_record_account_transaction,
    CorrectAccountBalance: apply_correct_account_balance,
    CloseAccount: apply_close_account,
    AddCreditCard: apply_add_credit_card,
    RecordCardCharge: apply_record_card_charge,
    RecordCardPayment: apply_record_card_payment,
    AddLoan: apply_add_loan,
    PayLoanEmi: apply_pay_loan_emi,
    AddFixedIncome: apply_add_fixed_income,
}


def apply_command(snapshot: Snapshot, command: Command) -> Snapshot:
    """Dispatch a command to its handler."""
    handler = COMMAND_HANDLERS.get(type(command))
    if handler is None:
        raise CommandError(f"No handler registered for {command.name}")
    return handler(snapshot, command)


__all__ = [
    "COMMAND_HANDLERS",
    "CommandError",
    "NotFoundError",
    "apply_add_account",
    "apply_add_cash",
    "apply_add_credit_card",
    "apply_add_fixed_income",
    "apply_add_loan",
    "apply_close_account",
    "apply_command",
    "apply_correct_account_balance",
    "apply_delete_cash_category",
    "apply_delete_cash_entry",
    "apply_deposit_cash_to_bank",
    "apply_move_cash",
    "apply_pay_loan_emi",
    "apply_record_account_transaction",
    "apply_record_card_charge",
    "apply_record_card_payment",
    "apply_record_cash_expense",
    "build_schedule",
    "mask_account_number",
    "minimum_payment_for",
    "refresh_card_derivations",
]
