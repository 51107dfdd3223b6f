"""
Bank account commands.

`Account.balance` is authoritative. Commands here keep the embedded
transaction log in step with it, except for `CorrectAccountBalance`,
which edits the balance alone. The ledger view reconstructs the
difference as an opening-balance row.
"""

from pocketledger.commands.common import (
    CommandError,
    check_currency,
    require_account,
    working_copy,
)
from pocketledger.models.commands import (
    AddAccount,
    CloseAccount,
    CorrectAccountBalance,
    RecordAccountTransaction,
)
from pocketledger.models.state import (
    Account,
    AccountStatus,
    AccountTransaction,
    Money,
    Snapshot,
)


def mask_account_number(number: str) -> str:
    """
    Keep only the last four characters of an account number.

    Already-masked input is returned in the same canonical form.
    """
    clean = "".join(number.split())
    last4 = clean[-4:] if len(clean) >= 4 else "XXXX"
    return f"****{last4}"


def apply_add_account(snapshot: Snapshot, command: AddAccount) -> Snapshot:
    """Add an account with its starting balance and an empty transaction log."""
    state = working_copy(snapshot)
    if state.find_account(command.account_id) is not None:
        raise CommandError(f"Account already exists: {command.account_id}")

    state.accounts.append(Account(
        id=command.account_id,
        nickname=command.nickname,
        bank_name=command.bank_name,
        account_number_masked=mask_account_number(command.account_number_masked),
        account_type=command.account_type,
        balance=Money(amount=command.balance, currency=command.currency),
        status=AccountStatus.ACTIVE,
        created_at=command.timestamp,
        last_synced=command.timestamp,
    ))
    return state


def apply_record_account_transaction(
    snapshot: Snapshot,
    command: RecordAccountTransaction,
) -> Snapshot:
    state = working_copy(snapshot)
    account = require_account(state, command.account_id)
    check_currency(account.balance, command.currency, account.composite_label)

    new_balance = account.balance.amount + command.amount
    account.transactions.append(AccountTransaction(
        id=command.transaction_id,
        occurred_at=command.timestamp,
        amount=Money(amount=command.amount, currency=command.currency),
        description=command.description,
        type=command.type,
        category=command.category,
        notes=command.notes,
        balance=new_balance,
    ))
    account.balance = account.balance.with_amount(new_balance)
    account.last_synced = command.timestamp
    return state


def apply_correct_account_balance(
    snapshot: Snapshot,
    command: CorrectAccountBalance,
) -> Snapshot:
    state = working_copy(snapshot)
    account = require_account(state, command.account_id)
    account.balance = account.balance.with_amount(command.balance)
    account.last_synced = command.timestamp
    return state


def apply_close_account(snapshot: Snapshot, command: CloseAccount) -> Snapshot:
    state = working_copy(snapshot)
    account = require_account(state, command.account_id, active=False)
    account.status = AccountStatus.CLOSED
    return state
