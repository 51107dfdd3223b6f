"""
Shared helpers for command handlers.

Handlers never mutate the snapshot they receive. Each one deep-copies it,
edits the copy and returns it, so a rejected command leaves the caller's
snapshot untouched.
"""

from pocketledger.models.state import Account, Money, Snapshot


class CommandError(Exception):
    """A command could not be applied to the current snapshot."""
    pass


class NotFoundError(CommandError):
    """A command referenced a record that does not exist."""
    pass


def working_copy(snapshot: Snapshot) -> Snapshot:
    return snapshot.model_copy(deep=True)


def require_account(snapshot: Snapshot, account_id: str, active: bool = True) -> Account:
    account = snapshot.find_account(account_id)
    if account is None:
        raise NotFoundError(f"Account not found: {account_id}")
    if active and not account.is_active:
        raise CommandError(f"Account is closed: {account.composite_label}")
    return account


def check_currency(target: Money, currency: str, what: str) -> None:
    """Amounts are never converted implicitly."""
    if target.currency != currency.upper():
        raise CommandError(
            f"Currency mismatch for {what}: expected {target.currency}, got {currency.upper()}"
        )
