import logging
from contextlib import contextmanager

from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from .models import Wallet, WalletTransaction

logger = logging.getLogger(__name__)


class WalletError(Exception):
    pass


class InsufficientFunds(WalletError):
    pass


class StoreUnavailable(WalletError):
    pass


# ======================================================
# INTERNAL
# ======================================================
@contextmanager
def ledger_atomic():
    """
    One all-or-nothing unit against the ledger. Database failures surface
    as StoreUnavailable after the transaction has rolled back.
    """
    try:
        with transaction.atomic():
            yield
    except DatabaseError as exc:
        raise StoreUnavailable("Ledger store unavailable") from exc


def _balance_in_transaction(account) -> int:
    # Only valid after this transaction updated the row: the write lock is
    # held until commit, so this is the post-state of our own mutation.
    return Wallet.objects.filter(account=account).values_list("balance", flat=True).get()


def _journal(account, tx_type, amount, balance_after, reference, meta):
    return WalletTransaction.objects.create(
        account=account,
        amount=amount,
        tx_type=tx_type,
        balance_after=balance_after,
        reference=reference,
        meta=meta or {},
    )


# ======================================================
# OPEN (LAZY, ON FIRST CONTACT)
# ======================================================
def open_wallet(account, seed_balance: int = 0):
    if seed_balance < 0:
        raise WalletError("Invalid seed balance")

    with ledger_atomic():
        wallet, created = Wallet.objects.get_or_create(
            account=account,
            defaults={"balance": seed_balance},
        )
        if created and seed_balance > 0:
            _journal(
                account,
                WalletTransaction.CREDIT,
                seed_balance,
                seed_balance,
                reference=f"seed:{account.user_id}",
                meta={"reason": "seed"},
            )
    return wallet


# ======================================================
# DEBIT (ONLY IF COVERED)
# ======================================================
def debit_if_sufficient(account, amount: int, reference: str, meta=None) -> int:
    """
    UPDATE wallet SET balance = balance - amount
    WHERE account = ? AND balance >= amount

    Returns the balance after the debit. No row matched means the balance
    did not cover the amount at commit time.
    """
    if amount <= 0:
        raise WalletError("Invalid debit amount")

    with ledger_atomic():
        updated = Wallet.objects.filter(account=account, balance__gte=amount).update(
            balance=F("balance") - amount,
            updated_at=timezone.now(),
        )
        if not updated:
            raise InsufficientFunds("Insufficient funds")

        balance = _balance_in_transaction(account)
        _journal(account, WalletTransaction.DEBIT, amount, balance, reference, meta)

    return balance


# ======================================================
# CREDIT
# ======================================================
def credit(account, amount: int, reference: str, meta=None) -> int:
    if amount < 0:
        raise WalletError("Invalid credit amount")

    with ledger_atomic():
        updated = Wallet.objects.filter(account=account).update(
            balance=F("balance") + amount,
            updated_at=timezone.now(),
        )
        if not updated:
            raise WalletError("Wallet not found")

        balance = _balance_in_transaction(account)
        _journal(account, WalletTransaction.CREDIT, amount, balance, reference, meta)

    return balance


def get_balance(account) -> int:
    return Wallet.objects.filter(account=account).values_list("balance", flat=True).first() or 0
