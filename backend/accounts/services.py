# accounts/services.py
from django.conf import settings
from django.utils import timezone

from wallets.services import ledger_atomic, open_wallet

from .identity import Identity
from .models import Account


def get_or_create_account(identity: Identity, seed_balance: int = None):
    """
    Lazily creates the account and its wallet on first authenticated
    contact. Returns (account, created).
    """
    if seed_balance is None:
        seed_balance = settings.ACCOUNT_SEED_BALANCE

    with ledger_atomic():
        account, created = Account.objects.get_or_create(
            user_id=identity.user_id,
            defaults={
                "username": identity.username,
                "full_name": identity.full_name,
            },
        )
        open_wallet(account, seed_balance=seed_balance if created else 0)

        Account.objects.filter(pk=account.pk).update(
            username=identity.username,
            full_name=identity.full_name,
            last_seen_at=timezone.now(),
        )

    return account, created
