# wallets/management/commands/adjust_balance.py
import uuid

from django.core.management.base import BaseCommand, CommandError

from accounts.models import Account
from wallets.services import WalletError, credit, debit_if_sufficient


class Command(BaseCommand):
    help = "Credit or debit a player's wallet (minor units) with a journal entry"

    def add_arguments(self, parser):
        parser.add_argument("user_id", help="Stable user id (Telegram id)")
        parser.add_argument(
            "amount",
            type=int,
            help="Minor units; negative to debit",
        )
        parser.add_argument(
            "--reason",
            default="admin_adjust",
            help="Recorded in the journal entry meta",
        )
        parser.add_argument(
            "--reference",
            help="Journal reference (defaults to a generated one)",
        )

    def handle(self, *args, **options):
        amount = options["amount"]
        if amount == 0:
            raise CommandError("Amount must be non-zero")

        account = Account.objects.filter(user_id=options["user_id"]).first()
        if account is None:
            raise CommandError(f"No account for user {options['user_id']}")

        reference = options["reference"] or f"admin:{uuid.uuid4().hex[:16]}"
        meta = {"reason": options["reason"]}

        try:
            if amount > 0:
                balance = credit(account, amount, reference=reference, meta=meta)
            else:
                balance = debit_if_sufficient(account, -amount, reference=reference, meta=meta)
        except WalletError as e:
            raise CommandError(str(e))

        self.stdout.write(
            self.style.SUCCESS(f"{account.user_id}: {amount:+d} -> balance {balance} ({reference})")
        )
