# crash/management/commands/expire_stale_wagers.py
from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from crash.engine import get_engine
from crash.models import Wager


class Command(BaseCommand):
    help = "Settle ACTIVE wagers that were never cashed out or crashed as LOST"

    def add_arguments(self, parser):
        parser.add_argument(
            "--older-than",
            type=int,
            default=settings.CRASH_STALE_WAGER_SECONDS,
            help="Age in seconds after which an ACTIVE wager is stale",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="List stale wagers without settling them",
        )

    def handle(self, *args, **options):
        older_than = options["older_than"]
        if older_than <= 0:
            raise CommandError("--older-than must be positive")

        engine = get_engine()
        ids = engine.expire_stale(timedelta(seconds=older_than), dry_run=options["dry_run"])

        if not ids:
            self.stdout.write(self.style.SUCCESS("No stale wagers found."))
            return

        if options["dry_run"]:
            for wager in Wager.objects.filter(pk__in=ids).select_related("account"):
                self.stdout.write(
                    f"  {wager.id} | user {wager.account.user_id} | bet {wager.bet_amount} | started {wager.start_time:%Y-%m-%d %H:%M:%S}"
                )
            self.stdout.write(self.style.SUCCESS(f"DRY RUN: would expire {len(ids)} wager(s)"))
            return

        self.stdout.write(self.style.SUCCESS(f"Expired {len(ids)} stale wager(s) as LOST"))
