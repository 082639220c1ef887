import uuid
from decimal import Decimal

from django.db import models
from django.db.models import Q
from django.utils import timezone

# Largest value final_multiplier can hold (max_digits=12, decimal_places=6)
MAX_RECORDED_MULTIPLIER = Decimal("999999.999999")


class WagerQuerySet(models.QuerySet):
    def transition(self, wager_id, from_status, to_status, account=None, **fields) -> bool:
        """
        UPDATE wager SET status = to_status, ...
        WHERE id = ? AND status = from_status [AND account = ?]

        True only for the single caller whose update matched the row.
        """
        qs = self.filter(pk=wager_id, status=from_status)
        if account is not None:
            qs = qs.filter(account=account)
        return bool(qs.update(status=to_status, **fields))

    def owned_by(self, account):
        return self.filter(account=account)

    def stale(self, cutoff):
        return self.filter(status=Wager.ACTIVE, start_time__lt=cutoff)


class Wager(models.Model):
    ACTIVE = "ACTIVE"
    PAID = "PAID"
    LOST = "LOST"
    FRAUD = "FRAUD"

    STATUS_CHOICES = [
        (ACTIVE, "Active"),
        (PAID, "Paid"),
        (LOST, "Lost"),
        (FRAUD, "Fraud"),
    ]
    TERMINAL_STATUSES = (PAID, LOST, FRAUD)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    account = models.ForeignKey(
        "accounts.Account", on_delete=models.PROTECT, related_name="wagers"
    )
    bet_amount = models.BigIntegerField()
    status = models.CharField(max_length=8, choices=STATUS_CHOICES, default=ACTIVE)

    # server clock only; the fraud check measures elapsed time from here
    start_time = models.DateTimeField(default=timezone.now)

    final_multiplier = models.DecimalField(
        max_digits=12, decimal_places=6, null=True, blank=True
    )
    payout = models.BigIntegerField(default=0)
    settled_at = models.DateTimeField(null=True, blank=True)

    objects = WagerQuerySet.as_manager()

    class Meta:
        ordering = ["-start_time"]
        indexes = [
            models.Index(fields=["account", "status"]),
            models.Index(fields=["status", "start_time"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(bet_amount__gt=0),
                name="wager_bet_amount_positive",
            ),
        ]

    @property
    def is_settled(self):
        return self.status in self.TERMINAL_STATUSES

    def __str__(self):
        return f"Wager {self.id} ({self.status})"
