from django.db import models
from django.db.models import Q


class Wallet(models.Model):
    """
    Balance held in minor units (santim for ETB).

    Mutated only through the conditional updates in wallets.services,
    never through save().
    """

    account = models.OneToOneField(
        "accounts.Account",
        on_delete=models.PROTECT,
        related_name="wallet",
    )
    balance = models.BigIntegerField(default=0)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(balance__gte=0),
                name="wallet_balance_non_negative",
            ),
        ]

    def __str__(self):
        return f"Wallet({self.account_id})"



class WalletTransaction(models.Model):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"
    TX_TYPE_CHOICES = [
        (DEBIT, "Debit"),
        (CREDIT, "Credit"),
    ]

    account = models.ForeignKey(
        "accounts.Account", on_delete=models.PROTECT, related_name="wallet_txs"
    )
    amount = models.BigIntegerField()
    tx_type = models.CharField(max_length=6, choices=TX_TYPE_CHOICES)
    balance_after = models.BigIntegerField()
    # one journal row per reference: a replayed credit cannot commit twice
    reference = models.CharField(max_length=64, unique=True)
    meta = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["account", "created_at"]),
        ]

    def __str__(self):
        return f"{self.tx_type} {self.amount} for {self.account_id}"
