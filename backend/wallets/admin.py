from django.contrib import admin
from .models import Wallet, WalletTransaction


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    list_display = ("account", "balance", "updated_at")
    search_fields = ("account__user_id", "account__username")
    # balances move only through wallets.services (see adjust_balance)
    readonly_fields = ("account", "balance", "updated_at")


@admin.register(WalletTransaction)
class WalletTransactionAdmin(admin.ModelAdmin):
    list_display = ("reference", "account", "tx_type", "amount", "balance_after", "created_at")
    list_filter = ("tx_type",)
    search_fields = ("reference", "account__user_id")
    readonly_fields = ("account", "amount", "tx_type", "balance_after", "reference", "meta", "created_at")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
