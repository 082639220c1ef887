from django.contrib import admin
from .models import Wager


@admin.register(Wager)
class WagerAdmin(admin.ModelAdmin):
    list_display = ("id", "account", "bet_amount", "status", "final_multiplier", "payout", "start_time", "settled_at")
    list_filter = ("status",)
    search_fields = ("id", "account__user_id", "account__username")
    readonly_fields = ("id", "account", "bet_amount", "status", "start_time", "final_multiplier", "payout", "settled_at")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
