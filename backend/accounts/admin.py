from django.contrib import admin
from .models import Account


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ("user_id", "username", "full_name", "created_at", "last_seen_at")
    search_fields = ("user_id", "username", "full_name")
    readonly_fields = ("user_id", "created_at", "last_seen_at")
