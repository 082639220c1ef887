# accounts/models.py
from django.db import models


class Account(models.Model):
    """
    A player known only by the stable id the identity verifier returned.
    Created lazily on first authenticated contact, never deleted here.
    """

    user_id = models.CharField(max_length=64, unique=True, db_index=True)

    username = models.CharField(max_length=64, blank=True)
    full_name = models.CharField(max_length=120, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    last_seen_at = models.DateTimeField(null=True, blank=True)

    # DRF permission checks read these off request.user
    is_authenticated = True
    is_anonymous = False

    class Meta:
        ordering = ["-id"]

    def __str__(self):
        return f"Account({self.user_id})"
