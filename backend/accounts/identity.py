# accounts/identity.py
from __future__ import annotations

import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable
from urllib.parse import parse_qsl

from django.conf import settings
from django.utils.module_loading import import_string


# Clients and Telegram servers rarely agree to the second
AUTH_DATE_FUTURE_SKEW = 60


class AuthError(Exception):
    pass


@dataclass(frozen=True)
class Identity:
    user_id: str
    username: str = ""
    full_name: str = ""


class IdentityVerifier:
    """
    verify(raw_credential) -> Identity, or raise AuthError.
    """

    def verify(self, raw_credential) -> Identity:
        raise NotImplementedError

    @classmethod
    def from_settings(cls):
        return cls()


class TelegramInitDataVerifier(IdentityVerifier):
    """
    Validates Telegram Mini App initData.

    secret = HMAC_SHA256(key="WebAppData", msg=bot_token)
    hash   = HMAC_SHA256(key=secret, msg=data_check_string)

    Anything that does not parse cleanly is rejected.
    """

    def __init__(self, bot_token: str, max_age: int, clock: Callable[[], float] = time.time):
        self.bot_token = bot_token or ""
        self.max_age = max_age
        self.clock = clock

    @classmethod
    def from_settings(cls):
        return cls(
            bot_token=settings.TELEGRAM_BOT_TOKEN,
            max_age=settings.TELEGRAM_AUTH_MAX_AGE,
        )

    def verify(self, raw_credential) -> Identity:
        if not self.bot_token:
            raise AuthError("Telegram bot token is not configured")
        if not isinstance(raw_credential, str) or not raw_credential:
            raise AuthError("Missing init data")

        try:
            pairs = parse_qsl(raw_credential, keep_blank_values=True, strict_parsing=True)
        except ValueError:
            raise AuthError("Malformed init data")

        data = dict(pairs)
        if len(data) != len(pairs):
            raise AuthError("Duplicate init data fields")

        received_hash = data.pop("hash", None)
        if not received_hash:
            raise AuthError("Init data is not signed")

        data_check_string = "\n".join(f"{k}={data[k]}" for k in sorted(data))
        secret = hmac.new(b"WebAppData", self.bot_token.encode("utf-8"), hashlib.sha256).digest()
        calculated_hash = hmac.new(
            secret, data_check_string.encode("utf-8"), hashlib.sha256
        ).hexdigest()
        if not hmac.compare_digest(calculated_hash, received_hash):
            raise AuthError("Init data signature mismatch")

        self._check_auth_date(data.get("auth_date"))
        return self._identity_from_user(data.get("user"))

    def _check_auth_date(self, raw):
        try:
            auth_date = int(raw)
        except (TypeError, ValueError):
            raise AuthError("Missing auth_date")

        now = self.clock()
        if auth_date > now + AUTH_DATE_FUTURE_SKEW:
            raise AuthError("auth_date is in the future")
        if now - auth_date > self.max_age:
            raise AuthError("Init data has expired")

    def _identity_from_user(self, raw) -> Identity:
        if not raw:
            raise AuthError("Missing user")
        try:
            user = json.loads(raw)
        except ValueError:
            raise AuthError("Malformed user")
        if not isinstance(user, dict):
            raise AuthError("Malformed user")

        tg_id = user.get("id")
        # bool is an int subclass
        if not isinstance(tg_id, int) or isinstance(tg_id, bool) or tg_id <= 0:
            raise AuthError("Malformed user id")

        full_name = " ".join(
            str(part) for part in (user.get("first_name"), user.get("last_name")) if part
        )
        return Identity(
            user_id=str(tg_id),
            username=str(user.get("username") or "")[:64],
            full_name=full_name[:120],
        )


@lru_cache(maxsize=1)
def get_identity_verifier() -> IdentityVerifier:
    return import_string(settings.IDENTITY_VERIFIER).from_settings()
