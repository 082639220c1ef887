import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone as dt_timezone
from urllib.parse import urlencode

import pytest
from rest_framework.test import APIClient

from accounts.identity import Identity, get_identity_verifier
from accounts.services import get_or_create_account
from accounts.tokens import issue_session_token
from crash.engine import SettlementEngine, get_engine
from crash.oracle import LinearOracle, get_oracle
from notifications.dispatch import get_notifier

BOT_TOKEN = "123456:TEST-bot-token"


class FrozenClock:
    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)
        return self.now


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, user_id, text, **options):
        self.sent.append((user_id, text, options))


def sign_init_data(user, auth_date, bot_token=BOT_TOKEN, **extra):
    """Builds initData the way Telegram signs it for a Mini App."""
    fields = {
        "auth_date": str(auth_date),
        "query_id": "AAHdF6IQAAAAAN0XohDhrOrc",
        "user": json.dumps(user, separators=(",", ":")),
    }
    fields.update(extra)
    data_check_string = "\n".join(f"{k}={fields[k]}" for k in sorted(fields))
    secret = hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()
    fields["hash"] = hmac.new(secret, data_check_string.encode(), hashlib.sha256).hexdigest()
    return urlencode(fields)


def _clear_factories():
    for factory in (get_engine, get_oracle, get_notifier, get_identity_verifier):
        factory.cache_clear()


@pytest.fixture(autouse=True)
def isolated_settings(settings):
    settings.TELEGRAM_BOT_TOKEN = BOT_TOKEN
    settings.NOTIFY_ENABLED = False
    settings.ACCOUNT_SEED_BALANCE = 0
    _clear_factories()
    yield settings
    _clear_factories()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2025, 1, 1, 12, 0, 0, tzinfo=dt_timezone.utc))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def engine(clock, notifier):
    return SettlementEngine(
        oracle=LinearOracle("0.15"),
        tolerance="0.05",
        max_multiplier="500",
        min_bet=1,
        max_bet=1_000_000,
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture
def make_account():
    def _make(user_id="1001", balance=0, username="abebe"):
        account, _ = get_or_create_account(
            Identity(user_id=user_id, username=username, full_name="Abebe Kebede"),
            seed_balance=balance,
        )
        return account

    return _make


@pytest.fixture
def player(db, make_account):
    return make_account("1001", balance=100)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def authed_client(db, make_account):
    account = make_account("2002", balance=1000)
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_session_token(account.user_id)}")
    client.account = account
    return client
