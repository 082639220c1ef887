import threading
from decimal import Decimal

import pytest
import requests

from crash.models import Wager
from notifications.dispatch import (
    NotificationDispatcher,
    NullNotifier,
    cashout_message,
    crash_message,
    format_amount,
    get_notifier,
)
from notifications.telegram import LAUNCH_TEXT, PLAY_AGAIN_TEXT, TelegramBotClient
from wallets.services import get_balance


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body if body is not None else {"ok": True}

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        if self.error:
            raise self.error
        return self.response


class BlockingClient:
    def __init__(self):
        self.release = threading.Event()
        self.sent = []

    def send_message(self, chat_id, text, **options):
        self.release.wait(timeout=5)
        self.sent.append(chat_id)
        return True


class ExplodingClient:
    def send_message(self, chat_id, text, **options):
        raise RuntimeError("bot api down")


def _client(session):
    return TelegramBotClient(
        bot_token="123:abc",
        play_url="https://t.me/MesobEarnBot/MesobCrash",
        timeout=3,
        session=session,
    )


def test_send_message_posts_web_app_button():
    session = FakeSession()

    assert _client(session).send_message(42, "hello") is True

    url, payload, timeout = session.calls[0]
    assert url == "https://api.telegram.org/bot123:abc/sendMessage"
    assert timeout == 3
    assert payload["chat_id"] == 42
    assert payload["text"] == "hello"
    button = payload["reply_markup"]["inline_keyboard"][0][0]
    assert button == {"text": PLAY_AGAIN_TEXT, "web_app": {"url": "https://t.me/MesobEarnBot/MesobCrash"}}


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(error=requests.exceptions.ConnectionError("no route")),
        FakeSession(error=requests.exceptions.Timeout("slow")),
        FakeSession(response=FakeResponse(status_code=403)),
        FakeSession(response=FakeResponse(body={"ok": False, "description": "blocked"})),
        FakeSession(response=FakeResponse(body=ValueError("not json"))),
        FakeSession(response=FakeResponse(body=["ok"])),
    ],
)
def test_send_message_failures_return_false(session):
    assert _client(session).send_message(42, "hello") is False


def test_client_builds_retrying_session():
    client = TelegramBotClient(bot_token="123:abc", play_url="https://example.test", max_retries=3)

    adapter = client.session.get_adapter("https://api.telegram.org")
    assert adapter.max_retries.total == 3
    assert 429 in adapter.max_retries.status_forcelist


def test_messages_render_minor_units():
    assert format_amount(12345) == "123.45 ETB"
    assert format_amount(5, currency="USD") == "0.05 USD"
    assert cashout_message(Decimal("2.5"), 250) == "✅ You cashed out at 2.50x and won 2.50 ETB!"
    assert crash_message(100) == "❌ Game Over! You crashed and lost your 1.00 ETB bet."


def test_dispatcher_delivers_in_background():
    session = FakeSession()
    dispatcher = NotificationDispatcher(_client(session), workers=1)

    future = dispatcher.notify(7, "hi", button_text=LAUNCH_TEXT)
    assert future.result(timeout=5) is True
    dispatcher.shutdown()

    assert session.calls[0][1]["reply_markup"]["inline_keyboard"][0][0]["text"] == LAUNCH_TEXT


def test_dispatcher_swallows_delivery_errors(caplog):
    dispatcher = NotificationDispatcher(ExplodingClient(), workers=1)

    assert dispatcher.notify(7, "hi").result(timeout=5) is False
    dispatcher.shutdown()

    assert "Notification to 7 failed" in caplog.text


def test_get_notifier_disabled_without_token(settings):
    settings.NOTIFY_ENABLED = True
    settings.TELEGRAM_BOT_TOKEN = ""
    get_notifier.cache_clear()

    assert isinstance(get_notifier(), NullNotifier)


def test_get_notifier_enabled(settings):
    settings.NOTIFY_ENABLED = True
    get_notifier.cache_clear()

    notifier = get_notifier()

    assert isinstance(notifier, NotificationDispatcher)
    assert notifier.client.bot_token == settings.TELEGRAM_BOT_TOKEN
    notifier.shutdown()


@pytest.mark.django_db
def test_failed_notification_does_not_undo_settlement(
    engine, clock, player, django_capture_on_commit_callbacks
):
    dispatcher = NotificationDispatcher(ExplodingClient(), workers=1)
    engine.notifier = dispatcher
    placed = engine.place_wager(player, 100)
    clock.advance(10)

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        result = engine.cash_out(player, placed.wager.id, "2.0")
    dispatcher.shutdown()

    assert len(callbacks) == 1
    assert result.new_balance == 200
    assert get_balance(player) == 200
    assert Wager.objects.get(pk=placed.wager.id).status == Wager.PAID


@pytest.mark.django_db
def test_raising_notifier_does_not_undo_settlement(engine, clock, player, django_capture_on_commit_callbacks):
    class BrokenNotifier:
        def notify(self, user_id, text, **options):
            raise RuntimeError("queue full")

    engine.notifier = BrokenNotifier()
    placed = engine.place_wager(player, 100)

    with django_capture_on_commit_callbacks(execute=True):
        engine.crash(player, placed.wager.id)

    assert Wager.objects.get(pk=placed.wager.id).status == Wager.LOST
    assert get_balance(player) == 0


# ---------------------------------------------------------------------------
# webhook
# ---------------------------------------------------------------------------
WEBHOOK = "/api/telegram/webhook/"


@pytest.fixture
def webhook_notifier(settings, monkeypatch, notifier):
    settings.TELEGRAM_WEBHOOK_SECRET = "s3cret"
    monkeypatch.setattr("notifications.views.get_notifier", lambda: notifier)
    return notifier


def _update(text, chat_id=99):
    return {"update_id": 1, "message": {"text": text, "chat": {"id": chat_id}}}


def test_webhook_answers_start_with_launcher(api_client, webhook_notifier):
    response = api_client.post(
        WEBHOOK, _update("/start"), format="json", HTTP_X_TELEGRAM_BOT_API_SECRET_TOKEN="s3cret"
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    chat_id, text, options = webhook_notifier.sent[0]
    assert chat_id == 99
    assert "Mesob Crash" in text
    assert options == {"button_text": LAUNCH_TEXT}


def test_webhook_ignores_other_messages(api_client, webhook_notifier):
    for payload in (_update("hello"), {"update_id": 2}, _update(None)):
        response = api_client.post(
            WEBHOOK, payload, format="json", HTTP_X_TELEGRAM_BOT_API_SECRET_TOKEN="s3cret"
        )
        assert response.status_code == 200

    assert webhook_notifier.sent == []


@pytest.mark.parametrize("secret", [None, "", "wrong"])
def test_webhook_requires_secret(api_client, webhook_notifier, secret):
    headers = {} if secret is None else {"HTTP_X_TELEGRAM_BOT_API_SECRET_TOKEN": secret}

    response = api_client.post(WEBHOOK, _update("/start"), format="json", **headers)

    assert response.status_code == 403
    assert webhook_notifier.sent == []


def test_webhook_disabled_without_configured_secret(api_client, webhook_notifier, settings):
    settings.TELEGRAM_WEBHOOK_SECRET = ""

    response = api_client.post(
        WEBHOOK, _update("/start"), format="json", HTTP_X_TELEGRAM_BOT_API_SECRET_TOKEN=""
    )

    assert response.status_code == 403


def test_dispatcher_drops_messages_beyond_backlog(caplog):
    client = BlockingClient()
    dispatcher = NotificationDispatcher(client, workers=1, max_pending=2)

    first = dispatcher.notify(1, "a")
    second = dispatcher.notify(2, "b")
    dropped = dispatcher.notify(3, "c")

    assert dropped is None
    assert "dropping message for 3" in caplog.text

    client.release.set()
    assert first.result(timeout=5) is True
    assert second.result(timeout=5) is True

    # capacity comes back once deliveries finish
    assert dispatcher.notify(4, "d").result(timeout=5) is True
    dispatcher.shutdown()

    assert client.sent == [1, 2, 4]


def test_get_notifier_applies_backlog_limit(settings):
    settings.NOTIFY_ENABLED = True
    settings.NOTIFY_MAX_PENDING = 7
    get_notifier.cache_clear()

    notifier = get_notifier()

    assert notifier.max_pending == 7
    notifier.shutdown()
