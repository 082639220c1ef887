# notifications/dispatch.py
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from functools import lru_cache

from django.conf import settings

from .telegram import TelegramBotClient

logger = logging.getLogger(__name__)


def format_amount(minor_units: int, currency: str = None) -> str:
    currency = currency or settings.CURRENCY_CODE
    return f"{Decimal(minor_units) / 100:.2f} {currency}"


def cashout_message(multiplier, winnings: int) -> str:
    return f"✅ You cashed out at {Decimal(multiplier):.2f}x and won {format_amount(winnings)}!"


def crash_message(bet_amount: int) -> str:
    return f"❌ Game Over! You crashed and lost your {format_amount(bet_amount)} bet."


def expired_message(bet_amount: int) -> str:
    return f"⌛ Your {format_amount(bet_amount)} wager was never cashed out and has been settled as lost."


class NullNotifier:
    def notify(self, user_id, text, **options):
        logger.debug("Notifications disabled; dropping message for %s", user_id)
        return None


class NotificationDispatcher:
    """
    Hands messages to a small thread pool and returns at once.
    A failed delivery is logged and dropped. At most max_pending messages
    wait or run at a time; beyond that new ones are logged and dropped.
    """

    def __init__(self, client, workers=4, max_pending=1000):
        self.client = client
        self.max_pending = max_pending
        self._slots = threading.BoundedSemaphore(max_pending)
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="notify")

    def notify(self, user_id, text, **options):
        if not self._slots.acquire(blocking=False):
            logger.warning(
                "Notification backlog at %s; dropping message for %s", self.max_pending, user_id
            )
            return None
        try:
            return self._executor.submit(self._deliver, user_id, text, options)
        except RuntimeError:
            self._slots.release()
            raise

    def _deliver(self, user_id, text, options):
        try:
            return self.client.send_message(user_id, text, **options)
        except Exception:
            logger.exception("Notification to %s failed", user_id)
            return False
        finally:
            self._slots.release()

    def shutdown(self, wait=True):
        self._executor.shutdown(wait=wait)


@lru_cache(maxsize=1)
def get_notifier():
    if not settings.NOTIFY_ENABLED or not settings.TELEGRAM_BOT_TOKEN:
        logger.info("Outbound notifications are disabled")
        return NullNotifier()
    return NotificationDispatcher(
        TelegramBotClient.from_settings(),
        workers=settings.NOTIFY_WORKERS,
        max_pending=settings.NOTIFY_MAX_PENDING,
    )
