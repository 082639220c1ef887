# notifications/telegram.py
import logging

import requests
from django.conf import settings
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

PLAY_AGAIN_TEXT = "🚀 Play Mesob Crash Again"
LAUNCH_TEXT = "🎰 Launch Mesob Crash"


class TelegramBotClient:
    """
    Outbound-only Bot API client (sendMessage). Never polls.
    """

    def __init__(self, bot_token, play_url, timeout=5.0, max_retries=2,
                 base_url="https://api.telegram.org", session=None):
        self.bot_token = bot_token
        self.play_url = play_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_url = base_url.rstrip("/")
        self.session = session or self._create_session()

    @classmethod
    def from_settings(cls):
        return cls(
            bot_token=settings.TELEGRAM_BOT_TOKEN,
            play_url=settings.TMA_URL,
            timeout=settings.NOTIFY_TIMEOUT,
            base_url=settings.TELEGRAM_API_BASE_URL,
        )

    def _create_session(self):
        session = requests.Session()

        retry_strategy = Retry(
            total=self.max_retries,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["POST"],
            backoff_factor=1,
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy, pool_connections=4, pool_maxsize=8)

        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def _web_app_keyboard(self, text):
        return {
            "inline_keyboard": [[
                {"text": text, "web_app": {"url": self.play_url}},
            ]]
        }

    def send_message(self, chat_id, text, button_text=PLAY_AGAIN_TEXT) -> bool:
        url = f"{self.base_url}/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": chat_id,
            "text": text,
            "reply_markup": self._web_app_keyboard(button_text),
        }

        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning("Error sending message to %s: %s", chat_id, e)
            return False

        if response.status_code != 200:
            logger.warning(
                "Telegram rejected message to %s: HTTP %s", chat_id, response.status_code
            )
            return False

        try:
            body = response.json()
        except ValueError:
            body = None
        ok = isinstance(body, dict) and bool(body.get("ok"))
        if not ok:
            logger.warning("Telegram returned a non-ok body for %s", chat_id)
        return ok
