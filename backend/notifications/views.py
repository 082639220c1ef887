# notifications/views.py
import hmac
import logging

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .dispatch import get_notifier
from .telegram import LAUNCH_TEXT

logger = logging.getLogger(__name__)

WELCOME_TEXT = "Welcome to Mesob Crash! Tap below to bet and play."


def _secret_matches(request) -> bool:
    expected = settings.TELEGRAM_WEBHOOK_SECRET
    received = request.headers.get("X-Telegram-Bot-Api-Secret-Token", "")
    return bool(expected) and hmac.compare_digest(expected, received)


@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def telegram_webhook(request):
    """
    Bot updates. Only /start is handled: it answers with the Mini App launcher.
    """
    if not _secret_matches(request):
        return Response(status=status.HTTP_403_FORBIDDEN)

    message = request.data.get("message") if isinstance(request.data, dict) else None
    if not isinstance(message, dict):
        return Response({"ok": True})

    text = message.get("text")
    if not isinstance(text, str):
        text = ""
    chat = message.get("chat") or {}
    chat_id = chat.get("id") if isinstance(chat, dict) else None

    if chat_id is not None and text.split("@")[0].split(" ")[0] == "/start":
        get_notifier().notify(chat_id, WELCOME_TEXT, button_text=LAUNCH_TEXT)
        logger.info("Sent launcher to chat %s", chat_id)

    return Response({"ok": True})
