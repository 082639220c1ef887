import logging

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from crash.models import Wager
from crash.serializers import WagerSerializer
from wallets.services import StoreUnavailable, get_balance

from .identity import AuthError, get_identity_verifier
from .serializers import AuthIn
from .services import get_or_create_account
from .tokens import issue_session_token

logger = logging.getLogger(__name__)

RECENT_WAGERS = 10


@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def tma_auth(request):
    """
    Exchanges Telegram initData for a short-lived session token.
    """
    serializer = AuthIn(data=request.data)
    if not serializer.is_valid():
        return Response(
            {"error": "auth_failed", "message": "Invalid Telegram data."},
            status=status.HTTP_401_UNAUTHORIZED,
        )

    try:
        identity = get_identity_verifier().verify(serializer.validated_data["init_data"])
    except AuthError as e:
        logger.info("Rejected Mini App login: %s", e)
        return Response(
            {"error": "auth_failed", "message": "Invalid Telegram data."},
            status=status.HTTP_401_UNAUTHORIZED,
        )

    try:
        account, created = get_or_create_account(identity)
        balance = get_balance(account)
    except StoreUnavailable:
        logger.exception("Could not open account for %s", identity.user_id)
        return Response(
            {"error": "store_unavailable", "message": "Server error."},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if created:
        logger.info("Opened account %s", account.user_id)

    return Response({
        "token": issue_session_token(account.user_id),
        "balance": balance,
        "expires_in": settings.SESSION_TOKEN_MAX_AGE,
    })


@api_view(["GET"])
def account_summary(request):
    account = request.user
    recent = Wager.objects.owned_by(account).order_by("-start_time")[:RECENT_WAGERS]

    return Response({
        "user_id": account.user_id,
        "balance": get_balance(account),
        "currency": settings.CURRENCY_CODE,
        "recent_wagers": WagerSerializer(recent, many=True).data,
    })
