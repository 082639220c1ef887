import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from wallets.services import InsufficientFunds, StoreUnavailable

from .engine import get_engine
from .exceptions import FraudDetected, InvalidAmount, InvalidWager, WagerError
from .serializers import CashOutIn, CrashIn, PlaceWagerIn

logger = logging.getLogger(__name__)

# (exception, error code, http status, public message or None to use str(exc))
DOMAIN_ERRORS = [
    (InvalidAmount, "invalid_amount", status.HTTP_400_BAD_REQUEST, None),
    (InsufficientFunds, "insufficient_funds", status.HTTP_400_BAD_REQUEST, "Insufficient funds."),
    (InvalidWager, "invalid_wager", status.HTTP_400_BAD_REQUEST, "Invalid or expired wager."),
    (FraudDetected, "fraud_detected", status.HTTP_403_FORBIDDEN, "Fraud detected. Wager voided."),
]


def error_response(code, message, status_code):
    return Response({"error": code, "message": message}, status=status_code)


def _validated(serializer_class, data):
    serializer = serializer_class(data=data)
    if serializer.is_valid():
        return serializer.validated_data
    if "wager_id" in serializer.errors:
        raise InvalidWager()
    field, errors = next(iter(serializer.errors.items()))
    raise InvalidAmount(f"{field}: {errors[0]}")


def _run(request, action, operation):
    """
    Runs one engine operation and maps the outcome to a response.
    Unexpected failures are logged with context and reported without detail.
    """
    account = request.user
    try:
        return operation()
    except (StoreUnavailable, DatabaseError):
        logger.exception("Ledger unavailable during %s for %s", action, account.user_id)
        return error_response("store_unavailable", "Server error.", status.HTTP_500_INTERNAL_SERVER_ERROR)
    except (WagerError, InsufficientFunds) as exc:
        for exc_class, code, status_code, message in DOMAIN_ERRORS:
            if isinstance(exc, exc_class):
                return error_response(code, message or str(exc), status_code)
        raise
    except Exception:
        logger.exception(
            "Unexpected error during %s for %s: data=%r", action, account.user_id, request.data
        )
        return error_response("server_error", f"Server error during {action}.", status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(["POST"])
def place_wager(request):
    """
    Debits the stake and opens an ACTIVE wager.
    """
    def operation():
        data = _validated(PlaceWagerIn, request.data)
        placed = get_engine().place_wager(request.user, data["bet_amount"])
        return Response({
            "wager_id": str(placed.wager.id),
            "new_balance": placed.new_balance,
        })

    return _run(request, "wager", operation)


@api_view(["POST"])
def cash_out(request):
    """
    Pays bet * claimed multiplier unless the claim outruns server time.
    """
    def operation():
        data = _validated(CashOutIn, request.data)
        result = get_engine().cash_out(
            request.user, data["wager_id"], data["claimed_multiplier"]
        )
        return Response({
            "winnings": result.winnings,
            "final_multiplier": float(result.final_multiplier),
            "new_balance": result.new_balance,
        })

    return _run(request, "payout", operation)


@api_view(["POST"])
def crash(request):
    def operation():
        data = _validated(CrashIn, request.data)
        get_engine().crash(request.user, data["wager_id"])
        return Response({"ok": True})

    return _run(request, "crash", operation)


@api_view(["GET"])
def wager_state(request, wager_id):
    def operation():
        preview = get_engine().preview(request.user, wager_id)
        return Response({
            "wager_id": str(preview.wager_id),
            "status": preview.status,
            "bet_amount": preview.bet_amount,
            "multiplier": float(preview.multiplier) if preview.multiplier is not None else None,
            "elapsed": float(preview.elapsed),
        })

    return _run(request, "wager lookup", operation)
