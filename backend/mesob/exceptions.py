from rest_framework import exceptions
from rest_framework.views import exception_handler


def api_exception_handler(exc, context):
    """
    DRF's handler, reshaped to the {"error", "message"} body the game
    endpoints return.
    """
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        code = "auth_failed"
    else:
        code = getattr(exc, "default_code", "error")

    detail = getattr(exc, "detail", None)
    message = str(detail) if isinstance(detail, str) else str(exc)
    response.data = {"error": code, "message": message}
    return response
