# accounts/tokens.py
from django.conf import settings
from django.core.signing import BadSignature, SignatureExpired, TimestampSigner

from .identity import AuthError


signer = TimestampSigner(salt="mesob-session")


def issue_session_token(user_id: str) -> str:
    return signer.sign(user_id)


def read_session_token(token: str, max_age: int = None) -> str:
    """
    Returns the user id carried by a session token.
    Tampered and expired tokens raise AuthError.
    """
    if max_age is None:
        max_age = settings.SESSION_TOKEN_MAX_AGE
    try:
        return signer.unsign(token, max_age=max_age)
    except SignatureExpired:
        raise AuthError("Session token expired")
    except BadSignature:
        raise AuthError("Invalid session token")
