# accounts/authentication.py
from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication, get_authorization_header

from .identity import AuthError
from .models import Account
from .tokens import read_session_token


class SessionTokenAuthentication(BaseAuthentication):
    """
    Authorization: Bearer <session token>

    The account is always resolved from the signed token, never from the body.
    """

    keyword = "Bearer"

    def authenticate(self, request):
        auth = get_authorization_header(request).split()

        if not auth or auth[0].lower() != self.keyword.lower().encode():
            return None

        if len(auth) != 2:
            raise exceptions.AuthenticationFailed("Invalid token header.")

        try:
            token = auth[1].decode()
        except UnicodeError:
            raise exceptions.AuthenticationFailed("Invalid token header.")

        try:
            user_id = read_session_token(token)
        except AuthError:
            raise exceptions.AuthenticationFailed("Invalid or expired token.")

        account = Account.objects.filter(user_id=user_id).first()
        if account is None:
            raise exceptions.AuthenticationFailed("Invalid or expired token.")

        return (account, token)

    def authenticate_header(self, request):
        return self.keyword
