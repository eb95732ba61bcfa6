from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.exceptions import AuthenticationFailed


class TokenAuthentication(BaseAuthentication):
    """
    Signed bearer token authentication using the Authorization header
    """

    keyword = 'Bearer'

    def authenticate(self, request):
        # Imported lazily: rest_framework.views loads this class while it is itself loading
        from accounts.services import AuthService
        from .exceptions import Unauthenticated

        auth = get_authorization_header(request).split()

        if not auth or auth[0].lower() != self.keyword.lower().encode():
            return None

        if len(auth) != 2:
            raise AuthenticationFailed('Invalid token header')

        try:
            token = auth[1].decode()
        except UnicodeError:
            raise AuthenticationFailed('Invalid token header')

        try:
            actor = AuthService().verify(token)
        except Unauthenticated as exc:
            raise AuthenticationFailed(exc.detail)

        # request.user is the Actor, request.auth the raw token
        return (actor, token)

    def authenticate_header(self, request):
        return self.keyword
