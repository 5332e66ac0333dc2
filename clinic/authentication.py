"""
Bearer-token authentication for the REST API.

Kept apart from the views so that DRF can import it from settings
without pulling in the URL configuration.
"""
from __future__ import annotations

from rest_framework import authentication

from clinic.exceptions import InvalidToken
from clinic.services.identity import resolve_principal


class BearerAuthentication(authentication.BaseAuthentication):
    """``Authorization: Bearer <jwt>``, resolved through the identity service.

    Requests without the header fall through as anonymous; the default
    ``IsAuthenticated`` permission then answers ``unauthenticated``.
    """

    keyword = 'Bearer'

    def authenticate(self, request):
        auth = authentication.get_authorization_header(request).split()
        if not auth or auth[0].lower() != self.keyword.lower().encode():
            return None
        if len(auth) != 2:
            raise InvalidToken()
        try:
            raw = auth[1].decode()
        except UnicodeError:
            raise InvalidToken()
        user = resolve_principal(raw)
        return user, raw

    def authenticate_header(self, request):
        return self.keyword
