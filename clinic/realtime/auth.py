"""
WebSocket authentication.

Browsers cannot set an ``Authorization`` header on a WebSocket upgrade,
so the access token is also accepted as ``?token=<jwt>``.  The same
identity checks as the REST API apply; failures leave the scope
anonymous and the consumer closes the socket.
"""
from __future__ import annotations

import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser
from rest_framework.exceptions import APIException

from clinic.services.identity import resolve_principal

logger = logging.getLogger(__name__)


def _raw_token(scope) -> str | None:
    for name, value in scope.get('headers', []):
        if name == b'authorization':
            parts = value.decode('latin1').split()
            if len(parts) == 2 and parts[0].lower() == 'bearer':
                return parts[1]
    query = parse_qs(scope.get('query_string', b'').decode())
    values = query.get('token')
    return values[0] if values else None


@database_sync_to_async
def _principal_for(raw):
    try:
        return resolve_principal(raw)
    except APIException as exc:
        logger.info("websocket auth rejected: %s", exc.default_code)
        return AnonymousUser()


class BearerTokenAuthMiddleware(BaseMiddleware):
    async def __call__(self, scope, receive, send):
        scope = dict(scope)
        scope['user'] = await _principal_for(_raw_token(scope))
        return await super().__call__(scope, receive, send)
