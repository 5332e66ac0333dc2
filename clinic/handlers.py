"""
Project-wide DRF exception handler.

Every failure leaves the API as ``{"ok": false, "error": {...}}``.
Authentication and authorization failures expose only their label;
validation failures add the offending fields under ``details``; anything
unexpected is logged with its traceback and surfaced as ``internal``.
"""
from __future__ import annotations

import logging

from django.http import Http404
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from clinic.exceptions import TAXONOMY

logger = logging.getLogger(__name__)

# order matters: subclasses before their DRF bases
_FALLBACK_CODES = (
    (exceptions.ValidationError, 'validation_failed'),
    (exceptions.NotAuthenticated, 'unauthenticated'),
    (exceptions.AuthenticationFailed, 'invalid_token'),
    (exceptions.PermissionDenied, 'forbidden'),
    (DjangoPermissionDenied, 'forbidden'),
    (exceptions.NotFound, 'not_found'),
    (Http404, 'not_found'),
    (exceptions.Throttled, 'throttled'),
    (exceptions.MethodNotAllowed, 'method_not_allowed'),
    (exceptions.ParseError, 'validation_failed'),
    (exceptions.UnsupportedMediaType, 'validation_failed'),
)

# labels whose message must never carry more than the label itself
_OPAQUE = {
    'unauthenticated', 'invalid_credentials', 'invalid_token', 'token_expired', 'account_deactivated',
    'organization_deactivated', 'forbidden',
}


def error_code_for(exc) -> str:
    if isinstance(exc, TAXONOMY):
        return exc.default_code
    for klass, code in _FALLBACK_CODES:
        if isinstance(exc, klass):
            return code
    return getattr(exc, 'default_code', None) or 'api_error'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view') if context else None
        logger.exception("unhandled error in %s", type(view).__name__ if view else 'unknown view', exc_info=exc)
        return Response({'ok': False, 'error': {'code': 'internal', 'message': 'internal'}},
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    code = error_code_for(exc)
    error: dict[str, object] = {'code': code}
    if code == 'validation_failed':
        error['message'] = 'validation_failed'
        error['details'] = resp.data
    elif code in _OPAQUE:
        error['message'] = code
    else:
        detail = resp.data.get('detail') if isinstance(resp.data, dict) else resp.data
        error['message'] = str(detail) if detail is not None else code
    if code in _OPAQUE:
        logger.warning("%s denied: %s", code, getattr(exc, 'detail', exc))

    # keep WWW-Authenticate / Retry-After set by DRF
    out = Response({'ok': False, 'error': error}, status=resp.status_code)
    for header in ('WWW-Authenticate', 'Retry-After'):
        if header in resp:
            out[header] = resp[header]
    return out
