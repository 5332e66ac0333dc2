"""
Identity & session: turn a bearer credential into a principal.

The principal is the ``User`` row itself; callers only rely on ``id``,
``role``, ``organization_id`` and ``is_active``.  Resolution is
read-only and always happens before any policy check.
"""
from __future__ import annotations

from typing import Optional

import jwt
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

from clinic.exceptions import (
    AccountDeactivated,
    InvalidToken,
    OrganizationDeactivated,
    TokenExpired,
    Unauthenticated,
)
from clinic.models import User


def _classify_token_failure(raw: str) -> Exception:
    # PyJWT checks the signature before the claims, so an expiry error
    # means the signature itself was good.
    try:
        jwt.decode(
            raw,
            api_settings.VERIFYING_KEY or api_settings.SIGNING_KEY,
            algorithms=[api_settings.ALGORITHM],
            audience=api_settings.AUDIENCE,
            issuer=api_settings.ISSUER,
            leeway=api_settings.LEEWAY,
        )
    except jwt.ExpiredSignatureError:
        return TokenExpired()
    except jwt.InvalidTokenError:
        return InvalidToken()
    # verified fine by PyJWT but rejected by simplejwt (wrong type, blacklisted)
    return InvalidToken()


def decode_access_token(raw: str) -> AccessToken:
    try:
        return AccessToken(raw)
    except TokenError:
        raise _classify_token_failure(raw)


def check_principal(user: Optional[User]) -> User:
    """Apply the account and organization checks to a loaded user."""
    if user is None:
        raise Unauthenticated()
    if not user.is_active:
        raise AccountDeactivated()
    if user.role in User.STAFF_ROLES and user.organization_id is None:
        # staff without an organization have no tenant to act in
        raise OrganizationDeactivated()
    if user.role != User.ROLE_SUPERADMIN and user.organization_id is not None:
        if not user.organization.is_active:
            raise OrganizationDeactivated()
    return user


def resolve_principal(raw: Optional[str]) -> User:
    if not raw:
        raise Unauthenticated()
    token = decode_access_token(raw)
    user_id = token.get(api_settings.USER_ID_CLAIM)
    if user_id is None:
        raise InvalidToken()
    user = User.objects.select_related('organization').filter(pk=user_id).first()
    return check_principal(user)
