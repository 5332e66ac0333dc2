"""
Error taxonomy shared by the services, views and authentication class.

Only ``rest_framework.exceptions`` is imported here: DRF loads the
authentication class, which needs these labels, while it is still
initialising its views. The envelope handler lives in ``clinic.handlers``.
"""
from __future__ import annotations

from rest_framework import exceptions, status


class Unauthenticated(exceptions.NotAuthenticated):
    default_detail = 'unauthenticated'
    default_code = 'unauthenticated'


class InvalidCredentials(exceptions.AuthenticationFailed):
    default_detail = 'invalid_credentials'
    default_code = 'invalid_credentials'


class InvalidToken(exceptions.AuthenticationFailed):
    default_detail = 'invalid_token'
    default_code = 'invalid_token'


class TokenExpired(exceptions.AuthenticationFailed):
    default_detail = 'token_expired'
    default_code = 'token_expired'


class AccountDeactivated(exceptions.AuthenticationFailed):
    default_detail = 'account_deactivated'
    default_code = 'account_deactivated'


class OrganizationDeactivated(exceptions.AuthenticationFailed):
    default_detail = 'organization_deactivated'
    default_code = 'organization_deactivated'


class Forbidden(exceptions.PermissionDenied):
    default_detail = 'forbidden'
    default_code = 'forbidden'


class ResourceNotFound(exceptions.NotFound):
    default_detail = 'not_found'
    default_code = 'not_found'


class Conflict(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'conflict'
    default_code = 'conflict'


TAXONOMY = (
    Unauthenticated, InvalidCredentials, InvalidToken, TokenExpired, AccountDeactivated,
    OrganizationDeactivated, Forbidden, ResourceNotFound, Conflict,
)

