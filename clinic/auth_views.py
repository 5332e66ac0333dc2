"""
Authentication views: registration, login, token refresh, logout and
the current-user profile.

Kept out of ``clinic.authentication`` so that DRF can import the
authentication class during initialisation without loading views.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from django.contrib.auth.models import update_last_login
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.exceptions import AccountDeactivated, InvalidCredentials, InvalidToken
from clinic.models import User
from clinic.serializers.auth import LoginSerializer, LogoutSerializer, RegisterSerializer, user_payload
from clinic.services.audit import log_action
from clinic.services.identity import check_principal
from clinic.services.users import create_account, revoke_refresh_tokens

logger = logging.getLogger(__name__)


def _tokens_for(user: User) -> dict[str, str]:
    refresh = RefreshToken.for_user(user)
    return {'access': str(refresh.access_token), 'refresh': str(refresh)}


def _lookup_login(identifier: str) -> str:
    """Accept either a username or an email address."""
    if '@' in identifier:
        found = User.objects.filter(email__iexact=identifier).values_list('username', flat=True).first()
        if found:
            return found
    return identifier


# ---------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([ScopedRateThrottle])
def register_view(request):
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    user = create_account(
        username=vd['username'],
        email=vd['email'],
        password=vd['password'],
        role=vd['role'],
        organization_id=vd.get('organizationId'),
        first_name=vd['firstName'],
        last_name=vd.get('lastName', ''),
        phone=vd.get('phone', ''),
        date_of_birth=vd.get('dateOfBirth'),
    )
    log_action(user=user, action='register', object_type='user', object_id=user.id,
               detail={'role': user.role, 'ip': request.META.get('REMOTE_ADDR')})
    return Response({'ok': True, **_tokens_for(user), 'user': user_payload(user)}, status=status.HTTP_201_CREATED)

register_view.cls.throttle_scope = 'register'


# ---------------------------------------------------------------------
# Username/password login (role always comes from the stored user)
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([ScopedRateThrottle])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = _lookup_login(s.validated_data['username'])
    password = s.validated_data['password']
    ip = request.META.get('REMOTE_ADDR')

    user = authenticate(request, username=username, password=password)
    if user is None:
        # ModelBackend refuses inactive users; tell them apart from bad passwords
        existing = User.objects.filter(username=username).first()
        if existing is not None and not existing.is_active and existing.check_password(password):
            log_action(user=existing, action='login', object_type='user', object_id=existing.id,
                       detail={'result': 'deactivated', 'ip': ip})
            raise AccountDeactivated()
        log_action(user=None, action='login', object_type='user', object_id=None,
                   detail={'result': 'fail', 'username': username, 'ip': ip})
        raise InvalidCredentials()

    check_principal(user)
    update_last_login(None, user)
    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': ip})
    logger.info("login ok: user=%s role=%s", user.id, user.role)
    return Response({'ok': True, **_tokens_for(user), 'user': user_payload(user)}, status=200)

login_view.cls.throttle_scope = 'login'


# ---------------------------------------------------------------------
# JWT: refresh & logout
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def refresh_view(request):
    """Exchange a refresh token for a new access token.

    The owner is re-checked so a deactivated account cannot keep
    minting access tokens from an old refresh token.
    """
    s = TokenRefreshSerializer(data=request.data)
    raw = request.data.get('refresh')
    if raw:
        try:
            user_id = RefreshToken(raw).get(api_settings.USER_ID_CLAIM)
        except TokenError:
            raise InvalidToken()
        check_principal(User.objects.select_related('organization').filter(pk=user_id).first())
    try:
        s.is_valid(raise_exception=True)
    except TokenError:
        raise InvalidToken()
    return Response({'ok': True, **s.validated_data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Blacklist the given refresh token, or all of the caller's when none is given."""
    s = LogoutSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    refresh = s.validated_data.get('refresh')
    if refresh:
        try:
            token = RefreshToken(refresh)
        except TokenError:
            raise InvalidToken()
        # newer SimpleJWT releases store the claim as a string
        if str(token.get(api_settings.USER_ID_CLAIM)) != str(request.user.pk):
            raise InvalidToken()
        token.blacklist()
        count = 1
    else:
        count = revoke_refresh_tokens(request.user)
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               detail={'blacklisted': count})
    return Response({'ok': True, 'blacklisted': count})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return Response({'ok': True, 'user': user_payload(request.user)})
