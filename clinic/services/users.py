from __future__ import annotations

import logging
from typing import Optional

from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Q
from rest_framework.exceptions import ValidationError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken

from clinic.exceptions import Forbidden, ResourceNotFound
from clinic.models import Organization, User
from clinic.permissions import ADMIN, ADMIN_ROLES, DOCTOR, PATIENT, SUPERADMIN, has_role, same_organization
from clinic.services.audit import log_action
from clinic.services.scoping import paginate, resolve_scope

logger = logging.getLogger(__name__)

PUBLIC_ROLES = (PATIENT, DOCTOR, ADMIN)


def _check_password(password: str, user: Optional[User] = None) -> None:
    try:
        validate_password(password, user=user)
    except DjangoValidationError as e:
        raise ValidationError({'password': e.messages})


def _active_organization(organization_id: Optional[int]) -> Organization:
    org = Organization.objects.filter(id=organization_id).first() if organization_id else None
    if org is None:
        raise ValidationError({'organizationId': ['organization is required for staff accounts']})
    if not org.is_active:
        raise ValidationError({'organizationId': ['organization is not active']})
    return org


def create_account(*, username: str, email: str, password: str, role: str = PATIENT,
                   organization_id: Optional[int] = None, first_name: str = '', last_name: str = '',
                   phone: str = '', date_of_birth=None) -> User:
    """Create a user. Staff must join exactly one active organization; patients join none."""
    if role not in PUBLIC_ROLES:
        raise ValidationError({'role': ['invalid role']})
    if User.objects.filter(Q(username__iexact=username) | Q(email__iexact=email)).exists():
        raise ValidationError({'email': ['user already exists']})
    org = _active_organization(organization_id) if role in User.STAFF_ROLES else None
    user = User(
        username=username, email=email.lower(), role=role, organization=org,
        first_name=first_name, last_name=last_name, phone=phone, date_of_birth=date_of_birth,
    )
    _check_password(password, user)
    user.set_password(password)
    with transaction.atomic():
        user.save()
    logger.info("account %s created (role=%s org=%s)", user.id, role, getattr(org, 'id', None))
    return user


def create_member(principal: User, **fields) -> User:
    """Staff-side user creation: admins may add doctors to their own organization."""
    has_role(principal, ADMIN_ROLES)
    if principal.role == ADMIN:
        if fields.get('role') != DOCTOR:
            raise Forbidden()
        fields['organization_id'] = principal.organization_id
    user = create_account(**fields)
    log_action(user=principal, action='user_create', object_type='user', object_id=user.id,
               detail={'role': user.role, 'organizationId': user.organization_id})
    return user


def list_users(principal: User, *, organization_id: Optional[int] = None, role: Optional[str] = None,
               q: Optional[str] = None, include_inactive: bool = False, page: int = 1, page_size: int = 20):
    has_role(principal, User.STAFF_ROLES | {SUPERADMIN})
    scope = resolve_scope(principal, organization_id)
    qs = User.objects.select_related('organization')
    if scope.organization_id is not None:
        if role == PATIENT:
            # patients belong to no organization; scope them through their bookings
            qs = qs.filter(role=PATIENT, patient_appointments__organization_id=scope.organization_id).distinct()
        else:
            qs = qs.filter(organization_id=scope.organization_id)
    if role:
        qs = qs.filter(role=role)
    if not include_inactive:
        qs = qs.filter(is_active=True)
    if q:
        qs = qs.filter(Q(username__icontains=q) | Q(first_name__icontains=q) | Q(last_name__icontains=q) | Q(email__icontains=q))
    return paginate(qs.order_by('id'), page, page_size)


def get_user(principal: User, user_id: int) -> User:
    user = User.objects.select_related('organization').filter(id=user_id).first()
    if user is None:
        raise ResourceNotFound()
    if principal.id == user.id:
        return user
    has_role(principal, User.STAFF_ROLES | {SUPERADMIN})
    if user.role != PATIENT:
        same_organization(principal, user.organization_id)
    elif principal.role != SUPERADMIN and not user.patient_appointments.filter(
            organization_id=principal.organization_id).exists():
        raise Forbidden()
    return user


def revoke_refresh_tokens(user: User) -> int:
    count = 0
    for token in OutstandingToken.objects.filter(user=user):
        _, created = BlacklistedToken.objects.get_or_create(token=token)
        count += int(created)
    return count


def deactivate_user(principal: User, target: User) -> User:
    """Soft-delete: clear ``is_active`` and revoke outstanding refresh tokens."""
    has_role(principal, ADMIN_ROLES)
    if target.id == principal.id:
        raise ValidationError({'id': ['cannot deactivate yourself']})
    if principal.role == ADMIN:
        if target.role not in (DOCTOR, ADMIN):
            raise Forbidden()
        same_organization(principal, target.organization_id)
    if target.is_active:
        target.is_active = False
        target.save(update_fields=['is_active'])
    revoked = revoke_refresh_tokens(target)
    log_action(user=principal, action='user_deactivate', object_type='user', object_id=target.id,
               detail={'role': target.role, 'revokedTokens': revoked})
    logger.info("user %s deactivated by %s", target.id, principal.id)
    return target
