from __future__ import annotations

import logging
from typing import Optional

from django.db.models import Q
from rest_framework.exceptions import ValidationError

from clinic.exceptions import ResourceNotFound
from clinic.models import Organization, User
from clinic.permissions import SUPERADMIN, has_role, same_organization
from clinic.services.audit import log_action
from clinic.services.scoping import apply_scope, paginate, resolve_scope

logger = logging.getLogger(__name__)


def list_organizations(principal: User, *, organization_id: Optional[int] = None, q: Optional[str] = None,
                       type: Optional[str] = None, include_inactive: bool = False,
                       page: int = 1, page_size: int = 20):
    scope = resolve_scope(principal, organization_id)
    qs = apply_scope(Organization.objects.all(), scope, org_field='id', owner_field=None)
    # only superadmins see deactivated tenants
    if principal.role != SUPERADMIN or not include_inactive:
        qs = qs.filter(is_active=True)
    if q:
        qs = qs.filter(Q(name__icontains=q) | Q(city__icontains=q))
    if type:
        qs = qs.filter(type=type)
    return paginate(qs.order_by('name'), page, page_size)


def get_organization(principal: User, organization_id: int) -> Organization:
    org = Organization.objects.filter(id=organization_id).first()
    if org is None:
        raise ResourceNotFound()
    same_organization(principal, org.id)
    if not org.is_active and principal.role != SUPERADMIN:
        raise ResourceNotFound()
    return org


def create_organization(principal: User, **fields) -> Organization:
    has_role(principal, {SUPERADMIN})
    if Organization.objects.filter(name__iexact=fields['name']).exists():
        raise ValidationError({'name': ['organization with this name already exists']})
    org = Organization.objects.create(created_by=principal, **fields)
    log_action(user=principal, action='organization_create', object_type='organization', object_id=org.id,
               detail={'name': org.name})
    return org


def set_organization_status(principal: User, org: Organization, *, is_active: Optional[bool] = None,
                            subscription_status: Optional[str] = None) -> Organization:
    """Activate/deactivate a tenant or change its subscription state.

    Members of a deactivated organization are rejected at authentication
    time, so this takes effect on their next request.
    """
    has_role(principal, {SUPERADMIN})
    before = {'isActive': org.is_active, 'subscriptionStatus': org.subscription_status}
    if is_active is not None:
        org.is_active = is_active
    if subscription_status is not None:
        org.subscription_status = subscription_status
    org.save(update_fields=['is_active', 'subscription_status', 'updated_at'])
    log_action(user=principal, action='organization_status', object_type='organization', object_id=org.id,
               detail={'before': before, 'isActive': org.is_active, 'subscriptionStatus': org.subscription_status})
    logger.info("organization %s status: active=%s subscription=%s", org.id, org.is_active, org.subscription_status)
    return org
