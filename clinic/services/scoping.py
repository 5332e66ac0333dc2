"""
Multi-tenant scoping.

``resolve_scope`` decides which slice of the data a principal may see;
``apply_scope`` is the only place an organization filter is put on a
queryset.  List, detail and mutation paths all go through here.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.db.models import QuerySet

from clinic.exceptions import Forbidden
from clinic.models import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantScope:
    organization_id: Optional[int] = None
    owner_id: Optional[int] = None

    @property
    def is_global(self) -> bool:
        return self.organization_id is None and self.owner_id is None


def resolve_scope(principal, requested_org_id: Optional[int] = None) -> TenantScope:
    role = principal.role
    if role == User.ROLE_SUPERADMIN:
        return TenantScope(organization_id=requested_org_id)
    if role in User.STAFF_ROLES:
        own = principal.organization_id
        if own is None:
            logger.warning("staff user %s has no organization", principal.id)
            raise Forbidden()
        if requested_org_id is not None and requested_org_id != own:
            logger.warning("user %s asked for organization %s outside %s", principal.id, requested_org_id, own)
            raise Forbidden()
        return TenantScope(organization_id=own)
    if role == User.ROLE_PATIENT:
        # a requested organization only narrows the patient's own records
        return TenantScope(owner_id=principal.id, organization_id=requested_org_id)
    raise Forbidden()


def apply_scope(qs: QuerySet, scope: TenantScope, *, org_field: str = 'organization',
                owner_field: Optional[str] = 'patient') -> QuerySet:
    if scope.organization_id is not None:
        qs = qs.filter(**{f"{org_field}_id" if org_field != 'id' else 'id': scope.organization_id})
    if scope.owner_id is not None and owner_field:
        qs = qs.filter(**{f"{owner_field}_id": scope.owner_id})
    return qs


def paginate(qs: QuerySet, page: int = 1, page_size: int = 20):
    total = qs.count()
    start = (max(page, 1) - 1) * page_size
    return list(qs[start:start + page_size]), total
