"""
Authorization policy: role, ownership and organization checks.

The predicates raise ``Forbidden`` on denial and return ``None``
otherwise, so they compose by simply calling them in sequence.  The
DRF permission classes cover the role stage declared on each view;
object-level checks run inside the views once the record is loaded.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from rest_framework.permissions import BasePermission

from clinic.exceptions import Forbidden
from clinic.models import User

logger = logging.getLogger(__name__)

SUPERADMIN = User.ROLE_SUPERADMIN
ADMIN = User.ROLE_ADMIN
DOCTOR = User.ROLE_DOCTOR
PATIENT = User.ROLE_PATIENT

STAFF_ROLES = frozenset({SUPERADMIN, ADMIN, DOCTOR})
ADMIN_ROLES = frozenset({SUPERADMIN, ADMIN})


def _deny(principal, reason: str):
    logger.warning("forbidden: user=%s role=%s %s", getattr(principal, 'id', None), getattr(principal, 'role', None), reason)
    raise Forbidden()


def has_role(principal, allowed: Iterable[str]) -> None:
    if getattr(principal, 'role', None) not in set(allowed):
        _deny(principal, "role not allowed")


def is_owner_or_role(principal, owner_id: Optional[int], allowed: Iterable[str]) -> None:
    if owner_id is not None and principal.id == owner_id:
        return
    if principal.role in set(allowed):
        return
    _deny(principal, f"not owner of {owner_id}")


def same_organization(principal, resource_org_id: Optional[int]) -> None:
    """Superadmins and patients pass; staff only inside their own organization.

    Patients are not organization-bound, their access is decided by
    ownership instead.
    """
    if principal.role in (SUPERADMIN, PATIENT):
        return
    if principal.organization_id is None or principal.organization_id != resource_org_id:
        _deny(principal, f"organization mismatch ({principal.organization_id} != {resource_org_id})")


def check_record_access(principal, *, owner_id: Optional[int], organization_id: Optional[int],
                        doctor_id: Optional[int] = None) -> None:
    """Owner patient, same-organization staff, or superadmin.

    Records that name a treating doctor (appointments, prescriptions) are
    further limited to that doctor among doctors; admins still see the
    whole organization.
    """
    is_owner_or_role(principal, owner_id, STAFF_ROLES)
    same_organization(principal, organization_id)
    if doctor_id is not None and principal.role == DOCTOR and principal.id != doctor_id:
        _deny(principal, f"not the treating doctor ({doctor_id})")


class HasRole(BasePermission):
    """Role gate for function-based views; build concrete classes with ``of``."""
    roles: frozenset = frozenset()
    message = 'forbidden'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, 'user', None)
        return bool(user and user.is_authenticated and getattr(user, 'role', None) in self.roles)

    @classmethod
    def of(cls, *roles: str):
        return type(f"HasRole_{'_'.join(roles)}", (cls,), {'roles': frozenset(roles)})


IsSuperadmin = HasRole.of(SUPERADMIN)
IsStaff = HasRole.of(SUPERADMIN, ADMIN, DOCTOR)
IsAdminOrSuper = HasRole.of(SUPERADMIN, ADMIN)
