from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from clinic.exceptions import Forbidden, ResourceNotFound
from clinic.models import Appointment, Prescription, User
from clinic.permissions import check_record_access, same_organization
from clinic.services.notifications import NotificationDispatcher, notify_prescription_issued
from clinic.services.scoping import apply_scope, paginate, resolve_scope

logger = logging.getLogger(__name__)


def link_to_appointment(prescription: Prescription) -> bool:
    """Second, separate write: point the appointment at its prescription.

    Not atomic with the prescription insert.  When it fails the
    prescription stays and the appointment keeps its old reference.
    """
    try:
        Appointment.objects.filter(id=prescription.appointment_id).update(prescription=prescription)
    except Exception:
        logger.warning("prescription %s created but appointment %s was not linked",
                       prescription.id, prescription.appointment_id, exc_info=True)
        return False
    return True


def create_prescription(doctor: User, *, appointment_id: int, diagnosis: dict[str, Any],
                        medications: list[dict[str, Any]], instructions: Optional[dict[str, Any]] = None,
                        follow_up: Optional[dict[str, Any]] = None, valid_days: Optional[int] = None,
                        dispatcher: Optional[NotificationDispatcher] = None) -> Prescription:
    appt = Appointment.objects.select_related('patient').filter(id=appointment_id).first()
    if appt is None:
        raise ResourceNotFound()
    same_organization(doctor, appt.organization_id)
    if appt.doctor_id != doctor.id:
        raise Forbidden()
    if appt.status in ('cancelled', 'rejected'):
        raise ValidationError({'appointmentId': ['appointment is not active']})

    days = valid_days or settings.PRESCRIPTION_VALID_DAYS
    with transaction.atomic():
        rx = Prescription.objects.create(
            patient_id=appt.patient_id,
            doctor=doctor,
            appointment=appt,
            organization_id=appt.organization_id,
            diagnosis=diagnosis,
            medications=medications,
            instructions=instructions or {},
            follow_up=follow_up or {},
            valid_until=timezone.now() + timedelta(days=days),
        )
    link_to_appointment(rx)
    logger.info("prescription %s issued by %s for appointment %s", rx.prescription_number, doctor.id, appt.id)
    notify_prescription_issued(rx, dispatcher=dispatcher)
    return rx


def get_prescription(principal: User, prescription_id: int) -> Prescription:
    rx = (Prescription.objects.select_related('patient', 'doctor', 'organization', 'appointment')
          .filter(id=prescription_id).first())
    if rx is None:
        raise ResourceNotFound()
    check_record_access(principal, owner_id=rx.patient_id, organization_id=rx.organization_id, doctor_id=rx.doctor_id)
    return rx


def list_prescriptions(principal: User, *, organization_id: Optional[int] = None, status: Optional[str] = None,
                       appointment_id: Optional[int] = None, page: int = 1, page_size: int = 20):
    scope = resolve_scope(principal, organization_id)
    qs = apply_scope(Prescription.objects.select_related('patient', 'doctor', 'organization'), scope)
    if principal.role == User.ROLE_DOCTOR:
        qs = qs.filter(doctor_id=principal.id)
    if status:
        qs = qs.filter(status=status)
    if appointment_id:
        qs = qs.filter(appointment_id=appointment_id)
    return paginate(qs.order_by('-created_at', '-id'), page, page_size)


def expire_stale(now=None) -> int:
    now = now or timezone.now()
    return Prescription.objects.filter(status='active', valid_until__lt=now).update(status='expired')


def expiring_soon(now=None):
    now = now or timezone.now()
    horizon = now + timedelta(days=settings.PRESCRIPTION_EXPIRY_NOTICE_DAYS)
    return (Prescription.objects.select_related('doctor', 'patient')
            .filter(status='active', valid_until__gte=now, valid_until__lte=horizon))
