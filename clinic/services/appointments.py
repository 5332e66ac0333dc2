from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from typing import Any, Mapping, Optional

import bleach
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from clinic.exceptions import ResourceNotFound
from clinic.models import Appointment, Organization, User
from clinic.permissions import DOCTOR, PATIENT, check_record_access
from clinic.services.notifications import NotificationDispatcher, notify_appointment_booked, notify_appointment_status
from clinic.services.scoping import apply_scope, paginate, resolve_scope

logger = logging.getLogger(__name__)

PATIENT_EDITABLE = ('appointment_date', 'appointment_time', 'reason', 'notes')
STAFF_EDITABLE = ('appointment_date', 'appointment_time', 'reason', 'notes', 'status', 'rejection_reason', 'duration')
FINAL_STATUSES = ('completed', 'cancelled', 'rejected')

SLOT_DAY_START = time(9, 0)
SLOT_DAY_END = time(17, 0)
SLOT_MINUTES = 30


def _overlaps(doctor_id: int, day, start, duration: int, *, exclude_id: Optional[int] = None) -> bool:
    begin = datetime.combine(day, start)
    end = begin + timedelta(minutes=duration)
    qs = Appointment.objects.filter(doctor_id=doctor_id, appointment_date=day, status__in=Appointment.ACTIVE_STATUSES)
    if exclude_id:
        qs = qs.exclude(id=exclude_id)
    for other in qs.only('appointment_time', 'duration'):
        o_begin = datetime.combine(day, other.appointment_time)
        o_end = o_begin + timedelta(minutes=other.duration)
        if begin < o_end and o_begin < end:
            return True
    return False


def create_appointment(patient: User, *, doctor_id: int, appointment_date, appointment_time, reason: str,
                       organization_id: Optional[int] = None, duration: int = 30, type: str = 'consultation',
                       notes: str = '', dispatcher: Optional[NotificationDispatcher] = None) -> Appointment:
    doctor = (User.objects.select_related('organization')
              .filter(id=doctor_id, role=DOCTOR, is_active=True).first())
    if doctor is None or doctor.organization_id is None:
        raise ValidationError({'doctorId': ['doctor not found or inactive']})
    if organization_id is not None and organization_id != doctor.organization_id:
        raise ValidationError({'organizationId': ['doctor does not belong to this organization']})
    org: Organization = doctor.organization
    if not org.is_active:
        raise ValidationError({'organizationId': ['organization is not active']})
    if _overlaps(doctor.id, appointment_date, appointment_time, duration):
        raise ValidationError({'appointmentTime': ['doctor has a conflicting appointment at this time']})

    with transaction.atomic():
        appt = Appointment.objects.create(
            patient=patient,
            doctor=doctor,
            organization=org,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            duration=duration,
            type=type,
            reason=bleach.clean(reason.strip(), strip=True),
            notes=bleach.clean((notes or '').strip(), strip=True),
        )
    logger.info("appointment %s booked: patient=%s doctor=%s org=%s", appt.id, patient.id, doctor.id, org.id)
    notify_appointment_booked(appt, dispatcher=dispatcher)
    return appt


def get_appointment(principal: User, appointment_id: int) -> Appointment:
    appt = (Appointment.objects.select_related('patient', 'doctor', 'organization')
            .filter(id=appointment_id).first())
    if appt is None:
        raise ResourceNotFound()
    _check_access(principal, appt)
    return appt


def _check_access(principal: User, appt: Appointment) -> None:
    # doctors see and act on their own bookings only
    check_record_access(principal, owner_id=appt.patient_id, organization_id=appt.organization_id,
                        doctor_id=appt.doctor_id)


def update_appointment(principal: User, appt: Appointment, data: Mapping[str, Any],
                       dispatcher: Optional[NotificationDispatcher] = None) -> Appointment:
    _check_access(principal, appt)
    allowed = PATIENT_EDITABLE if principal.role == PATIENT else STAFF_EDITABLE
    blocked = sorted(k for k in data if k not in allowed)
    if blocked:
        raise ValidationError({k: ['not editable'] for k in blocked})
    if appt.status in FINAL_STATUSES:
        raise ValidationError({'status': [f"appointment is already {appt.status}"]})

    previous_status = appt.status
    for field, value in data.items():
        if field in ('reason', 'notes', 'rejection_reason') and isinstance(value, str):
            value = bleach.clean(value.strip(), strip=True)
        setattr(appt, field, value)

    if {'appointment_date', 'appointment_time', 'duration'} & set(data):
        if _overlaps(appt.doctor_id, appt.appointment_date, appt.appointment_time, appt.duration, exclude_id=appt.id):
            raise ValidationError({'appointmentTime': ['doctor has a conflicting appointment at this time']})
    if appt.status == 'in-progress' and previous_status != 'in-progress':
        appt.check_in_time = timezone.now()
    if appt.status == 'completed' and previous_status != 'completed':
        appt.check_out_time = timezone.now()
    appt.save()

    if appt.status != previous_status:
        logger.info("appointment %s: %s -> %s by %s", appt.id, previous_status, appt.status, principal.id)
        notify_appointment_status(appt, actor=principal, reason=appt.rejection_reason, dispatcher=dispatcher)
    return appt


def cancel_appointment(principal: User, appt: Appointment,
                       dispatcher: Optional[NotificationDispatcher] = None) -> Appointment:
    _check_access(principal, appt)
    if appt.status in ('completed', 'cancelled'):
        raise ValidationError({'status': ['cannot cancel a completed or already cancelled appointment']})
    appt.status = 'cancelled'
    appt.save(update_fields=['status', 'updated_at'])
    logger.info("appointment %s cancelled by %s", appt.id, principal.id)
    notify_appointment_status(appt, actor=principal, dispatcher=dispatcher)
    return appt


def list_appointments(principal: User, *, organization_id: Optional[int] = None, status: Optional[str] = None,
                      doctor_id: Optional[int] = None, date_from=None, date_to=None,
                      page: int = 1, page_size: int = 20):
    scope = resolve_scope(principal, organization_id)
    qs = apply_scope(Appointment.objects.select_related('patient', 'doctor', 'organization'), scope)
    if principal.role == DOCTOR:
        qs = qs.filter(doctor_id=principal.id)
    if status:
        qs = qs.filter(status=status)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    if date_from:
        qs = qs.filter(appointment_date__gte=date_from)
    if date_to:
        qs = qs.filter(appointment_date__lte=date_to)
    return paginate(qs.order_by('-appointment_date', '-appointment_time', '-id'), page, page_size)


def due_for_reminder(day=None):
    """Active appointments tomorrow that have not been reminded yet."""
    day = day or (timezone.localdate() + timedelta(days=1))
    return (Appointment.objects.select_related('patient', 'doctor', 'organization')
            .filter(appointment_date=day, status__in=('scheduled', 'confirmed', 'pending'), reminder_sent=False))


def available_slots(principal: User, doctor_id: int, day) -> dict:
    """Free half-hour slots between ``SLOT_DAY_START`` and ``SLOT_DAY_END``.

    A slot is taken when any part of it overlaps an active appointment,
    the same rule booking applies.
    """
    doctor = (User.objects.select_related('organization')
              .filter(id=doctor_id, role=DOCTOR, is_active=True).first())
    if doctor is None or doctor.organization_id is None or not doctor.organization.is_active:
        raise ResourceNotFound()
    resolve_scope(principal, doctor.organization_id)

    booked = []
    for appt in (Appointment.objects.filter(doctor_id=doctor.id, appointment_date=day,
                                            status__in=Appointment.ACTIVE_STATUSES)
                 .only('appointment_time', 'duration')):
        begin = datetime.combine(day, appt.appointment_time)
        booked.append((begin, begin + timedelta(minutes=appt.duration)))

    slots = []
    cursor = datetime.combine(day, SLOT_DAY_START)
    close = datetime.combine(day, SLOT_DAY_END)
    step = timedelta(minutes=SLOT_MINUTES)
    while cursor < close:
        if not any(cursor < end and begin < cursor + step for begin, end in booked):
            slots.append(cursor.strftime('%H:%M'))
        cursor += step
    return {'doctor': doctor, 'date': day, 'slots': slots}
