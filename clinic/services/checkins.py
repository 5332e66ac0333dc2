"""
Self-check-in lifecycle.

The risk engine in ``clinic.services.risk`` is pure; this module decides
when it runs, keeps the organization pinned to the appointment's, and
raises the critical alert exactly once per save that produces a
critical flagged record.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Mapping, Optional

import bleach
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, Q
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from clinic.exceptions import Conflict, Forbidden, ResourceNotFound
from clinic.models import Appointment, SelfCheckIn, User
from clinic.permissions import ADMIN_ROLES, STAFF_ROLES, check_record_access, has_role, is_owner_or_role, same_organization
from clinic.services import risk
from clinic.services.audit import log_action
from clinic.services.notifications import NotificationDispatcher, get_dispatcher, notify_critical_checkin
from clinic.services.scoping import apply_scope, paginate, resolve_scope

logger = logging.getLogger(__name__)

INTAKE_FIELDS = ('basic_info', 'vital_signs', 'covid_screening', 'mental_health', 'lifestyle', 'emergency_info')
EDITABLE_FIELDS = INTAKE_FIELDS + ('additional_info', 'time_spent', 'consent_given', 'data_sharing_consent', 'status')
CLIENT_STATUSES = (SelfCheckIn.STATUS_IN_PROGRESS, SelfCheckIn.STATUS_COMPLETED)
FREE_TEXT = {
    'additional_info': ('concerns', 'questionsForDoctor', 'additionalNotes'),
    'emergency_info': ('emergencyNotes',),
    'mental_health': ('mentalHealthNotes',),
    'lifestyle': ('stressNotes',),
    'covid_screening': ('exposureDetails',),
}


def _clean_text(value: Optional[str]) -> str:
    return bleach.clean((value or '').strip(), tags=[], strip=True)


def _sanitize(field: str, value: Any) -> Any:
    keys = FREE_TEXT.get(field)
    if not keys or not isinstance(value, Mapping):
        return value
    out = dict(value)
    for key in keys:
        if isinstance(out.get(key), str):
            out[key] = _clean_text(out[key])
    return out


def _reassess(checkin: SelfCheckIn, changed: set[str]) -> None:
    """Refresh the stored assessment for the sections that changed.

    The flag is sticky: a rescore can raise it but never lowers it.
    """
    intake = risk.Intake.from_record(checkin)
    if risk.needs_rescore(changed):
        result = risk.assess(intake)
        checkin.risk_score = result.risk_score
        checkin.risk_level = result.risk_level
        checkin.recommendations = result.recommendations
        checkin.flagged_for_review = checkin.flagged_for_review or result.flagged_for_review
        checkin.completion_percentage = result.completion_percentage
    elif risk.needs_recount(changed):
        checkin.completion_percentage = risk.completion_percentage(intake)
    if checkin.flagged_for_review:
        checkin.status = SelfCheckIn.STATUS_FLAGGED


def _after_save(checkin: SelfCheckIn, was_critical: bool, dispatcher: Optional[NotificationDispatcher]) -> None:
    if was_critical or not checkin.is_critical_and_flagged:
        return
    logger.warning("critical self-check-in %s for appointment %s", checkin.id, checkin.appointment_id)
    notify_critical_checkin(checkin, dispatcher=dispatcher or get_dispatcher())


def _load(checkin_id: int) -> SelfCheckIn:
    checkin = (SelfCheckIn.objects
               .select_related('patient', 'appointment', 'appointment__doctor', 'organization', 'assessed_by')
               .filter(id=checkin_id).first())
    if checkin is None:
        raise ResourceNotFound()
    return checkin


def get_checkin(principal: User, checkin_id: int) -> SelfCheckIn:
    checkin = _load(checkin_id)
    check_record_access(principal, owner_id=checkin.patient_id, organization_id=checkin.organization_id)
    return checkin


def create_checkin(patient: User, *, appointment_id: int, data: Mapping[str, Any],
                   dispatcher: Optional[NotificationDispatcher] = None) -> SelfCheckIn:
    appointment = Appointment.objects.select_related('doctor').filter(id=appointment_id).first()
    if appointment is None:
        raise ResourceNotFound()
    # patients only, and only for their own appointment
    is_owner_or_role(patient, appointment.patient_id, ())
    if appointment.status in ('cancelled', 'rejected', 'no-show'):
        raise ValidationError({'appointmentId': ['appointment is not active']})
    if SelfCheckIn.objects.filter(appointment_id=appointment.id).exists():
        raise Conflict('self-check-in already exists for this appointment')

    checkin = SelfCheckIn(
        patient=patient,
        appointment=appointment,
        organization_id=appointment.organization_id,
    )
    for field in EDITABLE_FIELDS:
        if field in data:
            setattr(checkin, field, _sanitize(field, data[field]))
    if checkin.status not in CLIENT_STATUSES:
        checkin.status = SelfCheckIn.STATUS_IN_PROGRESS
    _reassess(checkin, set(INTAKE_FIELDS))
    try:
        with transaction.atomic():
            checkin.save()
    except IntegrityError:
        # lost a race with a concurrent submission for the same appointment
        raise Conflict('self-check-in already exists for this appointment')
    logger.info("self-check-in %s created: appt=%s risk=%s score=%s",
                checkin.id, appointment.id, checkin.risk_level, checkin.risk_score)
    _after_save(checkin, False, dispatcher)
    return checkin


def update_checkin(principal: User, checkin: SelfCheckIn, data: Mapping[str, Any],
                   dispatcher: Optional[NotificationDispatcher] = None) -> SelfCheckIn:
    """Apply a partial update.

    Patient, appointment, organization and the stored assessment are not
    writable here; intake changes flow through the risk engine instead.
    """
    check_record_access(principal, owner_id=checkin.patient_id, organization_id=checkin.organization_id)
    if 'status' in data and data['status'] not in CLIENT_STATUSES:
        raise ValidationError({'status': [f"must be one of {', '.join(CLIENT_STATUSES)}"]})

    changed: set[str] = set()
    for field in EDITABLE_FIELDS:
        if field not in data:
            continue
        value = _sanitize(field, data[field])
        if getattr(checkin, field) != value:
            setattr(checkin, field, value)
            changed.add(field)
    if not changed:
        return checkin

    was_critical = checkin.is_critical_and_flagged
    _reassess(checkin, changed)
    checkin.save()
    logger.info("self-check-in %s updated by %s: %s", checkin.id, principal.id, ','.join(sorted(changed)))
    _after_save(checkin, was_critical, dispatcher)
    return checkin


def review_checkin(reviewer: User, checkin: SelfCheckIn, *, review_notes: str = '',
                   risk_level: Optional[str] = None) -> SelfCheckIn:
    """Clinician sign-off: the only path that clears ``flagged_for_review``."""
    has_role(reviewer, STAFF_ROLES)
    same_organization(reviewer, checkin.organization_id)
    previous = {'riskLevel': checkin.risk_level, 'flagged': checkin.flagged_for_review}
    checkin.flagged_for_review = False
    checkin.status = SelfCheckIn.STATUS_REVIEWED
    checkin.review_notes = _clean_text(review_notes)
    checkin.assessed_by = reviewer
    checkin.assessment_date = timezone.now()
    if risk_level:
        checkin.risk_level = risk_level
    checkin.save(update_fields=[
        'flagged_for_review', 'status', 'review_notes', 'assessed_by', 'assessment_date', 'risk_level', 'updated_at',
    ])
    log_action(user=reviewer, action='checkin_review', object_type='self_checkin', object_id=checkin.id,
               detail={'before': previous, 'riskLevel': checkin.risk_level})
    return checkin


def delete_checkin(principal: User, checkin: SelfCheckIn) -> None:
    check_record_access(principal, owner_id=checkin.patient_id, organization_id=checkin.organization_id)
    if principal.role not in ADMIN_ROLES and principal.id != checkin.patient_id:
        raise Forbidden()
    log_action(user=principal, action='checkin_delete', object_type='self_checkin', object_id=checkin.id,
               detail={'appointmentId': checkin.appointment_id})
    checkin.delete()


def list_checkins(principal: User, *, organization_id: Optional[int] = None, status: Optional[str] = None,
                  risk_level: Optional[str] = None, flagged: Optional[bool] = None, patient_id: Optional[int] = None,
                  date_from=None, date_to=None, page: int = 1, page_size: int = 20):
    scope = resolve_scope(principal, organization_id)
    qs = apply_scope(SelfCheckIn.objects.select_related('patient', 'appointment', 'organization'), scope)
    if status:
        qs = qs.filter(status=status)
    if risk_level:
        qs = qs.filter(risk_level=risk_level)
    if flagged is not None:
        qs = qs.filter(flagged_for_review=flagged)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if date_from:
        qs = qs.filter(check_in_date__date__gte=date_from)
    if date_to:
        qs = qs.filter(check_in_date__date__lte=date_to)
    return paginate(qs.order_by('-check_in_date', '-id'), page, page_size)


def checkin_stats(principal: User, *, organization_id: Optional[int] = None, days: int = 30) -> dict[str, Any]:
    has_role(principal, STAFF_ROLES)
    scope = resolve_scope(principal, organization_id)
    qs = apply_scope(SelfCheckIn.objects.all(), scope)
    since = timezone.now() - timedelta(days=days)
    agg = qs.aggregate(
        total=Count('id'),
        flagged=Count('id', filter=Q(flagged_for_review=True)),
        recent=Count('id', filter=Q(check_in_date__gte=since)),
        avg_completion=Avg('completion_percentage'),
    )
    by_risk = {level: 0 for level, _ in SelfCheckIn.RISK_CHOICES}
    for row in qs.values('risk_level').annotate(n=Count('id')):
        by_risk[row['risk_level']] = row['n']
    by_status = {value: 0 for value, _ in SelfCheckIn.STATUS_CHOICES}
    for row in qs.values('status').annotate(n=Count('id')):
        by_status[row['status']] = row['n']
    return {
        'total': agg['total'],
        'flaggedForReview': agg['flagged'],
        'recent': agg['recent'],
        'periodDays': days,
        'averageCompletion': round(agg['avg_completion'] or 0, 1),
        'byRiskLevel': by_risk,
        'byStatus': by_status,
    }
