"""
Notification dispatch and inbox operations.

Domain services never talk to the channel layer directly: they hand a
``NotificationEvent`` to a ``NotificationDispatcher``, which persists it
and pushes it to the recipient's ``user.<id>`` group.  The dispatcher is
passed in by the caller (``get_dispatcher()`` by default), so tests can
record events without any transport.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from clinic.exceptions import ResourceNotFound
from clinic.models import Notification, User

logger = logging.getLogger(__name__)


def user_group(user_id: int) -> str:
    return f"user.{user_id}"


@dataclass
class NotificationEvent:
    recipient_id: int
    type: str
    title: str
    message: str
    category: str
    priority: str = 'medium'
    data: dict[str, Any] = field(default_factory=dict)
    organization_id: Optional[int] = None
    sender_id: Optional[int] = None
    action_required: bool = False
    action_url: str = ''
    action_text: str = ''
    expires_at: Optional[datetime] = None


def serialize_notification(n: Notification) -> dict[str, Any]:
    return {
        'id': n.id,
        'type': n.type,
        'title': n.title,
        'message': n.message,
        'data': n.data,
        'priority': n.priority,
        'category': n.category,
        'isRead': n.is_read,
        'readAt': n.read_at.isoformat() if n.read_at else None,
        'actionRequired': n.action_required,
        'actionUrl': n.action_url or None,
        'actionText': n.action_text or None,
        'organizationId': n.organization_id,
        'senderId': n.sender_id,
        'expiresAt': n.expires_at.isoformat() if n.expires_at else None,
        'createdAt': n.created_at.isoformat() if n.created_at else None,
    }


def _live(qs):
    return qs.filter(Q(expires_at__isnull=True) | Q(expires_at__gt=timezone.now()))


def unread_count(user_id: int) -> int:
    return _live(Notification.objects.filter(recipient_id=user_id, is_read=False)).count()


class NotificationDispatcher:
    """Persist a notification, then push it and the new unread count.

    A failed push is logged and swallowed: the row is already stored and
    the client picks it up on its next poll.
    """

    def __init__(self, channel_layer=None):
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer()
        return self._channel_layer

    def dispatch(self, event: NotificationEvent) -> Notification:
        notification = Notification.objects.create(
            recipient_id=event.recipient_id,
            sender_id=event.sender_id,
            organization_id=event.organization_id,
            type=event.type,
            title=event.title,
            message=event.message,
            data=event.data,
            priority=event.priority,
            category=event.category,
            action_required=event.action_required,
            action_url=event.action_url,
            action_text=event.action_text,
            expires_at=event.expires_at,
        )
        logger.info("notification %s (%s, %s) -> user %s", notification.id, event.type, event.priority, event.recipient_id)
        self.push(notification)
        return notification

    def push(self, notification: Notification) -> None:
        self._send(notification.recipient_id, {
            'type': 'notification.push',
            'notification': serialize_notification(notification),
        })
        self.push_unread_count(notification.recipient_id)

    def push_unread_count(self, user_id: int) -> None:
        self._send(user_id, {'type': 'notification.unread', 'count': unread_count(user_id)})

    def _send(self, user_id: int, payload: dict[str, Any]) -> None:
        layer = self.channel_layer
        if layer is None:
            return
        try:
            async_to_sync(layer.group_send)(user_group(user_id), payload)
        except Exception:
            logger.warning("realtime push to user %s failed", user_id, exc_info=True)


_default_dispatcher: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
    global _default_dispatcher
    if _default_dispatcher is None:
        _default_dispatcher = NotificationDispatcher()
    return _default_dispatcher


def safe_dispatch(dispatcher: NotificationDispatcher, event: NotificationEvent) -> Optional[Notification]:
    """Dispatch without letting a failure reach the caller's write path."""
    try:
        return dispatcher.dispatch(event)
    except Exception:
        logger.exception("notification dispatch failed: type=%s recipient=%s", event.type, event.recipient_id)
        return None


# ---------------------------------------------------------------------
# Inbox
# ---------------------------------------------------------------------
def list_notifications(user, *, page: int = 1, limit: int = 20, unread_only: bool = False,
                       category: Optional[str] = None, type: Optional[str] = None):
    limit = max(1, min(limit, settings.NOTIFICATION_PAGE_MAX))
    qs = _live(Notification.objects.filter(recipient=user))
    if unread_only:
        qs = qs.filter(is_read=False)
    if category:
        qs = qs.filter(category=category)
    if type:
        qs = qs.filter(type=type)
    total = qs.count()
    start = (page - 1) * limit
    items = list(qs.order_by('-created_at', '-id')[start:start + limit])
    return items, total


def _own(user, notification_id: int) -> Notification:
    n = Notification.objects.filter(id=notification_id, recipient=user).first()
    if n is None:
        raise ResourceNotFound()
    return n


def mark_read(user, notification_id: int, *, dispatcher: Optional[NotificationDispatcher] = None) -> Notification:
    n = _own(user, notification_id)
    if not n.is_read:
        n.is_read = True
        n.read_at = timezone.now()
        n.save(update_fields=['is_read', 'read_at'])
        (dispatcher or get_dispatcher()).push_unread_count(user.id)
    return n


def mark_all_read(user, *, dispatcher: Optional[NotificationDispatcher] = None) -> int:
    updated = Notification.objects.filter(recipient=user, is_read=False).update(is_read=True, read_at=timezone.now())
    if updated:
        (dispatcher or get_dispatcher()).push_unread_count(user.id)
    return updated


def delete_notification(user, notification_id: int, *, dispatcher: Optional[NotificationDispatcher] = None) -> None:
    n = _own(user, notification_id)
    was_unread = not n.is_read
    n.delete()
    if was_unread:
        (dispatcher or get_dispatcher()).push_unread_count(user.id)


def cleanup_expired() -> int:
    deleted, _ = Notification.objects.filter(expires_at__lte=timezone.now()).delete()
    return deleted


# ---------------------------------------------------------------------
# Domain events
# ---------------------------------------------------------------------
def _when(appointment) -> str:
    return f"{appointment.appointment_date:%m/%d/%Y} at {appointment.appointment_time:%H:%M}"


def notify_appointment_booked(appointment, *, dispatcher: Optional[NotificationDispatcher] = None) -> None:
    dispatcher = dispatcher or get_dispatcher()
    patient, doctor, org = appointment.patient, appointment.doctor, appointment.organization
    meta = {'appointmentDate': str(appointment.appointment_date), 'appointmentTime': f"{appointment.appointment_time:%H:%M}"}
    safe_dispatch(dispatcher, NotificationEvent(
        recipient_id=doctor.id,
        organization_id=org.id,
        sender_id=patient.id,
        type='appointment_booked',
        title='New Appointment Booked',
        message=f"{patient.name} has booked an appointment for {_when(appointment)}",
        data={'appointmentId': appointment.id, 'metadata': {**meta, 'patientName': patient.name}},
        category='appointment',
        action_required=True,
        action_url='/appointment-management',
        action_text='Review Appointment',
    ))
    safe_dispatch(dispatcher, NotificationEvent(
        recipient_id=patient.id,
        organization_id=org.id,
        type='appointment_booked',
        title='Appointment Booked Successfully',
        message=f"Your appointment with Dr. {doctor.name} at {org.name} has been booked for {_when(appointment)}",
        data={'appointmentId': appointment.id, 'metadata': {**meta, 'doctorName': doctor.name, 'organizationName': org.name}},
        category='appointment',
        action_url=f"/appointments/{appointment.id}",
        action_text='View Appointment',
    ))


def notify_appointment_status(appointment, *, actor, reason: str = '',
                              dispatcher: Optional[NotificationDispatcher] = None) -> None:
    """Tell the other party about a confirmation, rejection or cancellation."""
    dispatcher = dispatcher or get_dispatcher()
    doctor, org = appointment.doctor, appointment.organization
    status = appointment.status
    if status == 'confirmed':
        event = NotificationEvent(
            recipient_id=appointment.patient_id, type='appointment_accepted', title='Appointment Confirmed',
            message=f"Your appointment with Dr. {doctor.name} at {org.name} has been confirmed for {_when(appointment)}",
            priority='high', category='appointment',
            action_url=f"/appointments/{appointment.id}", action_text='View Appointment',
        )
    elif status == 'rejected':
        event = NotificationEvent(
            recipient_id=appointment.patient_id, type='appointment_rejected', title='Appointment Not Available',
            message=f"Your appointment with Dr. {doctor.name} at {org.name} could not be confirmed. Reason: {reason or 'not given'}",
            priority='high', category='appointment', action_required=True,
            action_url='/book-appointment', action_text='Book New Appointment',
        )
    elif status == 'cancelled':
        by_patient = actor.id == appointment.patient_id
        event = NotificationEvent(
            recipient_id=appointment.doctor_id if by_patient else appointment.patient_id,
            type='appointment_cancelled', title='Appointment Cancelled',
            message=f"{actor.name} has cancelled the appointment scheduled for {_when(appointment)}",
            category='appointment',
            action_url=f"/appointments/{appointment.id}", action_text='View Details',
        )
    else:
        return
    event.organization_id = org.id
    event.sender_id = actor.id
    event.data = {'appointmentId': appointment.id, 'metadata': {'reason': reason} if reason else {}}
    safe_dispatch(dispatcher, event)


def notify_appointment_reminder(appointment, *, dispatcher: Optional[NotificationDispatcher] = None) -> None:
    dispatcher = dispatcher or get_dispatcher()
    patient, doctor, org = appointment.patient, appointment.doctor, appointment.organization
    at = f"{appointment.appointment_time:%H:%M}"
    for recipient, message in (
        (patient, f"You have an appointment with Dr. {doctor.name} at {org.name} tomorrow at {at}"),
        (doctor, f"You have an appointment with {patient.name} tomorrow at {at}"),
    ):
        safe_dispatch(dispatcher, NotificationEvent(
            recipient_id=recipient.id, organization_id=org.id,
            type='appointment_reminder', title='Appointment Reminder', message=message,
            data={'appointmentId': appointment.id}, category='reminder',
            action_url=f"/appointments/{appointment.id}", action_text='View Appointment',
        ))


def notify_prescription_issued(prescription, *, dispatcher: Optional[NotificationDispatcher] = None) -> None:
    dispatcher = dispatcher or get_dispatcher()
    doctor = prescription.doctor
    count = len(prescription.medications or [])
    safe_dispatch(dispatcher, NotificationEvent(
        recipient_id=prescription.patient_id,
        organization_id=prescription.organization_id,
        sender_id=doctor.id,
        type='prescription_issued',
        title='New Prescription Available',
        message=(f"Dr. {doctor.name} has issued a new prescription for you. It contains {count} medication(s) "
                 f"and expires on {prescription.valid_until:%m/%d/%Y}"),
        data={'prescriptionId': prescription.id, 'metadata': {
            'doctorName': doctor.name, 'medicationCount': count, 'expiryDate': prescription.valid_until.isoformat(),
        }},
        priority='high',
        category='prescription',
        action_url='/my-prescriptions',
        action_text='View Prescription',
    ))


def notify_prescription_expiring(prescription, *, dispatcher: Optional[NotificationDispatcher] = None) -> None:
    dispatcher = dispatcher or get_dispatcher()
    days = max(0, (prescription.valid_until - timezone.now()).days)
    safe_dispatch(dispatcher, NotificationEvent(
        recipient_id=prescription.patient_id,
        organization_id=prescription.organization_id,
        type='prescription_expiring',
        title='Prescription Expiring Soon',
        message=f"Your prescription from Dr. {prescription.doctor.name} expires in {days} day(s). Please refill if needed.",
        data={'prescriptionId': prescription.id, 'metadata': {'expiryDate': prescription.valid_until.isoformat()}},
        priority='high',
        category='prescription',
        action_required=True,
        action_url='/my-prescriptions',
        action_text='View Prescription',
    ))


def notify_critical_checkin(checkin, *, dispatcher: Optional[NotificationDispatcher] = None) -> Optional[Notification]:
    dispatcher = dispatcher or get_dispatcher()
    appointment = checkin.appointment
    patient_name = checkin.patient.name
    return safe_dispatch(dispatcher, NotificationEvent(
        recipient_id=appointment.doctor_id,
        organization_id=checkin.organization_id,
        sender_id=checkin.patient_id,
        type='check_in_completed',
        title='Critical Self-Check-in Alert',
        message=f"{patient_name} has completed a self-check-in with critical risk level. Immediate review required.",
        data={
            'checkInId': checkin.id,
            'appointmentId': appointment.id,
            'riskLevel': checkin.risk_level,
            'patientName': patient_name,
        },
        priority='urgent',
        category='system',
        action_required=True,
        action_url=f"/self-checkin/{checkin.id}",
        action_text='Review Check-in',
    ))


def announce(*, organization_id: Optional[int], title: str, message: str, priority: str = 'medium',
             sender=None, dispatcher: Optional[NotificationDispatcher] = None) -> int:
    """System announcement to every active member of an organization (or everyone)."""
    dispatcher = dispatcher or get_dispatcher()
    recipients = User.objects.filter(is_active=True)
    if organization_id is not None:
        recipients = recipients.filter(organization_id=organization_id)
    sent = 0
    for user_id in recipients.values_list('id', flat=True):
        if safe_dispatch(dispatcher, NotificationEvent(
            recipient_id=user_id, organization_id=organization_id, sender_id=getattr(sender, 'id', None),
            type='system_announcement', title=title, message=message, priority=priority, category='system',
        )):
            sent += 1
    return sent
