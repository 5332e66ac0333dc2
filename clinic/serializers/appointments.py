from django.utils import timezone
from rest_framework import serializers

from clinic.models import Appointment
from clinic.serializers.common import PageQuerySerializer, clean_text, iso, user_brief

STATUSES = [c for c, _ in Appointment.STATUS_CHOICES]
TYPES = [c for c, _ in Appointment.TYPE_CHOICES]


class AppointmentCreateSerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(min_value=1)
    organizationId = serializers.IntegerField(min_value=1, required=False)
    appointmentDate = serializers.DateField()
    appointmentTime = serializers.TimeField()
    duration = serializers.IntegerField(min_value=10, max_value=240, required=False, default=30)
    type = serializers.ChoiceField(choices=TYPES, required=False, default='consultation')
    reason = serializers.CharField(min_length=10, max_length=500)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, default='')

    def validate_appointmentDate(self, v):
        if v < timezone.localdate():
            raise serializers.ValidationError('appointment date cannot be in the past')
        return v

    def validate_reason(self, v):
        v = clean_text(v)
        if len(v) < 10:
            raise serializers.ValidationError('reason must be between 10 and 500 characters')
        return v


class AppointmentUpdateSerializer(serializers.Serializer):
    appointmentDate = serializers.DateField(required=False)
    appointmentTime = serializers.TimeField(required=False)
    duration = serializers.IntegerField(min_value=10, max_value=240, required=False)
    reason = serializers.CharField(min_length=10, max_length=500, required=False)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=STATUSES, required=False)
    rejectionReason = serializers.CharField(max_length=500, required=False, allow_blank=True)

    FIELD_MAP = {
        'appointmentDate': 'appointment_date',
        'appointmentTime': 'appointment_time',
        'duration': 'duration',
        'reason': 'reason',
        'notes': 'notes',
        'status': 'status',
        'rejectionReason': 'rejection_reason',
    }

    def model_data(self) -> dict:
        return {self.FIELD_MAP[k]: v for k, v in self.validated_data.items()}


class AppointmentListQuerySerializer(PageQuerySerializer):
    status = serializers.ChoiceField(choices=STATUSES, required=False)
    doctorId = serializers.IntegerField(min_value=1, required=False)
    dateFrom = serializers.DateField(required=False)
    dateTo = serializers.DateField(required=False)


def appointment_payload(a: Appointment) -> dict:
    return {
        'id': a.id,
        'patient': user_brief(a.patient),
        'doctor': user_brief(a.doctor),
        'organization': {'id': a.organization_id, 'name': a.organization.name},
        'appointmentDate': iso(a.appointment_date),
        'appointmentTime': a.appointment_time.strftime('%H:%M') if a.appointment_time else None,
        'duration': a.duration,
        'status': a.status,
        'type': a.type,
        'reason': a.reason,
        'notes': a.notes,
        'rejectionReason': a.rejection_reason or None,
        'prescriptionId': a.prescription_id,
        'reminderSent': a.reminder_sent,
        'checkInTime': iso(a.check_in_time),
        'checkOutTime': iso(a.check_out_time),
        'createdAt': iso(a.created_at),
    }


class SlotQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
