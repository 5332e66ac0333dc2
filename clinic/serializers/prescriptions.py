from rest_framework import serializers

from clinic.models import Prescription
from clinic.serializers.common import PageQuerySerializer, clean_text, iso, user_brief


class MedicationItemSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=120)
    dosage = serializers.CharField(max_length=64)
    frequency = serializers.CharField(max_length=64)
    duration = serializers.CharField(max_length=64)
    instructions = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')
    quantity = serializers.IntegerField(min_value=1, required=False)
    refills = serializers.IntegerField(min_value=0, max_value=12, required=False, default=0)

    def to_internal_value(self, data):
        out = dict(super().to_internal_value(data))
        out['instructions'] = clean_text(out.get('instructions'))
        return out


class DiagnosisSerializer(serializers.Serializer):
    primary = serializers.CharField(max_length=255)
    secondary = serializers.ListField(child=serializers.CharField(max_length=255), required=False, default=list)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True, default='')

    def to_internal_value(self, data):
        out = dict(super().to_internal_value(data))
        out['primary'] = clean_text(out['primary'])
        out['notes'] = clean_text(out.get('notes'))
        return out


class PrescriptionCreateSerializer(serializers.Serializer):
    appointmentId = serializers.IntegerField(min_value=1)
    diagnosis = DiagnosisSerializer()
    medications = MedicationItemSerializer(many=True, allow_empty=False)
    instructions = serializers.DictField(required=False, default=dict)
    followUp = serializers.DictField(required=False, default=dict)
    validDays = serializers.IntegerField(min_value=1, max_value=365, required=False)


class PrescriptionListQuerySerializer(PageQuerySerializer):
    status = serializers.ChoiceField(choices=[c for c, _ in Prescription.STATUS_CHOICES], required=False)
    appointmentId = serializers.IntegerField(min_value=1, required=False)


def prescription_payload(rx: Prescription) -> dict:
    return {
        'id': rx.id,
        'prescriptionNumber': rx.prescription_number,
        'patient': user_brief(rx.patient),
        'doctor': user_brief(rx.doctor),
        'appointmentId': rx.appointment_id,
        'organizationId': rx.organization_id,
        'diagnosis': rx.diagnosis,
        'medications': rx.medications,
        'instructions': rx.instructions,
        'followUp': rx.follow_up,
        'status': rx.status,
        'validUntil': iso(rx.valid_until),
        'isExpired': rx.is_expired(),
        'createdAt': iso(rx.created_at),
    }
