"""
Request validation and response shaping for self-check-ins.

Intake sections keep the client's camelCase keys because they are stored
as JSON documents verbatim; only the top-level section names are mapped
onto model fields.
"""
from rest_framework import serializers

from clinic.models import SelfCheckIn
from clinic.serializers.common import PageQuerySerializer, clean_text, iso, user_brief
from clinic.services import risk

SEVERITIES = ['mild', 'moderate', 'severe']

SECTION_FIELDS = {
    'basicInfo': 'basic_info',
    'vitalSigns': 'vital_signs',
    'covidScreening': 'covid_screening',
    'mentalHealth': 'mental_health',
    'lifestyle': 'lifestyle',
    'emergencyInfo': 'emergency_info',
    'additionalInfo': 'additional_info',
    'timeSpent': 'time_spent',
    'consentGiven': 'consent_given',
    'dataSharingConsent': 'data_sharing_consent',
    'status': 'status',
}


class _Section(serializers.Serializer):
    """Nested section: every key optional, unknown keys dropped."""

    def to_internal_value(self, data):
        return dict(super().to_internal_value(data))


def _reading(name, lo, hi, unit):
    return type(f"{name}Serializer", (_Section,), {
        'value': serializers.FloatField(min_value=lo, max_value=hi, required=False, allow_null=True),
        'unit': serializers.CharField(max_length=16, required=False, default=unit),
    })


class SymptomSerializer(_Section):
    symptom = serializers.CharField(max_length=120)
    severity = serializers.ChoiceField(choices=SEVERITIES)
    duration = serializers.CharField(max_length=64)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True)


class MedicationSerializer(_Section):
    name = serializers.CharField(max_length=120)
    dosage = serializers.CharField(max_length=64)
    frequency = serializers.CharField(max_length=64)
    startDate = serializers.CharField(max_length=32, required=False, allow_blank=True)


class AllergySerializer(_Section):
    allergen = serializers.CharField(max_length=120)
    reaction = serializers.CharField(max_length=120)
    severity = serializers.ChoiceField(choices=SEVERITIES)


class BasicInfoSerializer(_Section):
    currentSymptoms = SymptomSerializer(many=True, required=False)
    currentMedications = MedicationSerializer(many=True, required=False)
    allergies = AllergySerializer(many=True, required=False)
    medicalHistory = serializers.ListField(child=serializers.DictField(), required=False)


class BloodPressureSerializer(_Section):
    systolic = serializers.IntegerField(min_value=50, max_value=300, required=False, allow_null=True)
    diastolic = serializers.IntegerField(min_value=30, max_value=200, required=False, allow_null=True)
    unit = serializers.CharField(max_length=16, required=False, default='mmHg')


class VitalSignsSerializer(_Section):
    bloodPressure = BloodPressureSerializer(required=False)
    heartRate = _reading("HeartRate", 30, 300, "bpm")(required=False)
    temperature = _reading("Temperature", 90, 110, "F")(required=False)
    weight = _reading("Weight", 50, 1000, "lbs")(required=False)
    height = _reading("Height", 24, 96, "inches")(required=False)
    oxygenSaturation = _reading("OxygenSaturation", 70, 100, "%")(required=False)


class CovidScreeningSerializer(_Section):
    hasSymptoms = serializers.BooleanField(required=False)
    symptoms = serializers.ListField(child=serializers.CharField(max_length=32), required=False)
    hasBeenExposed = serializers.BooleanField(required=False)
    exposureDetails = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    hasTestedPositive = serializers.BooleanField(required=False)
    lastTestDate = serializers.CharField(max_length=32, required=False, allow_blank=True)
    isVaccinated = serializers.BooleanField(required=False)
    vaccinationDetails = serializers.ListField(child=serializers.DictField(), required=False)
    travelHistory = serializers.DictField(required=False)


class MentalHealthSerializer(_Section):
    moodRating = serializers.IntegerField(min_value=1, max_value=10, required=False)
    anxietyLevel = serializers.IntegerField(min_value=1, max_value=10, required=False)
    sleepQuality = serializers.IntegerField(min_value=1, max_value=10, required=False)
    stressLevel = serializers.IntegerField(min_value=1, max_value=10, required=False)
    hasMentalHealthConcerns = serializers.BooleanField(required=False)
    mentalHealthNotes = serializers.CharField(max_length=2000, required=False, allow_blank=True)


class LifestyleSerializer(_Section):
    exerciseFrequency = serializers.ChoiceField(
        choices=['none', '1-2_times_week', '3-4_times_week', '5-6_times_week', 'daily'], required=False)
    dietQuality = serializers.ChoiceField(choices=['poor', 'fair', 'good', 'excellent'], required=False)
    smokingStatus = serializers.ChoiceField(choices=['never', 'former', 'current'], required=False)
    alcoholConsumption = serializers.ChoiceField(choices=['none', 'light', 'moderate', 'heavy'], required=False)
    sleepHours = serializers.FloatField(min_value=0, max_value=24, required=False)
    stressFactors = serializers.ListField(child=serializers.CharField(max_length=32), required=False)
    stressNotes = serializers.CharField(max_length=1000, required=False, allow_blank=True)


class EmergencyInfoSerializer(_Section):
    hasEmergencySymptoms = serializers.BooleanField(required=False)
    emergencySymptoms = serializers.ListField(child=serializers.CharField(max_length=40), required=False)
    emergencyNotes = serializers.CharField(max_length=2000, required=False, allow_blank=True)
    needsImmediateAttention = serializers.BooleanField(required=False)


class AdditionalInfoSerializer(_Section):
    questions = serializers.ListField(child=serializers.DictField(), required=False)
    concerns = serializers.CharField(max_length=2000, required=False, allow_blank=True)
    questionsForDoctor = serializers.CharField(max_length=2000, required=False, allow_blank=True)
    additionalNotes = serializers.CharField(max_length=2000, required=False, allow_blank=True)


class CheckInUpdateSerializer(serializers.Serializer):
    basicInfo = BasicInfoSerializer(required=False)
    vitalSigns = VitalSignsSerializer(required=False)
    covidScreening = CovidScreeningSerializer(required=False)
    mentalHealth = MentalHealthSerializer(required=False)
    lifestyle = LifestyleSerializer(required=False)
    emergencyInfo = EmergencyInfoSerializer(required=False)
    additionalInfo = AdditionalInfoSerializer(required=False)
    timeSpent = serializers.IntegerField(min_value=0, required=False)
    consentGiven = serializers.BooleanField(required=False)
    dataSharingConsent = serializers.BooleanField(required=False)
    status = serializers.ChoiceField(choices=['in_progress', 'completed'], required=False)

    def model_data(self) -> dict:
        return {SECTION_FIELDS[k]: v for k, v in self.validated_data.items() if k in SECTION_FIELDS}


class CheckInCreateSerializer(CheckInUpdateSerializer):
    appointmentId = serializers.IntegerField(min_value=1)
    consentGiven = serializers.BooleanField()

    def validate_consentGiven(self, v):
        if not v:
            raise serializers.ValidationError('consent is required to submit a self-check-in')
        return v


class ReviewSerializer(serializers.Serializer):
    reviewNotes = serializers.CharField(max_length=2000, required=False, allow_blank=True, default='')
    riskLevel = serializers.ChoiceField(choices=[c for c, _ in SelfCheckIn.RISK_CHOICES], required=False)

    def validate_reviewNotes(self, v):
        return clean_text(v)


class CheckInListQuerySerializer(PageQuerySerializer):
    status = serializers.ChoiceField(choices=[c for c, _ in SelfCheckIn.STATUS_CHOICES], required=False)
    riskLevel = serializers.ChoiceField(choices=[c for c, _ in SelfCheckIn.RISK_CHOICES], required=False)
    flagged = serializers.ChoiceField(choices=['true', 'false'], required=False)
    patientId = serializers.IntegerField(min_value=1, required=False)
    dateFrom = serializers.DateField(required=False)
    dateTo = serializers.DateField(required=False)


class StatsQuerySerializer(serializers.Serializer):
    organizationId = serializers.IntegerField(required=False, min_value=1)
    days = serializers.IntegerField(required=False, min_value=1, max_value=365, default=30)


def checkin_payload(c: SelfCheckIn, *, detail: bool = False) -> dict:
    data = {
        'id': c.id,
        'patient': user_brief(c.patient),
        'appointmentId': c.appointment_id,
        'organizationId': c.organization_id,
        'checkInDate': iso(c.check_in_date),
        'status': c.status,
        'completionPercentage': c.completion_percentage,
        'assessmentResults': {
            'riskScore': c.risk_score,
            'riskLevel': c.risk_level,
            'recommendations': c.recommendations,
            'flaggedForReview': c.flagged_for_review,
            'reviewNotes': c.review_notes or None,
            'assessedBy': user_brief(c.assessed_by),
            'assessmentDate': iso(c.assessment_date),
        },
        'updatedAt': iso(c.updated_at),
    }
    if detail:
        data.update({
            'basicInfo': c.basic_info,
            'vitalSigns': c.vital_signs,
            'covidScreening': c.covid_screening,
            'mentalHealth': c.mental_health,
            'lifestyle': c.lifestyle,
            'emergencyInfo': c.emergency_info,
            'additionalInfo': c.additional_info,
            'timeSpent': c.time_spent,
            'consentGiven': c.consent_given,
            'dataSharingConsent': c.data_sharing_consent,
            'bmi': risk.bmi(c.vital_signs or {}),
            'bloodPressureCategory': risk.blood_pressure_category(c.vital_signs or {}),
        })
    return data
