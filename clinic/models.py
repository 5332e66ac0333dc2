"""
Database models for the SmartClinic backend.

Organizations are the tenants.  Staff users (admins and doctors) belong
to exactly one organization, superadmins and patients to none.  Intake
sections of a self-check-in are stored as JSON documents so that the
shape submitted by the front-end survives unchanged; the derived
assessment lives in plain columns so it can be filtered and indexed.
"""
from __future__ import annotations

from datetime import timedelta

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone
from django.utils.crypto import get_random_string
from django.utils.text import slugify


class Organization(models.Model):
    """A clinic, hospital or other tenant sharing the deployment."""
    TYPE_CHOICES = [
        ('clinic', 'Clinic'),
        ('hospital', 'Hospital'),
        ('medical_center', 'Medical center'),
        ('pharmacy', 'Pharmacy'),
    ]
    PLAN_CHOICES = [
        ('basic', 'Basic'),
        ('premium', 'Premium'),
        ('enterprise', 'Enterprise'),
    ]
    SUBSCRIPTION_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('suspended', 'Suspended'),
    ]

    name = models.CharField(max_length=255, unique=True)
    slug = models.SlugField(max_length=255, unique=True, blank=True)
    description = models.CharField(max_length=500, blank=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='clinic')
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)
    city = models.CharField(max_length=128, blank=True)
    state = models.CharField(max_length=128, blank=True)
    specialties = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    subscription_plan = models.CharField(max_length=16, choices=PLAN_CHOICES, default='basic')
    subscription_status = models.CharField(max_length=16, choices=SUBSCRIPTION_CHOICES, default='active', db_index=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='organizations_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.name} ({self.slug})"


class User(AbstractUser):
    """Principal of every request.

    ``role`` decides what the user may do, ``organization`` where.  Users
    are never hard-deleted; deactivation clears ``is_active``.
    """
    ROLE_SUPERADMIN = 'superadmin'
    ROLE_ADMIN = 'admin'
    ROLE_DOCTOR = 'doctor'
    ROLE_PATIENT = 'patient'
    ROLE_CHOICES = [
        (ROLE_SUPERADMIN, 'Super administrator'),
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_PATIENT, 'Patient'),
    ]
    STAFF_ROLES = frozenset({ROLE_ADMIN, ROLE_DOCTOR})

    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)
    organization = models.ForeignKey(
        Organization, null=True, blank=True, on_delete=models.PROTECT, related_name='members'
    )
    phone = models.CharField(max_length=32, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)

    @property
    def name(self) -> str:
        return self.get_full_name() or self.username

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Appointment(models.Model):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('scheduled', 'Scheduled'),
        ('confirmed', 'Confirmed'),
        ('in-progress', 'In progress'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
        ('rejected', 'Rejected'),
        ('no-show', 'No show'),
    ]
    TYPE_CHOICES = [
        ('consultation', 'Consultation'),
        ('follow-up', 'Follow-up'),
        ('emergency', 'Emergency'),
        ('routine-checkup', 'Routine checkup'),
        ('vaccination', 'Vaccination'),
    ]
    ACTIVE_STATUSES = ('pending', 'scheduled', 'confirmed', 'in-progress')

    patient = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='patient_appointments')
    doctor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='doctor_appointments')
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='appointments')
    appointment_date = models.DateField()
    appointment_time = models.TimeField()
    duration = models.PositiveIntegerField(default=30)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='pending', db_index=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='consultation')
    reason = models.CharField(max_length=500)
    notes = models.TextField(blank=True)
    rejection_reason = models.CharField(max_length=500, blank=True)
    prescription = models.ForeignKey(
        'Prescription', null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    reminder_sent = models.BooleanField(default=False)
    reminder_sent_at = models.DateTimeField(null=True, blank=True)
    check_in_time = models.DateTimeField(null=True, blank=True)
    check_out_time = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'appointment_date'], name='appt_patient_date_idx'),
            models.Index(fields=['doctor', 'appointment_date'], name='appt_doctor_date_idx'),
            models.Index(fields=['organization', 'appointment_date'], name='appt_org_date_idx'),
        ]

    def __str__(self) -> str:
        return f"appt {self.id} p={self.patient_id} d={self.doctor_id} @ {self.appointment_date} {self.appointment_time}"


def _default_valid_until():
    return timezone.now() + timedelta(days=settings.PRESCRIPTION_VALID_DAYS)


def _prescription_number() -> str:
    return f"RX{timezone.now():%y%m%d}{get_random_string(6, '0123456789')}"


class Prescription(models.Model):
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
        ('expired', 'Expired'),
    ]

    prescription_number = models.CharField(max_length=32, unique=True, default=_prescription_number)
    patient = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='patient_prescriptions')
    doctor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='doctor_prescriptions')
    appointment = models.ForeignKey(Appointment, on_delete=models.CASCADE, related_name='prescriptions')
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='prescriptions')
    diagnosis = models.JSONField(default=dict)
    medications = models.JSONField(default=list)
    instructions = models.JSONField(default=dict, blank=True)
    follow_up = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='active', db_index=True)
    valid_until = models.DateTimeField(default=_default_valid_until)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'created_at'], name='rx_patient_created_idx'),
            models.Index(fields=['doctor', 'created_at'], name='rx_doctor_created_idx'),
        ]

    def is_expired(self) -> bool:
        return timezone.now() > self.valid_until

    def __str__(self) -> str:
        return self.prescription_number


class SelfCheckIn(models.Model):
    """Pre-visit intake submitted by a patient for one appointment."""
    RISK_LOW = 'low'
    RISK_MEDIUM = 'medium'
    RISK_HIGH = 'high'
    RISK_CRITICAL = 'critical'
    RISK_CHOICES = [
        (RISK_LOW, 'Low'),
        (RISK_MEDIUM, 'Medium'),
        (RISK_HIGH, 'High'),
        (RISK_CRITICAL, 'Critical'),
    ]

    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_REVIEWED = 'reviewed'
    STATUS_FLAGGED = 'flagged'
    STATUS_CHOICES = [
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_REVIEWED, 'Reviewed'),
        (STATUS_FLAGGED, 'Flagged'),
    ]

    patient = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='self_checkins')
    appointment = models.OneToOneField(Appointment, on_delete=models.CASCADE, related_name='self_checkin')
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='self_checkins')
    check_in_date = models.DateTimeField(default=timezone.now)

    basic_info = models.JSONField(default=dict, blank=True)
    vital_signs = models.JSONField(default=dict, blank=True)
    covid_screening = models.JSONField(default=dict, blank=True)
    mental_health = models.JSONField(default=dict, blank=True)
    lifestyle = models.JSONField(default=dict, blank=True)
    emergency_info = models.JSONField(default=dict, blank=True)
    additional_info = models.JSONField(default=dict, blank=True)

    risk_score = models.PositiveIntegerField(default=0)
    risk_level = models.CharField(max_length=10, choices=RISK_CHOICES, default=RISK_LOW, db_index=True)
    recommendations = models.JSONField(default=list, blank=True)
    flagged_for_review = models.BooleanField(default=False, db_index=True)
    review_notes = models.TextField(blank=True)
    assessed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='assessed_checkins'
    )
    assessment_date = models.DateTimeField(null=True, blank=True)

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_IN_PROGRESS, db_index=True)
    completion_percentage = models.PositiveSmallIntegerField(default=0)
    time_spent = models.PositiveIntegerField(default=0)
    consent_given = models.BooleanField(default=False)
    data_sharing_consent = models.BooleanField(default=False)
    consent_date = models.DateTimeField(default=timezone.now)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'check_in_date'], name='checkin_patient_date_idx'),
            models.Index(fields=['organization', 'check_in_date'], name='checkin_org_date_idx'),
        ]

    @property
    def is_critical_and_flagged(self) -> bool:
        return self.flagged_for_review and self.risk_level == self.RISK_CRITICAL

    def __str__(self) -> str:
        return f"checkin {self.id} appt={self.appointment_id} risk={self.risk_level}"


class Notification(models.Model):
    TYPE_CHOICES = [
        ('appointment_booked', 'appointment_booked'),
        ('appointment_accepted', 'appointment_accepted'),
        ('appointment_rejected', 'appointment_rejected'),
        ('appointment_cancelled', 'appointment_cancelled'),
        ('appointment_reminder', 'appointment_reminder'),
        ('prescription_issued', 'prescription_issued'),
        ('prescription_expiring', 'prescription_expiring'),
        ('check_in_completed', 'check_in_completed'),
        ('system_announcement', 'system_announcement'),
    ]
    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]
    CATEGORY_CHOICES = [
        ('appointment', 'Appointment'),
        ('prescription', 'Prescription'),
        ('system', 'System'),
        ('security', 'Security'),
        ('reminder', 'Reminder'),
    ]

    recipient = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='sent_notifications'
    )
    organization = models.ForeignKey(
        Organization, null=True, blank=True, on_delete=models.SET_NULL, related_name='notifications'
    )
    type = models.CharField(max_length=32, choices=TYPE_CHOICES)
    title = models.CharField(max_length=255)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    priority = models.CharField(max_length=8, choices=PRIORITY_CHOICES, default='medium')
    category = models.CharField(max_length=16, choices=CATEGORY_CHOICES)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    action_required = models.BooleanField(default=False)
    action_url = models.CharField(max_length=255, blank=True)
    action_text = models.CharField(max_length=64, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['recipient', 'created_at'], name='notif_recipient_created_idx'),
            models.Index(fields=['recipient', 'is_read'], name='notif_recipient_read_idx'),
        ]

    def __str__(self) -> str:
        return f"notif {self.id} -> {self.recipient_id} [{self.type}]"


class AuditEvent(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.BigIntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
        ]
