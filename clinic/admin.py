"""
Django admin registrations for the clinic models.

Mostly read-and-fix tooling for operators; the API remains the only
path that runs the scoping and risk-assessment rules.
"""

from django.contrib import admin

from .models import (
    AuditEvent,
    Appointment,
    Notification,
    Organization,
    Prescription,
    SelfCheckIn,
    User,
)


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'type', 'is_active', 'subscription_plan', 'subscription_status', 'created_at')
    list_filter = ('type', 'is_active', 'subscription_status')
    search_fields = ('name', 'slug', 'city')


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'email', 'role', 'organization', 'is_active', 'last_login')
    list_filter = ('role', 'is_active', 'organization')
    search_fields = ('username', 'email', 'first_name', 'last_name')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'organization', 'appointment_date', 'appointment_time', 'status')
    list_filter = ('status', 'type', 'organization')
    search_fields = ('id', 'patient__username', 'doctor__username')


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('prescription_number', 'patient', 'doctor', 'organization', 'status', 'valid_until')
    list_filter = ('status', 'organization')
    search_fields = ('prescription_number', 'patient__username', 'doctor__username')


@admin.register(SelfCheckIn)
class SelfCheckInAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'appointment', 'organization', 'risk_level', 'risk_score',
                    'flagged_for_review', 'status', 'completion_percentage')
    list_filter = ('risk_level', 'flagged_for_review', 'status', 'organization')
    search_fields = ('id', 'patient__username')
    readonly_fields = ('risk_score', 'risk_level', 'recommendations', 'organization', 'appointment', 'patient')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'recipient', 'type', 'priority', 'category', 'is_read', 'created_at')
    list_filter = ('type', 'priority', 'category', 'is_read')
    search_fields = ('recipient__username', 'title')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'action', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('user__username', 'action')
