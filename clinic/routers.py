"""
URL mappings for the SmartClinic API.

Trailing slashes are omitted (``APPEND_SLASH = False``) to match the
paths the front-end calls.
"""
from django.urls import path
from django_prometheus import exports

from .auth_views import login_view, logout_view, me_view, refresh_view, register_view
from .views import analytics, appointments, checkins, health, notifications, organizations, prescriptions, users

urlpatterns = [
    # auth
    path('api/auth/register', register_view, name='register_view'),
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', refresh_view, name='refresh_view'),
    path('api/auth/logout', logout_view, name='logout_view'),
    path('api/auth/me', me_view, name='me_view'),

    # organizations
    path('api/organizations', organizations.organization_collection, name='organization_collection'),
    path('api/organizations/<int:pk>', organizations.organization_detail, name='organization_detail'),
    path('api/organizations/<int:pk>/status', organizations.organization_status, name='organization_status'),

    # users
    path('api/users', users.user_collection, name='user_collection'),
    path('api/users/<int:pk>', users.user_detail, name='user_detail'),
    path('api/users/<int:pk>/deactivate', users.user_deactivate, name='user_deactivate'),

    # appointments
    path('api/appointments', appointments.appointment_collection, name='appointment_collection'),
    path('api/appointments/<int:pk>', appointments.appointment_detail, name='appointment_detail'),
    path('api/appointments/available-slots/<int:doctor_id>', appointments.appointment_available_slots,
         name='appointment_available_slots'),

    # prescriptions
    path('api/prescriptions', prescriptions.prescription_collection, name='prescription_collection'),
    path('api/prescriptions/<int:pk>', prescriptions.prescription_detail, name='prescription_detail'),

    # self-check-in
    path('api/self-checkin', checkins.checkin_collection, name='checkin_collection'),
    path('api/self-checkin/stats/overview', checkins.checkin_stats, name='checkin_stats'),
    path('api/self-checkin/<int:pk>', checkins.checkin_detail, name='checkin_detail'),
    path('api/self-checkin/<int:pk>/review', checkins.checkin_review, name='checkin_review'),

    # analytics
    path('api/analytics/overview', analytics.analytics_overview, name='analytics_overview'),
    path('api/analytics/appointments', analytics.analytics_appointments, name='analytics_appointments'),
    path('api/analytics/prescriptions', analytics.analytics_prescriptions, name='analytics_prescriptions'),
    path('api/analytics/self-checkins', analytics.analytics_checkins, name='analytics_checkins'),
    path('api/analytics/users', analytics.analytics_users, name='analytics_users'),
    path('api/analytics/notifications', analytics.analytics_notifications, name='analytics_notifications'),

    # notifications
    path('api/notifications', notifications.notification_list, name='notification_list'),
    path('api/notifications/unread-count', notifications.notification_unread_count, name='notification_unread_count'),
    path('api/notifications/mark-all-read', notifications.notification_mark_all_read, name='notification_mark_all_read'),
    path('api/notifications/announce', notifications.notification_announce, name='notification_announce'),
    path('api/notifications/stats', notifications.notification_stats, name='notification_stats'),
    path('api/notifications/<int:pk>/read', notifications.notification_mark_read, name='notification_mark_read'),
    path('api/notifications/<int:pk>', notifications.notification_delete, name='notification_delete'),

    # ops
    path('healthz', health.healthz, name='healthz'),
    path('metrics', exports.ExportToDjangoView, name='prometheus-django-metrics'),
]
