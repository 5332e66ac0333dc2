from datetime import time, timedelta

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.models import Appointment, Organization, User

PASSWORD = 'Str0ng!Pass-9x'


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttle counters live in the cache
    cache.clear()
    yield
    cache.clear()


class RecordingDispatcher:
    """Stands in for NotificationDispatcher; keeps events instead of storing them."""

    def __init__(self):
        self.events = []

    def dispatch(self, event):
        self.events.append(event)
        return event

    def push_unread_count(self, user_id):
        pass


@pytest.fixture
def recorder():
    return RecordingDispatcher()


@pytest.fixture
def org(db):
    return Organization.objects.create(name='Riverside Clinic')


@pytest.fixture
def other_org(db):
    return Organization.objects.create(name='Northgate Hospital', type='hospital')


@pytest.fixture
def make_user(db):
    def _make(username, role, organization=None, **extra):
        return User.objects.create_user(
            username=username, password=PASSWORD, email=f'{username}@example.com',
            role=role, organization=organization, **extra,
        )
    return _make


@pytest.fixture
def superadmin(make_user):
    return make_user('root', 'superadmin')


@pytest.fixture
def admin(make_user, org):
    return make_user('admin1', 'admin', org)


@pytest.fixture
def doctor(make_user, org):
    return make_user('doc1', 'doctor', org, first_name='Greg', last_name='House')


@pytest.fixture
def other_doctor(make_user, other_org):
    return make_user('doc2', 'doctor', other_org)


@pytest.fixture
def patient(make_user):
    return make_user('pat1', 'patient', first_name='Jane', last_name='Roe')


@pytest.fixture
def make_appointment(db):
    def _make(patient, doctor, *, days=3, at=time(10, 0), status='scheduled'):
        return Appointment.objects.create(
            patient=patient, doctor=doctor, organization_id=doctor.organization_id,
            appointment_date=timezone.localdate() + timedelta(days=days),
            appointment_time=at, reason='Persistent cough for a week', status=status,
        )
    return _make


@pytest.fixture
def appointment(make_appointment, patient, doctor):
    return make_appointment(patient, doctor)


def bearer(user) -> str:
    return str(RefreshToken.for_user(user).access_token)


@pytest.fixture
def client_for():
    """APIClient carrying a real access token, so requests go through identity checks."""
    def _client(user):
        c = APIClient()
        c.credentials(HTTP_AUTHORIZATION=f'Bearer {bearer(user)}')
        return c
    return _client
