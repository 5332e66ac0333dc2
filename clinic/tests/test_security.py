import pytest
from django.urls import reverse
from rest_framework.test import APIClient
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.models import AuditEvent, User

pytestmark = pytest.mark.django_db

PASSWORD = 'Str0ng!Pass-9x'


def login(client, username, password=PASSWORD):
    return client.post(reverse('login_view'), {'username': username, 'password': password}, format='json')


def test_login_returns_jwt_pair(patient):
    r = login(APIClient(), 'pat1')
    assert r.status_code == 200
    assert r.data['ok'] is True
    assert r.data['access'] and r.data['refresh']
    assert r.data['user']['role'] == 'patient'
    assert AuditEvent.objects.filter(action='login', user=patient, detail__result='ok').exists()


def test_login_by_email(doctor):
    r = login(APIClient(), 'doc1@example.com')
    assert r.status_code == 200
    assert r.data['user']['organizationId'] == doctor.organization_id


def test_no_role_bypass_in_login(patient):
    r = APIClient().post(reverse('login_view'),
                         {'username': 'pat1', 'password': PASSWORD, 'role': 'superadmin'}, format='json')
    assert r.status_code == 200
    assert r.data['user']['role'] == 'patient'
    patient.refresh_from_db()
    assert patient.role == 'patient'


def test_wrong_password(patient):
    r = login(APIClient(), 'pat1', 'nope-nope-nope')
    assert r.status_code == 401
    assert r.data['error'] == {'code': 'invalid_credentials', 'message': 'invalid_credentials'}
    assert AuditEvent.objects.filter(action='login', detail__result='fail').exists()


def test_deactivated_user_cannot_login(patient):
    patient.is_active = False
    patient.save(update_fields=['is_active'])
    r = login(APIClient(), 'pat1')
    assert r.status_code == 401
    assert r.data['error']['code'] == 'account_deactivated'


def test_member_of_deactivated_org_cannot_login(doctor, org):
    org.is_active = False
    org.save(update_fields=['is_active'])
    r = login(APIClient(), 'doc1')
    assert r.status_code == 401
    assert r.data['error']['code'] == 'organization_deactivated'


def test_register_patient_cannot_pick_superadmin():
    c = APIClient()
    r = c.post(reverse('register_view'), {
        'email': 'new@example.com', 'password': PASSWORD, 'firstName': 'Nina', 'role': 'superadmin',
    }, format='json')
    assert r.status_code == 400
    assert not User.objects.filter(email='new@example.com').exists()


def test_register_patient():
    r = APIClient().post(reverse('register_view'), {
        'email': 'New@Example.com', 'password': PASSWORD, 'firstName': 'Nina', 'lastName': 'Park',
    }, format='json')
    assert r.status_code == 201, r.data
    assert r.data['user']['role'] == 'patient'
    assert r.data['user']['organizationId'] is None
    assert r.data['user']['email'] == 'new@example.com'


def test_register_staff_requires_organization(org):
    body = {'email': 'doc@example.com', 'password': PASSWORD, 'firstName': 'Omar', 'role': 'doctor'}
    assert APIClient().post(reverse('register_view'), body, format='json').status_code == 400
    r = APIClient().post(reverse('register_view'), {**body, 'organizationId': org.id}, format='json')
    assert r.status_code == 201
    assert r.data['user']['organizationId'] == org.id


def test_register_rejects_weak_password():
    r = APIClient().post(reverse('register_view'), {
        'email': 'weak@example.com', 'password': '123456', 'firstName': 'Weak',
    }, format='json')
    assert r.status_code == 400
    assert 'password' in r.data['error']['details']


def test_refresh_is_refused_after_deactivation(patient):
    tokens = login(APIClient(), 'pat1').data
    r = APIClient().post(reverse('refresh_view'), {'refresh': tokens['refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['access']

    patient.is_active = False
    patient.save(update_fields=['is_active'])
    r = APIClient().post(reverse('refresh_view'), {'refresh': tokens['refresh']}, format='json')
    assert r.status_code == 401
    assert r.data['error']['code'] == 'account_deactivated'


def test_logout_blacklists_refresh(patient):
    tokens = login(APIClient(), 'pat1').data
    c = APIClient()
    c.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")
    r = c.post(reverse('logout_view'), {'refresh': tokens['refresh']}, format='json')
    assert r.status_code == 200
    assert BlacklistedToken.objects.count() == 1
    r = APIClient().post(reverse('refresh_view'), {'refresh': tokens['refresh']}, format='json')
    assert r.status_code == 401
    assert r.data['error']['code'] == 'invalid_token'


def test_logout_accepts_string_user_claim(client_for, patient):
    refresh = RefreshToken.for_user(patient)
    refresh['user_id'] = str(patient.pk)
    r = client_for(patient).post(reverse('logout_view'), {'refresh': str(refresh)}, format='json')
    assert r.status_code == 200, r.data
    assert r.data['blacklisted'] == 1


def test_logout_refuses_foreign_refresh(client_for, patient, doctor):
    foreign = RefreshToken.for_user(doctor)
    r = client_for(patient).post(reverse('logout_view'), {'refresh': str(foreign)}, format='json')
    assert r.status_code == 401
    assert r.data['error']['code'] == 'invalid_token'
    assert BlacklistedToken.objects.count() == 0


def test_me(client_for, doctor, org):
    r = client_for(doctor).get(reverse('me_view'))
    assert r.status_code == 200
    assert r.data['user']['organization'] == {'id': org.id, 'name': org.name, 'slug': org.slug}


def test_admin_deactivates_doctor_and_tokens_stop_working(client_for, admin, doctor):
    doctor_client = client_for(doctor)
    assert doctor_client.get(reverse('me_view')).status_code == 200

    r = client_for(admin).post(reverse('user_deactivate', args=[doctor.id]))
    assert r.status_code == 200
    assert r.data['data']['isActive'] is False
    assert AuditEvent.objects.filter(action='user_deactivate', object_id=doctor.id).exists()

    r = doctor_client.get(reverse('me_view'))
    assert r.status_code == 401
    assert r.data['error']['code'] == 'account_deactivated'


def test_admin_cannot_deactivate_other_org(client_for, admin, other_doctor):
    r = client_for(admin).post(reverse('user_deactivate', args=[other_doctor.id]))
    assert r.status_code == 403
    other_doctor.refresh_from_db()
    assert other_doctor.is_active is True


def test_cannot_deactivate_self(client_for, superadmin):
    r = client_for(superadmin).post(reverse('user_deactivate', args=[superadmin.id]))
    assert r.status_code == 400


def test_unknown_route_method_is_enveloped(client_for, patient):
    r = client_for(patient).post(reverse('me_view'))
    assert r.status_code == 405
    assert r.data['ok'] is False
    assert r.data['error']['code'] == 'method_not_allowed'
