"""
Organizations and user management across tenants.
"""
import pytest
from django.urls import reverse

from clinic.models import AuditEvent, Organization

pytestmark = pytest.mark.django_db

PASSWORD = 'Str0ng!Pass-9x'


def test_superadmin_creates_organization(client_for, superadmin):
    r = client_for(superadmin).post(reverse('organization_collection'), {
        'name': 'Lakeside Medical', 'type': 'medical_center', 'subscriptionPlan': 'premium',
    }, format='json')
    assert r.status_code == 201, r.data
    assert r.data['data']['slug'] == 'lakeside-medical'
    assert r.data['data']['subscription'] == {'plan': 'premium', 'status': 'active'}
    assert AuditEvent.objects.filter(action='organization_create').exists()


def test_duplicate_organization_name(client_for, superadmin, org):
    r = client_for(superadmin).post(reverse('organization_collection'), {'name': org.name.upper()}, format='json')
    assert r.status_code == 400


def test_admin_cannot_create_organization(client_for, admin):
    r = client_for(admin).post(reverse('organization_collection'), {'name': 'Rogue'}, format='json')
    assert r.status_code == 403


def test_admin_sees_only_own_organization(client_for, admin, org, other_org):
    c = client_for(admin)
    r = c.get(reverse('organization_collection'))
    assert [o['id'] for o in r.data['data']] == [org.id]
    assert c.get(reverse('organization_detail', args=[other_org.id])).status_code == 403


def test_deactivated_organization_hidden_from_patients(client_for, patient, superadmin, org, other_org):
    other_org.is_active = False
    other_org.save(update_fields=['is_active'])
    assert [o['id'] for o in client_for(patient).get(reverse('organization_collection')).data['data']] == [org.id]
    assert client_for(patient).get(reverse('organization_detail', args=[other_org.id])).status_code == 404
    r = client_for(superadmin).get(reverse('organization_collection'), {'includeInactive': 'true'})
    assert r.data['pagination']['total'] == 2


def test_deactivating_organization_locks_out_members(client_for, superadmin, doctor, org):
    doctor_client = client_for(doctor)
    r = client_for(superadmin).post(reverse('organization_status', args=[org.id]), {'isActive': False}, format='json')
    assert r.status_code == 200
    assert Organization.objects.get(id=org.id).is_active is False
    r = doctor_client.get(reverse('me_view'))
    assert r.status_code == 401
    assert r.data['error']['code'] == 'organization_deactivated'


def test_status_requires_a_change(client_for, superadmin, org):
    r = client_for(superadmin).post(reverse('organization_status', args=[org.id]), {}, format='json')
    assert r.status_code == 400


def test_admin_adds_doctor_to_own_org(client_for, admin, org, other_org):
    r = client_for(admin).post(reverse('user_collection'), {
        'email': 'newdoc@example.com', 'password': PASSWORD, 'firstName': 'Lena', 'role': 'doctor',
        'organizationId': other_org.id,
    }, format='json')
    assert r.status_code == 201, r.data
    assert r.data['data']['organizationId'] == org.id
    assert AuditEvent.objects.filter(action='user_create', user=admin).exists()


def test_admin_cannot_create_admin(client_for, admin):
    r = client_for(admin).post(reverse('user_collection'), {
        'email': 'boss@example.com', 'password': PASSWORD, 'firstName': 'Boss', 'role': 'admin',
    }, format='json')
    assert r.status_code == 403


def test_doctor_cannot_create_users(client_for, doctor):
    r = client_for(doctor).post(reverse('user_collection'), {
        'email': 'x@example.com', 'password': PASSWORD, 'firstName': 'Xavier', 'role': 'doctor',
    }, format='json')
    assert r.status_code == 403


def test_user_list_is_org_scoped(client_for, admin, doctor, other_doctor, patient, appointment):
    c = client_for(admin)
    ids = {u['id'] for u in c.get(reverse('user_collection')).data['data']}
    assert ids == {admin.id, doctor.id}
    patients = c.get(reverse('user_collection'), {'role': 'patient'}).data['data']
    assert [u['id'] for u in patients] == [patient.id]


def test_patient_cannot_list_users(client_for, patient):
    assert client_for(patient).get(reverse('user_collection')).status_code == 403


def test_user_detail_visibility(client_for, doctor, other_doctor, patient, appointment):
    assert client_for(doctor).get(reverse('user_detail', args=[patient.id])).status_code == 200
    assert client_for(other_doctor).get(reverse('user_detail', args=[patient.id])).status_code == 403
    assert client_for(patient).get(reverse('user_detail', args=[patient.id])).status_code == 200
    assert client_for(patient).get(reverse('user_detail', args=[doctor.id])).status_code == 403


def test_healthz(client):
    r = client.get(reverse('healthz'))
    assert r.status_code == 200
    assert r.json()['ok'] is True
