from datetime import timedelta

import pytest
from django.core.management import call_command
from django.urls import reverse
from django.utils import timezone

from clinic.models import Appointment, Notification, Prescription
from clinic.services import prescriptions as svc

pytestmark = pytest.mark.django_db

RX_BODY = {
    'diagnosis': {'primary': 'Acute bronchitis'},
    'medications': [{'name': 'Amoxicillin', 'dosage': '500mg', 'frequency': '3x daily', 'duration': '7 days'}],
}


def test_doctor_issues_prescription(client_for, doctor, patient, appointment):
    r = client_for(doctor).post(reverse('prescription_collection'),
                                {'appointmentId': appointment.id, **RX_BODY}, format='json')
    assert r.status_code == 201, r.data
    data = r.data['data']
    assert data['prescriptionNumber'].startswith('RX')
    assert data['patient']['id'] == patient.id
    assert data['isExpired'] is False
    appointment.refresh_from_db()
    assert appointment.prescription_id == data['id']
    n = Notification.objects.get(type='prescription_issued')
    assert n.recipient_id == patient.id
    assert n.data['prescriptionId'] == data['id']


def test_only_the_appointments_doctor_prescribes(client_for, make_user, org, appointment, other_doctor):
    colleague = make_user('doc3', 'doctor', org)
    body = {'appointmentId': appointment.id, **RX_BODY}
    assert client_for(colleague).post(reverse('prescription_collection'), body, format='json').status_code == 403
    assert client_for(other_doctor).post(reverse('prescription_collection'), body, format='json').status_code == 403


def test_patient_cannot_prescribe(client_for, patient, appointment):
    r = client_for(patient).post(reverse('prescription_collection'),
                                 {'appointmentId': appointment.id, **RX_BODY}, format='json')
    assert r.status_code == 403


def test_medications_required(client_for, doctor, appointment):
    r = client_for(doctor).post(reverse('prescription_collection'),
                                {'appointmentId': appointment.id, 'diagnosis': {'primary': 'x'}, 'medications': []},
                                format='json')
    assert r.status_code == 400


def test_failed_back_reference_is_reported(monkeypatch, appointment):
    """The appointment link is a separate write; a failure is logged, not raised."""
    class BrokenManager:
        def filter(self, **kwargs):
            raise RuntimeError('connection reset')

    monkeypatch.setattr(Appointment, 'objects', BrokenManager())
    assert svc.link_to_appointment(Prescription(id=1, appointment_id=appointment.id)) is False


def test_create_survives_link_failure(monkeypatch, doctor, appointment, recorder):
    monkeypatch.setattr(svc, 'link_to_appointment', lambda rx: False)
    rx = svc.create_prescription(doctor, appointment_id=appointment.id, diagnosis={'primary': 'Flu'},
                                 medications=RX_BODY['medications'], dispatcher=recorder)
    assert Prescription.objects.filter(id=rx.id).exists()
    appointment.refresh_from_db()
    assert appointment.prescription_id is None
    assert [e.type for e in recorder.events] == ['prescription_issued']


def test_list_scoping(client_for, doctor, other_doctor, patient, appointment, recorder):
    svc.create_prescription(doctor, appointment_id=appointment.id, diagnosis={'primary': 'Flu'},
                            medications=RX_BODY['medications'], dispatcher=recorder)
    assert client_for(patient).get(reverse('prescription_collection')).data['pagination']['total'] == 1
    assert client_for(doctor).get(reverse('prescription_collection')).data['pagination']['total'] == 1
    assert client_for(other_doctor).get(reverse('prescription_collection')).data['pagination']['total'] == 0


def test_expire_stale_and_expiring_soon(doctor, appointment, recorder):
    rx = svc.create_prescription(doctor, appointment_id=appointment.id, diagnosis={'primary': 'Flu'},
                                 medications=RX_BODY['medications'], valid_days=2, dispatcher=recorder)
    assert list(svc.expiring_soon()) == [rx]
    later = timezone.now() + timedelta(days=3)
    assert svc.expire_stale(later) == 1
    rx.refresh_from_db()
    assert rx.status == 'expired'


def test_send_reminders_command(doctor, patient, make_appointment):
    tomorrow = make_appointment(patient, doctor, days=1)
    rx = svc.create_prescription(doctor, appointment_id=tomorrow.id, diagnosis={'primary': 'Flu'},
                                 medications=RX_BODY['medications'], valid_days=1)
    call_command('send_reminders')
    tomorrow.refresh_from_db()
    assert tomorrow.reminder_sent is True
    assert Notification.objects.filter(type='appointment_reminder').count() == 2
    assert Notification.objects.filter(type='prescription_expiring', recipient=patient).count() == 1

    # second run sends nothing new
    call_command('send_reminders')
    assert Notification.objects.filter(type='appointment_reminder').count() == 2
    assert Notification.objects.filter(type='prescription_expiring').count() == 1
    assert Prescription.objects.get(id=rx.id).status == 'active'


def test_colleague_cannot_read_or_list_anothers_prescriptions(client_for, make_user, org, admin, doctor, appointment,
                                                             recorder):
    rx = svc.create_prescription(doctor, appointment_id=appointment.id, diagnosis={'primary': 'Flu'},
                                 medications=RX_BODY['medications'], dispatcher=recorder)
    colleague = make_user('doc3', 'doctor', org)
    c = client_for(colleague)
    assert c.get(reverse('prescription_detail', args=[rx.id])).status_code == 403
    assert c.get(reverse('prescription_collection')).data['pagination']['total'] == 0
    assert client_for(admin).get(reverse('prescription_detail', args=[rx.id])).status_code == 200
    assert client_for(doctor).get(reverse('prescription_detail', args=[rx.id])).status_code == 200
