"""
Self-check-in lifecycle through the HTTP API and the service layer.
"""
import pytest
from django.urls import reverse

from clinic.models import Notification, SelfCheckIn
from clinic.services import checkins as svc
from clinic.services.audit import audit_trail

pytestmark = pytest.mark.django_db

CRITICAL_INTAKE = {
    'emergencyInfo': {'hasEmergencySymptoms': True, 'needsImmediateAttention': True},
}


def submit(client, appointment, **sections):
    body = {'appointmentId': appointment.id, 'consentGiven': True, **sections}
    return client.post(reverse('checkin_collection'), body, format='json')


def test_create_scores_and_pins_organization(client_for, patient, appointment, org):
    r = submit(client_for(patient), appointment,
               covidScreening={'hasSymptoms': True, 'hasBeenExposed': True, 'isVaccinated': True},
               vitalSigns={'temperature': {'value': 101.5}})
    assert r.status_code == 201, r.data
    data = r.data['data']
    assert data['organizationId'] == org.id
    assert data['assessmentResults']['riskScore'] == 7
    assert data['assessmentResults']['riskLevel'] == 'high'
    assert data['assessmentResults']['flaggedForReview'] is True
    assert data['status'] == 'flagged'
    assert data['completionPercentage'] == 27


def test_consent_is_required(client_for, patient, appointment):
    r = client_for(patient).post(reverse('checkin_collection'),
                                 {'appointmentId': appointment.id, 'consentGiven': False}, format='json')
    assert r.status_code == 400
    assert r.data['error']['code'] == 'validation_failed'
    assert 'consentGiven' in r.data['error']['details']


def test_duplicate_checkin_conflicts(client_for, patient, appointment):
    c = client_for(patient)
    assert submit(c, appointment).status_code == 201
    r = submit(c, appointment)
    assert r.status_code == 409
    assert r.data['error']['code'] == 'conflict'
    assert SelfCheckIn.objects.filter(appointment=appointment).count() == 1


def test_cannot_check_in_for_someone_elses_appointment(client_for, make_user, appointment):
    intruder = make_user('pat2', 'patient')
    r = submit(client_for(intruder), appointment)
    assert r.status_code == 403
    assert r.data['error'] == {'code': 'forbidden', 'message': 'forbidden'}


def test_staff_cannot_submit(client_for, doctor, appointment):
    assert submit(client_for(doctor), appointment).status_code == 403


def test_unknown_appointment(client_for, patient):
    r = client_for(patient).post(reverse('checkin_collection'),
                                 {'appointmentId': 99999, 'consentGiven': True}, format='json')
    assert r.status_code == 404


def test_cancelled_appointment_rejected(client_for, patient, doctor, make_appointment):
    appt = make_appointment(patient, doctor, status='cancelled')
    assert submit(client_for(patient), appt).status_code == 400


def test_additional_info_edit_does_not_rescore(client_for, patient, appointment):
    c = client_for(patient)
    created = submit(c, appointment, covidScreening={'hasSymptoms': True}).data['data']
    checkin = SelfCheckIn.objects.get(id=created['id'])
    # simulate a clinician-adjusted score that a rescore would overwrite
    SelfCheckIn.objects.filter(id=checkin.id).update(risk_score=42, recommendations=['keep me'])

    r = c.put(reverse('checkin_detail', args=[checkin.id]),
              {'additionalInfo': {'concerns': '<b>Back pain</b> at night'}}, format='json')
    assert r.status_code == 200, r.data
    checkin.refresh_from_db()
    assert checkin.risk_score == 42
    assert checkin.recommendations == ['keep me']
    assert checkin.additional_info['concerns'] == 'Back pain at night'


def test_lifestyle_edit_recounts_completion_only(client_for, patient, appointment):
    c = client_for(patient)
    created = submit(c, appointment, covidScreening={'hasSymptoms': True}).data['data']
    before = SelfCheckIn.objects.get(id=created['id'])

    c.put(reverse('checkin_detail', args=[before.id]),
          {'lifestyle': {'exerciseFrequency': 'none', 'sleepHours': 5}}, format='json')
    after = SelfCheckIn.objects.get(id=before.id)
    assert after.completion_percentage > before.completion_percentage
    assert after.risk_score == before.risk_score
    assert after.recommendations == before.recommendations


def test_vitals_edit_rescores(client_for, patient, appointment):
    c = client_for(patient)
    created = submit(c, appointment).data['data']
    r = c.put(reverse('checkin_detail', args=[created['id']]),
              {'vitalSigns': {'oxygenSaturation': {'value': 91}}}, format='json')
    assert r.data['data']['assessmentResults']['riskScore'] == 3
    assert r.data['data']['assessmentResults']['riskLevel'] == 'medium'


def test_patient_cannot_set_reviewed_status(client_for, patient, appointment):
    c = client_for(patient)
    created = submit(c, appointment).data['data']
    r = c.put(reverse('checkin_detail', args=[created['id']]), {'status': 'reviewed'}, format='json')
    assert r.status_code == 400


def test_critical_checkin_notifies_doctor_once(client_for, patient, doctor, appointment):
    c = client_for(patient)
    r = submit(c, appointment, **CRITICAL_INTAKE)
    assert r.data['data']['assessmentResults']['riskLevel'] == 'critical'

    alerts = Notification.objects.filter(type='check_in_completed')
    assert alerts.count() == 1
    alert = alerts.get()
    assert alert.recipient_id == doctor.id
    assert alert.priority == 'urgent'
    assert alert.data['riskLevel'] == 'critical'
    assert alert.data['checkInId'] == r.data['data']['id']
    assert alert.data['patientName'] == 'Jane Roe'

    # still critical after another edit: no second alert
    c.put(reverse('checkin_detail', args=[r.data['data']['id']]),
          {'mentalHealth': {'anxietyLevel': 9}}, format='json')
    assert Notification.objects.filter(type='check_in_completed').count() == 1


def test_critical_event_uses_injected_dispatcher(patient, appointment, recorder):
    checkin = svc.create_checkin(patient, appointment_id=appointment.id, data={
        'emergency_info': {'hasEmergencySymptoms': True, 'needsImmediateAttention': True},
        'consent_given': True,
    }, dispatcher=recorder)
    assert [e.type for e in recorder.events] == ['check_in_completed']
    assert recorder.events[0].data['checkInId'] == checkin.id
    assert Notification.objects.count() == 0


def test_rescore_never_clears_flag(patient, appointment, recorder):
    checkin = svc.create_checkin(patient, appointment_id=appointment.id, data={
        'covid_screening': {'hasSymptoms': True, 'hasTestedPositive': True},
    }, dispatcher=recorder)
    assert checkin.flagged_for_review is True
    checkin = svc.update_checkin(patient, checkin, {'covid_screening': {'hasSymptoms': True}}, dispatcher=recorder)
    assert checkin.risk_level == 'medium'
    assert checkin.flagged_for_review is True
    assert checkin.status == 'flagged'


def test_review_clears_flag(client_for, patient, doctor, appointment):
    created = submit(client_for(patient), appointment, **CRITICAL_INTAKE).data['data']
    r = client_for(doctor).put(reverse('checkin_review', args=[created['id']]),
                               {'reviewNotes': 'Seen, sent to ER', 'riskLevel': 'high'}, format='json')
    assert r.status_code == 200, r.data
    results = r.data['data']['assessmentResults']
    assert results['flaggedForReview'] is False
    assert results['riskLevel'] == 'high'
    assert results['assessedBy']['id'] == doctor.id
    assert r.data['data']['status'] == 'reviewed'
    trail = audit_trail(object_type='self_checkin', object_id=created['id'])
    assert [e.action for e in trail] == ['checkin_review']
    assert trail[0].user_id == doctor.id


def test_patient_cannot_review(client_for, patient, appointment):
    created = submit(client_for(patient), appointment).data['data']
    r = client_for(patient).put(reverse('checkin_review', args=[created['id']]), {}, format='json')
    assert r.status_code == 403


def test_cross_org_staff_forbidden(client_for, patient, other_doctor, appointment):
    created = submit(client_for(patient), appointment).data['data']
    c = client_for(other_doctor)
    assert c.get(reverse('checkin_detail', args=[created['id']])).status_code == 403
    assert c.put(reverse('checkin_review', args=[created['id']]), {}, format='json').status_code == 403


def test_list_is_scoped(client_for, patient, doctor, other_doctor, appointment, make_appointment, make_user):
    other_patient = make_user('pat2', 'patient')
    elsewhere = make_appointment(other_patient, other_doctor)
    submit(client_for(patient), appointment, **CRITICAL_INTAKE)
    submit(client_for(other_patient), elsewhere)

    r = client_for(doctor).get(reverse('checkin_collection'))
    assert r.status_code == 200
    assert r.data['pagination'] == {'total': 1, 'page': 1, 'pageSize': 20}
    assert r.data['data'][0]['appointmentId'] == appointment.id

    r = client_for(patient).get(reverse('checkin_collection'))
    assert [row['appointmentId'] for row in r.data['data']] == [appointment.id]


def test_list_flagged_filter(client_for, patient, doctor, appointment):
    submit(client_for(patient), appointment, **CRITICAL_INTAKE)
    c = client_for(doctor)
    assert c.get(reverse('checkin_collection'), {'flagged': 'true'}).data['pagination']['total'] == 1
    assert c.get(reverse('checkin_collection'), {'flagged': 'false'}).data['pagination']['total'] == 0
    assert c.get(reverse('checkin_collection')).data['pagination']['total'] == 1


def test_admin_cannot_list_other_org(client_for, admin, other_org):
    r = client_for(admin).get(reverse('checkin_collection'), {'organizationId': other_org.id})
    assert r.status_code == 403


def test_detail_includes_derived_vitals(client_for, patient, appointment):
    c = client_for(patient)
    created = submit(c, appointment, vitalSigns={
        'weight': {'value': 150}, 'height': {'value': 65},
        'bloodPressure': {'systolic': 118, 'diastolic': 76},
    }).data['data']
    r = c.get(reverse('checkin_detail', args=[created['id']]))
    assert r.data['data']['bmi'] == 25.0
    assert r.data['data']['bloodPressureCategory'] == 'normal'


def test_stats(client_for, patient, doctor, appointment):
    submit(client_for(patient), appointment, **CRITICAL_INTAKE)
    r = client_for(doctor).get(reverse('checkin_stats'))
    assert r.status_code == 200
    stats = r.data['data']
    assert stats['total'] == 1
    assert stats['flaggedForReview'] == 1
    assert stats['byRiskLevel']['critical'] == 1
    assert stats['byStatus']['flagged'] == 1
    assert client_for(patient).get(reverse('checkin_stats')).status_code == 403


def test_delete_by_owner_is_audited(client_for, patient, appointment):
    c = client_for(patient)
    created = submit(c, appointment).data['data']
    assert c.delete(reverse('checkin_detail', args=[created['id']])).status_code == 200
    assert not SelfCheckIn.objects.filter(id=created['id']).exists()
    assert [e.action for e in audit_trail(object_type='self_checkin', object_id=created['id'])] == ['checkin_delete']


def test_doctor_cannot_delete(client_for, patient, doctor, appointment):
    created = submit(client_for(patient), appointment).data['data']
    assert client_for(doctor).delete(reverse('checkin_detail', args=[created['id']])).status_code == 403
