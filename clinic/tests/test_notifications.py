from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from clinic.models import Notification
from clinic.services import notifications as svc
from clinic.services.notifications import NotificationDispatcher, NotificationEvent, user_group

pytestmark = pytest.mark.django_db


class FakeLayer:
    def __init__(self):
        self.sent = []

    async def group_send(self, group, message):
        self.sent.append((group, message))


class BrokenLayer:
    async def group_send(self, group, message):
        raise ConnectionError('redis down')


def event_for(user, **extra):
    return NotificationEvent(recipient_id=user.id, type='system_announcement', title='Hello',
                             message='Maintenance tonight', category='system', **extra)


def test_dispatch_persists_then_pushes(patient):
    layer = FakeLayer()
    n = NotificationDispatcher(channel_layer=layer).dispatch(event_for(patient))
    assert Notification.objects.filter(id=n.id, recipient=patient).exists()
    assert [m['type'] for _, m in layer.sent] == ['notification.push', 'notification.unread']
    assert all(group == user_group(patient.id) for group, _ in layer.sent)
    assert layer.sent[0][1]['notification']['id'] == n.id
    assert layer.sent[1][1]['count'] == 1


def test_push_failure_keeps_the_row(patient):
    n = NotificationDispatcher(channel_layer=BrokenLayer()).dispatch(event_for(patient))
    assert Notification.objects.filter(id=n.id).exists()


def test_expired_notifications_are_hidden_and_purged(patient):
    dispatcher = NotificationDispatcher(channel_layer=FakeLayer())
    dispatcher.dispatch(event_for(patient, expires_at=timezone.now() - timedelta(minutes=1)))
    dispatcher.dispatch(event_for(patient))
    assert svc.unread_count(patient.id) == 1
    assert svc.cleanup_expired() == 1
    assert Notification.objects.filter(recipient=patient).count() == 1


def test_inbox_flow(client_for, patient):
    dispatcher = NotificationDispatcher(channel_layer=FakeLayer())
    first = dispatcher.dispatch(event_for(patient))
    dispatcher.dispatch(event_for(patient, priority='high'))
    c = client_for(patient)

    r = c.get(reverse('notification_list'))
    assert r.status_code == 200
    assert r.data['unreadCount'] == 2
    assert r.data['pagination']['total'] == 2

    r = c.put(reverse('notification_mark_read', args=[first.id]))
    assert r.data['data']['isRead'] is True
    assert c.get(reverse('notification_unread_count')).data['unreadCount'] == 1
    assert c.get(reverse('notification_list'), {'unreadOnly': 'true'}).data['pagination']['total'] == 1

    assert c.put(reverse('notification_mark_all_read')).data['updated'] == 1
    assert c.delete(reverse('notification_delete', args=[first.id])).status_code == 200
    assert Notification.objects.filter(recipient=patient).count() == 1


def test_cannot_touch_someone_elses_notification(client_for, patient, make_user):
    n = NotificationDispatcher(channel_layer=FakeLayer()).dispatch(event_for(patient))
    other = client_for(make_user('pat2', 'patient'))
    assert other.put(reverse('notification_mark_read', args=[n.id])).status_code == 404
    assert other.delete(reverse('notification_delete', args=[n.id])).status_code == 404
    assert Notification.objects.filter(id=n.id, is_read=False).exists()


def test_admin_announcement_stays_in_org(client_for, admin, doctor, other_doctor, patient, other_org):
    c = client_for(admin)
    r = c.post(reverse('notification_announce'), {'title': 'Closed Monday', 'message': 'Holiday'}, format='json')
    assert r.status_code == 201
    # admin and doctor of the org; patients are tenant-less
    assert r.data['sent'] == 2
    assert set(Notification.objects.values_list('recipient_id', flat=True)) == {admin.id, doctor.id}

    r = c.post(reverse('notification_announce'),
               {'title': 'x', 'message': 'y', 'organizationId': other_org.id}, format='json')
    assert r.status_code == 403


def test_doctor_cannot_announce(client_for, doctor):
    r = client_for(doctor).post(reverse('notification_announce'), {'title': 'x', 'message': 'y'}, format='json')
    assert r.status_code == 403
