from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import ADMIN, IsAdminOrSuper
from clinic.serializers.analytics import AnalyticsQuerySerializer
from clinic.serializers.notifications import AnnouncementSerializer, NotificationListQuerySerializer
from clinic.services.analytics import notification_analytics
from clinic.services import notifications as svc
from clinic.services.scoping import resolve_scope


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_list(request):
    q = NotificationListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    items, total = svc.list_notifications(
        request.user,
        page=vd['page'],
        limit=vd['limit'],
        unread_only=vd['unreadOnly'],
        category=vd.get('category'),
        type=vd.get('type'),
    )
    return Response({
        'ok': True,
        'data': [svc.serialize_notification(n) for n in items],
        'unreadCount': svc.unread_count(request.user.id),
        'pagination': {'total': total, 'page': vd['page'], 'limit': vd['limit']},
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_unread_count(request):
    return Response({'ok': True, 'unreadCount': svc.unread_count(request.user.id)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def notification_mark_read(request, pk: int):
    n = svc.mark_read(request.user, pk)
    return Response({'ok': True, 'data': svc.serialize_notification(n)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def notification_mark_all_read(request):
    updated = svc.mark_all_read(request.user)
    return Response({'ok': True, 'updated': updated})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def notification_delete(request, pk: int):
    svc.delete_notification(request.user, pk)
    return Response({'ok': True})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminOrSuper])
def notification_announce(request):
    """Broadcast a system announcement; admins reach their own organization only."""
    s = AnnouncementSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    org_id = vd.get('organizationId')
    if request.user.role == ADMIN:
        org_id = resolve_scope(request.user, org_id).organization_id
    sent = svc.announce(organization_id=org_id, title=vd['title'], message=vd['message'],
                        priority=vd['priority'], sender=request.user)
    return Response({'ok': True, 'sent': sent}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminOrSuper])
def notification_stats(request):
    """Last 30 days of notifications in the caller's organization, by type."""
    q = AnalyticsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    summary = notification_analytics(request.user, organization_id=q.validated_data.get('organizationId'),
                                     period='30d')
    return Response({'ok': True, 'data': {
        'stats': summary['typeDistribution'],
        'totalNotifications': summary['readStats']['total'],
        'totalUnread': summary['readStats']['unread'],
        'periodDays': 30,
    }})
