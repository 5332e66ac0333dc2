"""
Dashboard analytics for staff.

Each endpoint accepts ``organizationId`` (superadmins only may widen it)
and, where it summarises activity, a ``period`` of 7d, 30d, 90d, 1y or all.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsAdminOrSuper, IsStaff
from clinic.serializers.analytics import AnalyticsQuerySerializer
from clinic.services import analytics as svc


def _query(request):
    q = AnalyticsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return q.validated_data


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def analytics_overview(request):
    vd = _query(request)
    return Response({'ok': True, 'data': svc.overview(request.user, organization_id=vd.get('organizationId'))})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def analytics_appointments(request):
    vd = _query(request)
    data = svc.appointment_analytics(request.user, organization_id=vd.get('organizationId'), period=vd['period'])
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def analytics_prescriptions(request):
    vd = _query(request)
    data = svc.prescription_analytics(request.user, organization_id=vd.get('organizationId'), period=vd['period'])
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def analytics_checkins(request):
    vd = _query(request)
    data = svc.checkin_analytics(request.user, organization_id=vd.get('organizationId'), period=vd['period'])
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminOrSuper])
def analytics_users(request):
    vd = _query(request)
    return Response({'ok': True, 'data': svc.user_analytics(request.user, organization_id=vd.get('organizationId'))})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminOrSuper])
def analytics_notifications(request):
    vd = _query(request)
    data = svc.notification_analytics(request.user, organization_id=vd.get('organizationId'), period=vd['period'])
    return Response({'ok': True, 'data': data})
