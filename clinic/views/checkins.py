"""
Self-check-in endpoints.

Patients submit and edit the intake for their own appointments; staff
of the appointment's organization read, review and summarise them.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import PATIENT, IsStaff, has_role
from clinic.serializers.checkins import (
    CheckInCreateSerializer,
    CheckInListQuerySerializer,
    CheckInUpdateSerializer,
    ReviewSerializer,
    StatsQuerySerializer,
    checkin_payload,
)
from clinic.serializers.common import pagination
from clinic.services import checkins as svc


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def checkin_collection(request):
    if request.method == 'GET':
        q = CheckInListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        flagged = vd.get('flagged')
        items, total = svc.list_checkins(
            request.user,
            organization_id=vd.get('organizationId'),
            status=vd.get('status'),
            risk_level=vd.get('riskLevel'),
            flagged=None if flagged is None else flagged == 'true',
            patient_id=vd.get('patientId'),
            date_from=vd.get('dateFrom'),
            date_to=vd.get('dateTo'),
            page=vd['page'],
            page_size=vd['pageSize'],
        )
        return Response({'ok': True, 'data': [checkin_payload(c) for c in items], 'pagination': pagination(q, total)})

    has_role(request.user, {PATIENT})
    s = CheckInCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    checkin = svc.create_checkin(request.user, appointment_id=s.validated_data['appointmentId'], data=s.model_data())
    return Response({'ok': True, 'data': checkin_payload(checkin, detail=True)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def checkin_detail(request, pk: int):
    checkin = svc.get_checkin(request.user, pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': checkin_payload(checkin, detail=True)})
    if request.method == 'DELETE':
        svc.delete_checkin(request.user, checkin)
        return Response({'ok': True})
    s = CheckInUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    checkin = svc.update_checkin(request.user, checkin, s.model_data())
    return Response({'ok': True, 'data': checkin_payload(checkin, detail=True)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsStaff])
def checkin_review(request, pk: int):
    checkin = svc.get_checkin(request.user, pk)
    s = ReviewSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    checkin = svc.review_checkin(
        request.user, checkin,
        review_notes=s.validated_data.get('reviewNotes', ''),
        risk_level=s.validated_data.get('riskLevel'),
    )
    return Response({'ok': True, 'data': checkin_payload(checkin, detail=True)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def checkin_stats(request):
    q = StatsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = svc.checkin_stats(request.user, organization_id=q.validated_data.get('organizationId'),
                             days=q.validated_data['days'])
    return Response({'ok': True, 'data': data})
