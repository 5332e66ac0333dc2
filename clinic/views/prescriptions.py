from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import DOCTOR, has_role
from clinic.serializers.common import pagination
from clinic.serializers.prescriptions import (
    PrescriptionCreateSerializer,
    PrescriptionListQuerySerializer,
    prescription_payload,
)
from clinic.services import prescriptions as svc


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def prescription_collection(request):
    if request.method == 'GET':
        q = PrescriptionListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        items, total = svc.list_prescriptions(
            request.user,
            organization_id=vd.get('organizationId'),
            status=vd.get('status'),
            appointment_id=vd.get('appointmentId'),
            page=vd['page'],
            page_size=vd['pageSize'],
        )
        return Response({'ok': True, 'data': [prescription_payload(p) for p in items], 'pagination': pagination(q, total)})

    # only the doctor of the appointment may prescribe
    has_role(request.user, {DOCTOR})
    s = PrescriptionCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    rx = svc.create_prescription(
        request.user,
        appointment_id=vd['appointmentId'],
        diagnosis=vd['diagnosis'],
        medications=vd['medications'],
        instructions=vd['instructions'],
        follow_up=vd['followUp'],
        valid_days=vd.get('validDays'),
    )
    return Response({'ok': True, 'data': prescription_payload(rx)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def prescription_detail(request, pk: int):
    rx = svc.get_prescription(request.user, pk)
    return Response({'ok': True, 'data': prescription_payload(rx)})
