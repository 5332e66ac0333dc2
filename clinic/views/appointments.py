from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import PATIENT, has_role
from clinic.serializers.appointments import (
    AppointmentCreateSerializer,
    AppointmentListQuerySerializer,
    AppointmentUpdateSerializer,
    SlotQuerySerializer,
    appointment_payload,
)
from clinic.serializers.common import iso, pagination, user_brief
from clinic.services import appointments as svc


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointment_collection(request):
    """``GET`` lists appointments in the caller's scope; ``POST`` books one (patients)."""
    if request.method == 'GET':
        q = AppointmentListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        items, total = svc.list_appointments(
            request.user,
            organization_id=vd.get('organizationId'),
            status=vd.get('status'),
            doctor_id=vd.get('doctorId'),
            date_from=vd.get('dateFrom'),
            date_to=vd.get('dateTo'),
            page=vd['page'],
            page_size=vd['pageSize'],
        )
        return Response({'ok': True, 'data': [appointment_payload(a) for a in items], 'pagination': pagination(q, total)})

    has_role(request.user, {PATIENT})
    s = AppointmentCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    appt = svc.create_appointment(
        request.user,
        doctor_id=vd['doctorId'],
        organization_id=vd.get('organizationId'),
        appointment_date=vd['appointmentDate'],
        appointment_time=vd['appointmentTime'],
        duration=vd['duration'],
        type=vd['type'],
        reason=vd['reason'],
        notes=vd['notes'],
    )
    return Response({'ok': True, 'data': appointment_payload(appt)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def appointment_detail(request, pk: int):
    appt = svc.get_appointment(request.user, pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': appointment_payload(appt)})
    if request.method == 'DELETE':
        appt = svc.cancel_appointment(request.user, appt)
        return Response({'ok': True, 'data': appointment_payload(appt)})
    s = AppointmentUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = svc.update_appointment(request.user, appt, s.model_data())
    return Response({'ok': True, 'data': appointment_payload(appt)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def appointment_available_slots(request, doctor_id: int):
    q = SlotQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    found = svc.available_slots(request.user, doctor_id, q.validated_data['date'])
    return Response({'ok': True, 'data': {
        'doctor': user_brief(found['doctor']),
        'date': iso(found['date']),
        'availableSlots': found['slots'],
    }})
