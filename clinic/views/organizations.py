from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import SUPERADMIN, IsSuperadmin, has_role
from clinic.serializers.common import pagination
from clinic.serializers.organizations import (
    OrganizationCreateSerializer,
    OrganizationListQuerySerializer,
    OrganizationStatusSerializer,
    organization_payload,
)
from clinic.services import organizations as svc


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def organization_collection(request):
    if request.method == 'GET':
        q = OrganizationListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        items, total = svc.list_organizations(
            request.user,
            organization_id=vd.get('organizationId'),
            q=vd.get('q'),
            type=vd.get('type'),
            include_inactive=vd['includeInactive'],
            page=vd['page'],
            page_size=vd['pageSize'],
        )
        return Response({'ok': True, 'data': [organization_payload(o) for o in items], 'pagination': pagination(q, total)})

    has_role(request.user, {SUPERADMIN})
    s = OrganizationCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    org = svc.create_organization(request.user, **s.model_data())
    return Response({'ok': True, 'data': organization_payload(org)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def organization_detail(request, pk: int):
    org = svc.get_organization(request.user, pk)
    return Response({'ok': True, 'data': organization_payload(org)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsSuperadmin])
def organization_status(request, pk: int):
    org = svc.get_organization(request.user, pk)
    s = OrganizationStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    org = svc.set_organization_status(
        request.user, org,
        is_active=s.validated_data.get('isActive'),
        subscription_status=s.validated_data.get('subscriptionStatus'),
    )
    return Response({'ok': True, 'data': organization_payload(org)})
