from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import ADMIN_ROLES, IsAdminOrSuper, IsStaff, has_role
from clinic.serializers.auth import user_payload
from clinic.serializers.common import pagination
from clinic.serializers.users import UserCreateSerializer, UserListQuerySerializer
from clinic.services import users as svc


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaff])
def user_collection(request):
    if request.method == 'GET':
        q = UserListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        items, total = svc.list_users(
            request.user,
            organization_id=vd.get('organizationId'),
            role=vd.get('role'),
            q=vd.get('q'),
            include_inactive=vd['includeInactive'],
            page=vd['page'],
            page_size=vd['pageSize'],
        )
        return Response({'ok': True, 'data': [user_payload(u) for u in items], 'pagination': pagination(q, total)})

    has_role(request.user, ADMIN_ROLES)
    s = UserCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = svc.create_member(request.user, **s.account_fields())
    return Response({'ok': True, 'data': user_payload(user)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_detail(request, pk: int):
    user = svc.get_user(request.user, pk)
    return Response({'ok': True, 'data': user_payload(user)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminOrSuper])
def user_deactivate(request, pk: int):
    target = svc.get_user(request.user, pk)
    target = svc.deactivate_user(request.user, target)
    return Response({'ok': True, 'data': user_payload(target)})
