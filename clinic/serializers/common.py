import bleach
from rest_framework import serializers


def clean_text(v):
    return bleach.clean((v or '').strip(), strip=True)


class PageQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=100, default=20)
    organizationId = serializers.IntegerField(required=False, min_value=1)


def pagination(q, total):
    return {'total': total, 'page': q.validated_data['page'], 'pageSize': q.validated_data['pageSize']}


def iso(value):
    return value.isoformat() if value else None


def user_brief(user):
    if user is None:
        return None
    return {'id': user.id, 'name': user.name, 'email': user.email, 'role': user.role}
