from rest_framework import serializers

from clinic.models import User
from clinic.serializers.common import clean_text, iso


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField(help_text='username or email')
    password = serializers.CharField(write_only=True)

    def validate_username(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('username is required')
        return v


class RegisterSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150, required=False)
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, write_only=True)
    firstName = serializers.CharField(max_length=150)
    lastName = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default='')
    dateOfBirth = serializers.DateField(required=False, allow_null=True)
    role = serializers.ChoiceField(choices=['patient', 'doctor', 'admin'], default='patient')
    organizationId = serializers.IntegerField(required=False, allow_null=True, min_value=1)

    def validate_firstName(self, v):
        v = clean_text(v)
        if len(v) < 2:
            raise serializers.ValidationError('name must be at least 2 characters')
        return v

    def validate_lastName(self, v):
        return clean_text(v)

    def validate(self, attrs):
        if attrs['role'] != 'patient' and not attrs.get('organizationId'):
            raise serializers.ValidationError({'organizationId': ['organization is required for staff accounts']})
        attrs['username'] = (attrs.get('username') or attrs['email']).strip()
        return attrs


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField(required=False)


def user_payload(user: User) -> dict:
    org = user.organization if user.organization_id else None
    return {
        'id': user.id,
        'username': user.username,
        'email': user.email,
        'name': user.name,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'phone': user.phone,
        'dateOfBirth': iso(user.date_of_birth),
        'role': user.role,
        'isActive': user.is_active,
        'organizationId': user.organization_id,
        'organization': {'id': org.id, 'name': org.name, 'slug': org.slug} if org else None,
        'lastLogin': iso(user.last_login),
    }
