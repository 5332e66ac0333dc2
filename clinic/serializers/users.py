from rest_framework import serializers

from clinic.serializers.common import PageQuerySerializer, clean_text


class UserCreateSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150, required=False)
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, write_only=True)
    firstName = serializers.CharField(max_length=150)
    lastName = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default='')
    role = serializers.ChoiceField(choices=['admin', 'doctor', 'patient'])
    organizationId = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    def validate_firstName(self, v):
        return clean_text(v)

    def validate_lastName(self, v):
        return clean_text(v)

    def account_fields(self) -> dict:
        vd = self.validated_data
        return {
            'username': (vd.get('username') or vd['email']).strip(),
            'email': vd['email'],
            'password': vd['password'],
            'role': vd['role'],
            'organization_id': vd.get('organizationId'),
            'first_name': vd['firstName'],
            'last_name': vd.get('lastName', ''),
            'phone': vd.get('phone', ''),
        }


class UserListQuerySerializer(PageQuerySerializer):
    role = serializers.ChoiceField(choices=['superadmin', 'admin', 'doctor', 'patient'], required=False)
    q = serializers.CharField(max_length=64, required=False)
    includeInactive = serializers.BooleanField(required=False, default=False)
