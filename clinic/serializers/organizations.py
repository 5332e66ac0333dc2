from rest_framework import serializers

from clinic.models import Organization
from clinic.serializers.common import PageQuerySerializer, clean_text, iso


class OrganizationCreateSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=2, max_length=255)
    type = serializers.ChoiceField(choices=[c for c, _ in Organization.TYPE_CHOICES], default='clinic')
    description = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default='')
    email = serializers.EmailField(required=False, allow_blank=True, default='')
    city = serializers.CharField(max_length=128, required=False, allow_blank=True, default='')
    state = serializers.CharField(max_length=128, required=False, allow_blank=True, default='')
    specialties = serializers.ListField(child=serializers.CharField(max_length=64), required=False, default=list)
    subscriptionPlan = serializers.ChoiceField(choices=[c for c, _ in Organization.PLAN_CHOICES], default='basic')

    def validate_name(self, v):
        return clean_text(v)

    def validate_description(self, v):
        return clean_text(v)

    def model_data(self) -> dict:
        vd = dict(self.validated_data)
        vd['subscription_plan'] = vd.pop('subscriptionPlan')
        return vd


class OrganizationStatusSerializer(serializers.Serializer):
    isActive = serializers.BooleanField(required=False)
    subscriptionStatus = serializers.ChoiceField(
        choices=[c for c, _ in Organization.SUBSCRIPTION_CHOICES], required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('isActive or subscriptionStatus is required')
        return attrs


class OrganizationListQuerySerializer(PageQuerySerializer):
    q = serializers.CharField(max_length=64, required=False)
    type = serializers.ChoiceField(choices=[c for c, _ in Organization.TYPE_CHOICES], required=False)
    includeInactive = serializers.BooleanField(required=False, default=False)


def organization_payload(o: Organization) -> dict:
    return {
        'id': o.id,
        'name': o.name,
        'slug': o.slug,
        'type': o.type,
        'description': o.description,
        'phone': o.phone,
        'email': o.email,
        'city': o.city,
        'state': o.state,
        'specialties': o.specialties,
        'isActive': o.is_active,
        'subscription': {'plan': o.subscription_plan, 'status': o.subscription_status},
        'createdAt': iso(o.created_at),
    }
