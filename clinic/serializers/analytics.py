from rest_framework import serializers

from clinic.services.analytics import PERIODS


class AnalyticsQuerySerializer(serializers.Serializer):
    organizationId = serializers.IntegerField(required=False, min_value=1)
    period = serializers.ChoiceField(choices=[*PERIODS, 'all'], required=False, default='30d')
