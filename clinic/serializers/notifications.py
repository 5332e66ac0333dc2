from rest_framework import serializers

from clinic.models import Notification
from clinic.serializers.common import clean_text


class NotificationListQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1, default=20)
    unreadOnly = serializers.BooleanField(required=False, default=False)
    category = serializers.ChoiceField(choices=[c for c, _ in Notification.CATEGORY_CHOICES], required=False)
    type = serializers.ChoiceField(choices=[c for c, _ in Notification.TYPE_CHOICES], required=False)


class AnnouncementSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    message = serializers.CharField(max_length=2000)
    priority = serializers.ChoiceField(choices=[c for c, _ in Notification.PRIORITY_CHOICES], default='medium')
    organizationId = serializers.IntegerField(min_value=1, required=False)

    def validate_title(self, v):
        return clean_text(v)

    def validate_message(self, v):
        return clean_text(v)
