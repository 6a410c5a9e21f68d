from rest_framework import serializers

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = [
            "id",
            "user",
            "type",
            "message",
            "item",
            "item_request",
            "related_user",
            "is_read",
            "created_at",
        ]
        read_only_fields = fields
