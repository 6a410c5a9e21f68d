from rest_framework import serializers

from .models import User, ScoreHistoryEntry, BadgeAward


class UserProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "first_name",
            "last_name",
            "street_address",
            "is_email_verified",
            "loop_score",
        ]
        read_only_fields = fields


class UserSummarySerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ["id", "email", "first_name", "last_name", "full_name", "loop_score"]


class ScoreHistoryEntrySerializer(serializers.ModelSerializer):
    item_request_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = ScoreHistoryEntry
        fields = ["timestamp", "points", "action_type", "item_request_id", "item_name"]


class BadgeAwardSerializer(serializers.ModelSerializer):
    class Meta:
        model = BadgeAward
        fields = ["badge_type", "awarded_at"]
