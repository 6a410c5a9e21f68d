from rest_framework import serializers

from users.serializers import UserSummarySerializer
from .models import Loop, OwnershipTransfer, LoopInvitation, LoopJoinRequest


class LoopSerializer(serializers.ModelSerializer):
    creator_id = serializers.IntegerField(read_only=True)
    member_ids = serializers.SerializerMethodField()
    member_count = serializers.SerializerMethodField()
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Loop
        fields = [
            "id",
            "name",
            "description",
            "creator_id",
            "member_ids",
            "member_count",
            "item_count",
            "is_public",
            "is_archived",
            "archived_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["is_archived", "archived_at", "created_at", "updated_at"]

    def get_member_ids(self, obj):
        return list(obj.members.values_list("id", flat=True))

    def get_member_count(self, obj):
        count = getattr(obj, "member_count", None)
        return count if count is not None else obj.members.count()

    def get_item_count(self, obj):
        from items.services.items_service import get_items_by_loop

        return get_items_by_loop(obj).count()


class PublicLoopSerializer(serializers.ModelSerializer):
    creator_name = serializers.CharField(source="creator.full_name", read_only=True)
    member_count = serializers.SerializerMethodField()

    class Meta:
        model = Loop
        fields = ["id", "name", "description", "creator_name", "member_count", "created_at"]

    def get_member_count(self, obj):
        count = getattr(obj, "member_count", None)
        return count if count is not None else obj.members.count()


class CreateLoopSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    is_public = serializers.BooleanField(required=False, default=False)


class InviteUserSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(min_value=1)


class LoopSettingsSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    is_public = serializers.BooleanField(required=False)


class OwnershipTransferSerializer(serializers.ModelSerializer):
    loop_id = serializers.IntegerField(read_only=True)
    from_user = UserSummarySerializer(read_only=True)
    to_user = UserSummarySerializer(read_only=True)

    class Meta:
        model = OwnershipTransfer
        fields = ["id", "loop_id", "from_user", "to_user", "status", "transferred_at"]


class LoopInvitationSerializer(serializers.ModelSerializer):
    """
    Invitation enriched with the loop name and inviter details.
    The token is omitted; it only travels in the invitation email.
    """
    loop_id = serializers.IntegerField(read_only=True)
    loop_name = serializers.CharField(source="loop.name", read_only=True)
    invited_by_id = serializers.IntegerField(read_only=True)
    invited_by_name = serializers.CharField(source="invited_by.full_name", read_only=True)
    invited_by_loop_score = serializers.IntegerField(source="invited_by.loop_score", read_only=True)
    invited_user_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = LoopInvitation
        fields = [
            "id",
            "loop_id",
            "loop_name",
            "invited_by_id",
            "invited_by_name",
            "invited_by_loop_score",
            "invited_email",
            "invited_user_id",
            "status",
            "expires_at",
            "created_at",
            "accepted_at",
        ]


class JoinRequestSerializer(serializers.ModelSerializer):
    loop_id = serializers.IntegerField(read_only=True)
    loop_name = serializers.CharField(source="loop.name", read_only=True)
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = LoopJoinRequest
        fields = ["id", "loop_id", "loop_name", "user", "message", "status", "created_at", "responded_at"]
