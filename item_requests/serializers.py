from rest_framework import serializers

from .models import ItemRequest


class ItemRequestSerializer(serializers.ModelSerializer):
    """
    Request enriched with item and participant details for list screens.
    """
    item_id = serializers.IntegerField(read_only=True)
    item_name = serializers.CharField(source="item.name", read_only=True)
    item_image_url = serializers.CharField(source="item.image_url", read_only=True)
    requester_id = serializers.IntegerField(read_only=True)
    requester_name = serializers.CharField(source="requester.full_name", read_only=True)
    requester_loop_score = serializers.IntegerField(source="requester.loop_score", read_only=True)
    owner_id = serializers.IntegerField(read_only=True)
    owner_name = serializers.CharField(source="owner.full_name", read_only=True)
    owner_loop_score = serializers.IntegerField(source="owner.loop_score", read_only=True)

    class Meta:
        model = ItemRequest
        fields = [
            "id",
            "item_id",
            "item_name",
            "item_image_url",
            "requester_id",
            "requester_name",
            "requester_loop_score",
            "owner_id",
            "owner_name",
            "owner_loop_score",
            "status",
            "message",
            "expected_return_date",
            "requested_at",
            "responded_at",
            "completed_at",
        ]


class CreateItemRequestSerializer(serializers.Serializer):
    item_id = serializers.IntegerField()
    message = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None, trim_whitespace=False)
    expected_return_date = serializers.DateField(required=False, allow_null=True, default=None)
