from rest_framework import serializers

from .models import SharedItem


class SharedItemSerializer(serializers.ModelSerializer):
    owner_id = serializers.IntegerField(read_only=True)
    owner_name = serializers.CharField(source="owner.full_name", read_only=True)
    owner_loop_score = serializers.IntegerField(source="owner.loop_score", read_only=True)
    image_url = serializers.CharField(read_only=True)
    visible_to_loop_ids = serializers.SerializerMethodField()

    class Meta:
        model = SharedItem
        fields = [
            "id",
            "name",
            "description",
            "owner_id",
            "owner_name",
            "owner_loop_score",
            "is_available",
            "image_url",
            "visible_to_loop_ids",
            "visible_to_all_loops",
            "visible_to_future_loops",
            "created_at",
            "updated_at",
        ]

    def get_visible_to_loop_ids(self, obj):
        return [loop.pk for loop in obj.visible_to_loops.all()]


class SharedItemWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    is_available = serializers.BooleanField(required=False, default=True)
    visible_to_loop_ids = serializers.ListField(
        child=serializers.IntegerField(), required=False, default=list
    )
    visible_to_all_loops = serializers.BooleanField(required=False, default=False)
    visible_to_future_loops = serializers.BooleanField(required=False, default=False)


class ItemVisibilitySerializer(serializers.Serializer):
    visible_to_loop_ids = serializers.ListField(
        child=serializers.IntegerField(), required=False, default=list
    )
    visible_to_all_loops = serializers.BooleanField(required=False, default=False)
    visible_to_future_loops = serializers.BooleanField(required=False, default=False)
