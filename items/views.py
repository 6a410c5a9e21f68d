from rest_framework import status
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.views import APIView

from backend.core.exceptions import ServiceError, error_response
from .serializers import SharedItemSerializer, SharedItemWriteSerializer, ItemVisibilitySerializer
from .services import items_service


class ItemListCreateView(APIView):
    """
    GET  /api/items   the caller's items
    POST /api/items   create an item owned by the caller
    """
    def get(self, request):
        items = items_service.get_items_by_user(request.user.id)
        return Response(SharedItemSerializer(items, many=True).data)

    def post(self, request):
        serializer = SharedItemWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            item = items_service.create_item(request.user, **serializer.validated_data)
        except ServiceError as e:
            return error_response(e)
        return Response(SharedItemSerializer(item).data, status=status.HTTP_201_CREATED)


class ItemDetailView(APIView):
    def get(self, request, item_id):
        item = items_service.get_item(item_id)
        if item is None:
            return Response({"error": f"Item with id {item_id} not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(SharedItemSerializer(item).data)

    def put(self, request, item_id):
        serializer = SharedItemWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            item = items_service.update_item(item_id, request.user.id, **serializer.validated_data)
        except ServiceError as e:
            return error_response(e)
        return Response(SharedItemSerializer(item).data)

    def delete(self, request, item_id):
        try:
            items_service.delete_item(item_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ItemImageUploadView(APIView):
    """
    POST /api/items/<id>/image   multipart, field "file"
    """
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request, item_id):
        try:
            item = items_service.update_item_image(item_id, request.user.id, request.FILES.get("file"))
        except ServiceError as e:
            return error_response(e)
        return Response({"image_url": item.image_url, "item": SharedItemSerializer(item).data})


class ItemVisibilityView(APIView):
    def put(self, request, item_id):
        serializer = ItemVisibilitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            item = items_service.update_item_visibility(
                item_id,
                request.user.id,
                data["visible_to_loop_ids"],
                data["visible_to_all_loops"],
                data["visible_to_future_loops"],
            )
        except ServiceError as e:
            return error_response(e)
        return Response(SharedItemSerializer(item).data)
