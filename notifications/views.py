from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .filters import NotificationFilter
from .serializers import NotificationSerializer
from .services import notification_service


class NotificationListView(APIView):
    """
    GET /api/notifications?limit=50&is_read=false&type=ItemRequestApproved
    Newest first.
    """
    def get(self, request):
        try:
            limit = int(request.query_params.get("limit", 50))
        except (TypeError, ValueError):
            limit = 50
        if limit <= 0:
            limit = 50

        filterset = NotificationFilter(
            request.query_params, queryset=notification_service.user_notifications_queryset(request.user.id)
        )
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)

        notifications = filterset.qs[:limit]
        return Response(NotificationSerializer(notifications, many=True).data)


class UnreadCountView(APIView):
    def get(self, request):
        return Response({"count": notification_service.get_unread_count(request.user.id)})


class MarkAsReadView(APIView):
    def put(self, request, pk):
        notification = notification_service.mark_as_read(pk, request.user.id)
        if notification is None:
            return Response({"error": f"Notification {pk} not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(NotificationSerializer(notification).data)


class MarkAllAsReadView(APIView):
    def put(self, request):
        changed = notification_service.mark_all_as_read(request.user.id)
        return Response({"success": changed})


class NotificationDetailView(APIView):
    def delete(self, request, pk):
        if not notification_service.delete_notification(pk, request.user.id):
            return Response({"error": f"Notification {pk} not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)
