import logging

from notifications.models import Notification

logger = logging.getLogger(__name__)


def create_notification(user_id, notification_type, message, item_id=None, item_request_id=None, related_user_id=None):
    notification = Notification.objects.create(
        user_id=user_id,
        type=notification_type,
        message=message,
        item_id=item_id,
        item_request_id=item_request_id,
        related_user_id=related_user_id,
        is_read=False,
    )
    logger.info(f"Notification {notification.type} created for user {user_id}")
    return notification


def user_notifications_queryset(user_id):
    return Notification.objects.filter(user_id=user_id).order_by("-created_at", "-id")


def get_user_notifications(user_id, limit=50):
    return list(user_notifications_queryset(user_id)[:limit])


def get_unread_count(user_id):
    return Notification.objects.filter(user_id=user_id, is_read=False).count()


def mark_as_read(notification_id, user_id):
    """
    Returns the updated notification, or None when it does not exist or
    belongs to someone else.
    """
    updated = Notification.objects.filter(pk=notification_id, user_id=user_id).update(is_read=True)
    if not updated:
        return None
    return Notification.objects.get(pk=notification_id)


def mark_all_as_read(user_id):
    updated = Notification.objects.filter(user_id=user_id, is_read=False).update(is_read=True)
    return updated > 0


def delete_notification(notification_id, user_id):
    deleted, _ = Notification.objects.filter(pk=notification_id, user_id=user_id).delete()
    return deleted > 0
