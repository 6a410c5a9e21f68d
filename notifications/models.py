from django.conf import settings
from django.db import models

NOTIFICATION_TYPES = [
    ("ItemRequestCreated", "Item Request Created"),
    ("ItemRequestApproved", "Item Request Approved"),
    ("ItemRequestRejected", "Item Request Rejected"),
    ("ItemRequestCompleted", "Item Request Completed"),
    ("ItemRequestCancelled", "Item Request Cancelled"),
]


class Notification(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications"
    )
    type = models.CharField(max_length=30, choices=NOTIFICATION_TYPES)
    message = models.TextField()
    item = models.ForeignKey(
        "items.SharedItem", on_delete=models.SET_NULL, null=True, blank=True, related_name="notifications"
    )
    item_request = models.ForeignKey(
        "item_requests.ItemRequest", on_delete=models.SET_NULL, null=True, blank=True, related_name="notifications"
    )
    related_user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at", "-id")
        indexes = [
            models.Index(fields=["user", "-created_at"]),
            models.Index(fields=["user", "is_read"]),
        ]

    def __str__(self):
        return f"{self.type} -> {self.user_id} ({'read' if self.is_read else 'unread'})"
