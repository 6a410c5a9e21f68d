from django.conf import settings
from django.db import models

REQUEST_STATUS = [
    ("Pending", "Pending"),
    ("Approved", "Approved"),
    ("Rejected", "Rejected"),
    ("Cancelled", "Cancelled"),
    ("Completed", "Completed"),
]


class ItemRequest(models.Model):
    item = models.ForeignKey("items.SharedItem", on_delete=models.CASCADE, related_name="requests")
    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="borrow_requests"
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="lend_requests"
    )
    status = models.CharField(max_length=20, choices=REQUEST_STATUS, default="Pending", db_index=True)
    message = models.TextField(null=True, blank=True)
    expected_return_date = models.DateField(null=True, blank=True)

    requested_at = models.DateTimeField(auto_now_add=True)
    responded_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ("-requested_at", "-id")
        indexes = [
            models.Index(fields=["item", "status"]),
            models.Index(fields=["owner", "status"]),
            models.Index(fields=["requester", "-requested_at"]),
        ]

    def returned_on_time(self):
        """
        No expected date counts as on time.
        """
        if self.expected_return_date is None or self.completed_at is None:
            return True
        return self.completed_at.date() <= self.expected_return_date

    def __str__(self):
        return f"Request #{self.pk} for item {self.item_id} by {self.requester_id} ({self.status})"
