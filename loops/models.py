from django.conf import settings
from django.db import models
from django.utils import timezone

# -------------------------------
# Statuses
# -------------------------------
TRANSFER_STATUS = [
    ("Pending", "Pending"),
    ("Accepted", "Accepted"),
    ("Declined", "Declined"),
    ("Cancelled", "Cancelled"),
]

INVITATION_STATUS = [
    ("Pending", "Pending"),
    ("Accepted", "Accepted"),
    ("Expired", "Expired"),
    ("Declined", "Declined"),
]

JOIN_REQUEST_STATUS = [
    ("Pending", "Pending"),
    ("Approved", "Approved"),
    ("Rejected", "Rejected"),
]


class Loop(models.Model):
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, default="")
    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="owned_loops"
    )
    members = models.ManyToManyField(settings.AUTH_USER_MODEL, related_name="loops", blank=True)
    is_public = models.BooleanField(default=False)
    is_archived = models.BooleanField(default=False)
    archived_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at", "-id")

    def is_owner(self, user_id):
        return self.creator_id == user_id

    def __str__(self):
        return f"{self.name} (#{self.pk})"


class OwnershipTransfer(models.Model):
    loop = models.ForeignKey(Loop, on_delete=models.CASCADE, related_name="ownership_transfers")
    from_user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="+")
    to_user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="+")
    status = models.CharField(max_length=20, choices=TRANSFER_STATUS, default="Pending")
    transferred_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ("-transferred_at", "-id")

    def __str__(self):
        return f"Loop #{self.loop_id}: {self.from_user_id} -> {self.to_user_id} ({self.status})"


class LoopInvitation(models.Model):
    loop = models.ForeignKey(Loop, on_delete=models.CASCADE, related_name="invitations")
    invited_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="sent_loop_invitations"
    )
    invited_email = models.EmailField(db_index=True)
    invited_user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, null=True, blank=True,
        related_name="loop_invitations",
    )
    invitation_token = models.CharField(max_length=128, unique=True)
    status = models.CharField(max_length=20, choices=INVITATION_STATUS, default="Pending", db_index=True)
    expires_at = models.DateTimeField(db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    accepted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ("-created_at", "-id")

    def __str__(self):
        return f"Invitation to {self.loop} for {self.invited_email} ({self.status})"


class LoopJoinRequest(models.Model):
    loop = models.ForeignKey(Loop, on_delete=models.CASCADE, related_name="join_requests")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="loop_join_requests"
    )
    message = models.TextField(blank=True, default="")
    status = models.CharField(max_length=20, choices=JOIN_REQUEST_STATUS, default="Pending", db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ("-created_at", "-id")
        indexes = [
            models.Index(fields=["loop", "status"]),
            models.Index(fields=["user", "status"]),
        ]

    def __str__(self):
        return f"Join request {self.user_id} -> {self.loop} ({self.status})"
