import os
import uuid

from django.conf import settings
from django.db import models


def item_image_path(instance, filename):
    ext = os.path.splitext(filename)[1].lower()
    return f"images/{uuid.uuid4()}{ext}"


class SharedItem(models.Model):
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="items"
    )
    is_available = models.BooleanField(default=True)
    image = models.FileField(upload_to=item_image_path, null=True, blank=True)

    visible_to_loops = models.ManyToManyField("loops.Loop", related_name="visible_items", blank=True)
    visible_to_all_loops = models.BooleanField(default=False)
    visible_to_future_loops = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at", "-id")

    @property
    def image_url(self):
        return self.image.url if self.image else None

    def __str__(self):
        return f"{self.name} ({self.owner_id})"
