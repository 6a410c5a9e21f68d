from django.contrib import admin

from .models import ItemRequest


@admin.register(ItemRequest)
class ItemRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "item", "requester", "owner", "status", "expected_return_date", "requested_at")
    list_filter = ("status", "requested_at")
    search_fields = ("item__name", "requester__email", "owner__email")
    readonly_fields = ("requested_at", "responded_at", "completed_at")
    ordering = ("-requested_at",)
