from django.contrib import admin
from django.utils.html import format_html

from .models import SharedItem


@admin.register(SharedItem)
class SharedItemAdmin(admin.ModelAdmin):
    list_display = ("name", "owner", "availability_display", "visible_to_all_loops", "created_at")
    list_filter = ("is_available", "visible_to_all_loops", "visible_to_future_loops")
    search_fields = ("name", "description", "owner__email")
    filter_horizontal = ("visible_to_loops",)
    readonly_fields = ("created_at", "updated_at")

    def availability_display(self, obj):
        color = "green" if obj.is_available else "red"
        label = "Available" if obj.is_available else "Lent out"
        return format_html('<span style="color:{}; font-weight:600;">{}</span>', color, label)
    availability_display.short_description = "Availability"
