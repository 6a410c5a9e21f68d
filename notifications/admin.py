from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("user", "type", "short_message", "is_read", "created_at")
    list_filter = ("type", "is_read", "created_at")
    search_fields = ("user__email", "message")
    ordering = ("-created_at",)
    actions = ["mark_read"]

    def short_message(self, obj):
        return obj.message[:60]
    short_message.short_description = "Message"

    def mark_read(self, request, queryset):
        updated = queryset.update(is_read=True)
        self.message_user(request, f"{updated} notification(s) marked as read.")
    mark_read.short_description = "Mark selected notifications as read"
