from django.contrib import admin
from django.utils import timezone

from .models import Loop, OwnershipTransfer, LoopInvitation, LoopJoinRequest


class LoopInvitationInline(admin.TabularInline):
    model = LoopInvitation
    extra = 0
    fields = ("invited_email", "invited_user", "invited_by", "status", "expires_at")
    readonly_fields = ("invited_by", "expires_at")
    ordering = ("-created_at",)


@admin.register(Loop)
class LoopAdmin(admin.ModelAdmin):
    list_display = ("name", "creator", "member_count", "is_public", "is_archived", "created_at")
    list_filter = ("is_public", "is_archived")
    search_fields = ("name", "description", "creator__email")
    filter_horizontal = ("members",)
    readonly_fields = ("created_at", "updated_at", "archived_at")
    inlines = [LoopInvitationInline]

    def member_count(self, obj):
        return obj.members.count()
    member_count.short_description = "Members"


@admin.register(LoopInvitation)
class LoopInvitationAdmin(admin.ModelAdmin):
    list_display = ("loop", "invited_email", "invited_by", "status", "expires_at", "accepted_at")
    list_filter = ("status",)
    search_fields = ("invited_email", "loop__name")
    ordering = ("-created_at",)
    actions = ["mark_expired"]

    def mark_expired(self, request, queryset):
        updated = queryset.filter(status="Pending", expires_at__lte=timezone.now()).update(status="Expired")
        self.message_user(request, f"{updated} invitation(s) marked as expired.")
    mark_expired.short_description = "Expire selected invitations past their expiry date"


@admin.register(LoopJoinRequest)
class LoopJoinRequestAdmin(admin.ModelAdmin):
    list_display = ("loop", "user", "status", "created_at", "responded_at")
    list_filter = ("status",)
    search_fields = ("loop__name", "user__email")


@admin.register(OwnershipTransfer)
class OwnershipTransferAdmin(admin.ModelAdmin):
    list_display = ("loop", "from_user", "to_user", "status", "transferred_at")
    list_filter = ("status",)
