from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User, ScoreHistoryEntry, BadgeAward


class BadgeAwardInline(admin.TabularInline):
    model = BadgeAward
    extra = 0
    readonly_fields = ("badge_type", "awarded_at")


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    ordering = ("email",)
    list_display = ("email", "first_name", "last_name", "is_email_verified", "loop_score", "is_staff")
    list_filter = ("is_email_verified", "is_staff", "is_superuser", "is_active")
    search_fields = ("email", "first_name", "last_name")
    readonly_fields = ("loop_score", "consecutive_on_time_returns", "created_at", "updated_at", "last_login")
    inlines = [BadgeAwardInline]

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Personal info", {"fields": ("first_name", "last_name", "street_address", "invited_by")}),
        ("Verification", {"fields": ("is_email_verified", "email_verification_token", "email_verification_expiry")}),
        ("LoopScore", {"fields": ("loop_score", "consecutive_on_time_returns")}),
        ("Permissions", {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")}),
        ("Dates", {"fields": ("last_login", "created_at", "updated_at")}),
    )
    add_fieldsets = (
        (None, {
            "classes": ("wide",),
            "fields": ("email", "first_name", "last_name", "password1", "password2"),
        }),
    )


@admin.register(ScoreHistoryEntry)
class ScoreHistoryEntryAdmin(admin.ModelAdmin):
    list_display = ("user", "action_type", "points", "item_name", "timestamp")
    list_filter = ("action_type",)
    search_fields = ("user__email", "item_name")
    ordering = ("-timestamp",)
