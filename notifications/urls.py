from django.urls import path
from . import views

app_name = "notifications"

urlpatterns = [
    path("", views.NotificationListView.as_view(), name="notification-list"),
    path("unread-count", views.UnreadCountView.as_view(), name="unread-count"),
    path("mark-all-read", views.MarkAllAsReadView.as_view(), name="mark-all-read"),
    path("<int:pk>/read", views.MarkAsReadView.as_view(), name="mark-read"),
    path("<int:pk>", views.NotificationDetailView.as_view(), name="notification-detail"),
]
