from django.urls import path
from . import views

app_name = "users"

urlpatterns = [
    path("<int:user_id>/score", views.UserScoreView.as_view(), name="score"),
    path("<int:user_id>/score-history", views.ScoreHistoryView.as_view(), name="score-history"),
    path("<int:user_id>/badges", views.UserBadgesView.as_view(), name="badges"),
    path("<int:user_id>/badge-progress", views.BadgeProgressView.as_view(), name="badge-progress"),
]
