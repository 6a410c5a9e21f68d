from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from . import views

app_name = "accounts"

urlpatterns = [
    path("register", views.RegisterView.as_view(), name="register"),
    path("login", views.LoginView.as_view(), name="login"),
    path("refresh", TokenRefreshView.as_view(), name="token-refresh"),
    path("verify-email", views.VerifyEmailView.as_view(), name="verify-email"),
    path("resend-verification", views.ResendVerificationView.as_view(), name="resend-verification"),
    path("logout", views.LogoutView.as_view(), name="logout"),
    path("me", views.MeView.as_view(), name="me"),
    path("post-login-route", views.PostLoginRouteView.as_view(), name="post-login-route"),
    path("email-health", views.EmailHealthView.as_view(), name="email-health"),
    path("test-email", views.TestEmailView.as_view(), name="test-email"),
    path("dev/verify-user", views.DevVerifyUserView.as_view(), name="dev-verify-user"),
    path("dev/user-status/<str:email>", views.DevUserStatusView.as_view(), name="dev-user-status"),
]
