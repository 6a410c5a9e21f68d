import logging

from django.conf import settings
from django.contrib.auth.models import update_last_login
from django.db import IntegrityError
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.utils import datetime_from_epoch

from notifications.services import email_service
from users.serializers import UserProfileSerializer
from users.services import user_service, password_service
from .serializers import RegisterSerializer, LoginSerializer, VerifyEmailSerializer, EmailOnlySerializer

logger = logging.getLogger(__name__)

RESEND_GENERIC_MESSAGE = "If an account exists with this email, a verification email has been sent."


def issue_tokens(user):
    """
    Refresh/access pair carrying the profile claims the SPA reads.
    """
    refresh = RefreshToken.for_user(user)
    refresh["email"] = user.email
    refresh["first_name"] = user.first_name
    refresh["last_name"] = user.last_name
    refresh["is_email_verified"] = user.is_email_verified

    access = refresh.access_token
    return {
        "token": str(access),
        "refresh": str(refresh),
        "expires_at": datetime_from_epoch(access["exp"]),
    }


class RegisterView(APIView):
    """
    POST /api/auth/register
    { "email", "password", "first_name", "last_name", "street_address" }
    """
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if user_service.get_user_by_email(data["email"]) is not None:
            return Response({"error": "A user with this email already exists"}, status=status.HTTP_409_CONFLICT)

        try:
            user = user_service.create_user(**data)
        except IntegrityError:
            return Response({"error": "A user with this email already exists"}, status=status.HTTP_409_CONFLICT)

        if not email_service.send_verification_email(user, user.email_verification_token):
            logger.warning(f"Verification email could not be sent to {user.email}")

        return Response({
            "success": True,
            "message": "Registration successful. Please check your email to verify your account.",
            "user": UserProfileSerializer(user).data,
        })


class LoginView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = user_service.get_user_by_email(serializer.validated_data["email"])
        if user is None or not user.is_active or not password_service.verify_password(
            serializer.validated_data["password"], user.password
        ):
            return Response({"error": "Invalid email or password"}, status=status.HTTP_401_UNAUTHORIZED)

        if not user.is_email_verified:
            return Response(
                {"error": "Please verify your email address before logging in."},
                status=status.HTTP_403_FORBIDDEN,
            )

        update_last_login(None, user)
        logger.info(f"User logged in: {user.email}")
        return Response({**issue_tokens(user), "user": UserProfileSerializer(user).data})


class VerifyEmailView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = VerifyEmailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = user_service.verify_email(serializer.validated_data["token"])
        if user is None:
            return Response({"error": "Invalid or expired verification token"}, status=status.HTTP_400_BAD_REQUEST)

        return Response({
            "success": True,
            "message": "Email verified successfully. You can now log in.",
            "user": UserProfileSerializer(user).data,
        })


class ResendVerificationView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = EmailOnlySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = user_service.get_user_by_email(serializer.validated_data["email"])
        if user is None:
            # same answer as success so addresses cannot be probed
            return Response({"success": True, "message": RESEND_GENERIC_MESSAGE})

        if user.is_email_verified:
            return Response({"error": "Email is already verified"}, status=status.HTTP_400_BAD_REQUEST)

        token = user_service.refresh_verification_token(user)
        if not email_service.send_verification_email(user, token):
            logger.warning(f"Verification email could not be re-sent to {user.email}")

        return Response({"success": True, "message": RESEND_GENERIC_MESSAGE})


class LogoutView(APIView):
    """
    Tokens are stateless; the client discards them.
    """
    def post(self, request):
        logger.info(f"User logged out: {request.user.email}")
        return Response({"success": True, "message": "Logged out successfully"})


class MeView(APIView):
    def get(self, request):
        return Response(UserProfileSerializer(request.user).data)


class PostLoginRouteView(APIView):
    def get(self, request):
        has_loops = request.user.loops.exists()
        return Response({"route": "/loops" if has_loops else "/loops/create"})


# --- Email diagnostics ---
class EmailHealthView(APIView):
    def get(self, request):
        return Response(email_service.get_email_health_status())


class TestEmailView(APIView):
    """
    POST /api/auth/test-email  { "email": optional recipient }
    """
    def post(self, request):
        to_email = request.data.get("email") or request.user.email
        if email_service.send_test_email(to_email):
            return Response({"success": True, "message": f"Test email sent to {to_email}"})
        return Response(
            {"success": False, "error": f"Failed to send test email to {to_email}"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


# --- Development helpers (DEBUG only) ---
class DevVerifyUserView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        if not settings.DEBUG:
            return Response({"error": "Not found"}, status=status.HTTP_404_NOT_FOUND)

        user = user_service.get_user_by_email(request.data.get("email"))
        if user is None:
            return Response({"error": "User not found"}, status=status.HTTP_404_NOT_FOUND)

        user_service.update_user(
            user.pk, is_email_verified=True, email_verification_token=None, email_verification_expiry=None
        )
        logger.info(f"DEV: email verified without token for {user.email}")
        return Response({"success": True, "message": f"User {user.email} verified"})


class DevUserStatusView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, email):
        if not settings.DEBUG:
            return Response({"error": "Not found"}, status=status.HTTP_404_NOT_FOUND)

        user = user_service.get_user_by_email(email)
        if user is None:
            return Response({"error": "User not found"}, status=status.HTTP_404_NOT_FOUND)

        return Response({
            "email": user.email,
            "is_email_verified": user.is_email_verified,
            "has_verification_token": bool(user.email_verification_token),
            "verification_expiry": user.email_verification_expiry,
            "created_at": user.created_at,
        })
