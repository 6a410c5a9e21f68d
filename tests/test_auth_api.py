from datetime import timedelta

import pytest
from django.core import mail
from django.utils import timezone

from loops.services import loop_service
from users.models import User

REGISTRATION = {
    "email": "dana@example.com",
    "password": "Secret#123",
    "first_name": "Dana",
    "last_name": "Newcomer",
    "street_address": "12 Maple Street",
}


@pytest.mark.django_db
class TestRegister:

    def test_register_creates_unverified_user_and_sends_email(self, api_client):
        response = api_client.post("/api/auth/register", REGISTRATION, format="json")

        assert response.status_code == 200
        assert response.data["success"] is True
        assert response.data["user"]["email"] == "dana@example.com"
        assert response.data["user"]["is_email_verified"] is False

        user = User.objects.get(email="dana@example.com")
        assert user.email_verification_token
        assert user.email_verification_expiry > timezone.now() + timedelta(hours=23)
        assert user.check_password("Secret#123")

        assert len(mail.outbox) == 1
        assert mail.outbox[0].subject == "Verify Your Email Address"
        assert user.email_verification_token in mail.outbox[0].alternatives[0][0]

    def test_duplicate_email_conflicts(self, api_client, alice):
        payload = {**REGISTRATION, "email": "ALICE@example.com"}
        response = api_client.post("/api/auth/register", payload, format="json")
        assert response.status_code == 409

    def test_weak_password_rejected_with_messages(self, api_client):
        payload = {**REGISTRATION, "password": "password"}
        response = api_client.post("/api/auth/register", payload, format="json")

        assert response.status_code == 400
        assert "Password must contain at least one uppercase letter" in response.data["password"]
        assert not User.objects.filter(email="dana@example.com").exists()


@pytest.mark.django_db
class TestLogin:

    def test_login_returns_usable_token(self, api_client, alice):
        response = api_client.post(
            "/api/auth/login", {"email": "alice@example.com", "password": "Secret#123"}, format="json"
        )

        assert response.status_code == 200
        assert response.data["user"]["id"] == alice.pk
        assert response.data["expires_at"] > timezone.now() + timedelta(hours=23)
        alice.refresh_from_db()
        assert alice.last_login is not None

        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['token']}")
        me = api_client.get("/api/auth/me")
        assert me.status_code == 200
        assert me.data["email"] == "alice@example.com"

    def test_email_is_case_insensitive(self, api_client, alice):
        response = api_client.post(
            "/api/auth/login", {"email": "Alice@Example.com", "password": "Secret#123"}, format="json"
        )
        assert response.status_code == 200

    @pytest.mark.parametrize("email, password", [
        ("alice@example.com", "Wrong#123"),
        ("nobody@example.com", "Secret#123"),
    ])
    def test_bad_credentials(self, api_client, alice, email, password):
        response = api_client.post("/api/auth/login", {"email": email, "password": password}, format="json")
        assert response.status_code == 401
        assert response.data["error"] == "Invalid email or password"

    def test_unverified_user_is_forbidden(self, api_client, make_user):
        make_user("pending@example.com", verified=False)
        response = api_client.post(
            "/api/auth/login", {"email": "pending@example.com", "password": "Secret#123"}, format="json"
        )
        assert response.status_code == 403


@pytest.mark.django_db
class TestEmailVerification:

    def test_verify_then_login(self, api_client):
        api_client.post("/api/auth/register", REGISTRATION, format="json")
        token = User.objects.get(email="dana@example.com").email_verification_token

        response = api_client.post("/api/auth/verify-email", {"token": token}, format="json")
        assert response.status_code == 200
        assert response.data["user"]["is_email_verified"] is True

        again = api_client.post("/api/auth/verify-email", {"token": token}, format="json")
        assert again.status_code == 400

    def test_expired_token_rejected(self, api_client):
        api_client.post("/api/auth/register", REGISTRATION, format="json")
        user = User.objects.get(email="dana@example.com")
        User.objects.filter(pk=user.pk).update(email_verification_expiry=timezone.now() - timedelta(minutes=1))

        response = api_client.post(
            "/api/auth/verify-email", {"token": user.email_verification_token}, format="json"
        )
        assert response.status_code == 400
        user.refresh_from_db()
        assert user.is_email_verified is False

    def test_resend_for_unknown_email_is_generic(self, api_client):
        response = api_client.post("/api/auth/resend-verification", {"email": "ghost@example.com"}, format="json")
        assert response.status_code == 200
        assert mail.outbox == []

    def test_resend_for_verified_user(self, api_client, alice):
        response = api_client.post("/api/auth/resend-verification", {"email": alice.email}, format="json")
        assert response.status_code == 400

    def test_resend_issues_new_token(self, api_client):
        api_client.post("/api/auth/register", REGISTRATION, format="json")
        old_token = User.objects.get(email="dana@example.com").email_verification_token

        response = api_client.post("/api/auth/resend-verification", {"email": "dana@example.com"}, format="json")

        assert response.status_code == 200
        new_token = User.objects.get(email="dana@example.com").email_verification_token
        assert new_token != old_token
        assert len(mail.outbox) == 2


@pytest.mark.django_db
class TestSession:

    def test_post_login_route(self, client_for, alice):
        client = client_for(alice)
        assert client.get("/api/auth/post-login-route").data == {"route": "/loops/create"}

        loop_service.create_loop(alice, "Book Club")
        assert client.get("/api/auth/post-login-route").data == {"route": "/loops"}

    def test_logout(self, client_for, alice):
        response = client_for(alice).post("/api/auth/logout")
        assert response.status_code == 200
        assert response.data["success"] is True

    def test_me_requires_authentication(self, api_client):
        assert api_client.get("/api/auth/me").status_code == 401


@pytest.mark.django_db
class TestEmailDiagnostics:

    def test_health(self, client_for, alice):
        response = client_for(alice).get("/api/auth/email-health")
        assert response.status_code == 200
        assert response.data["is_configured"] is True
        assert response.data["configuration_errors"] == []

    def test_send_test_email(self, client_for, alice):
        response = client_for(alice).post("/api/auth/test-email", {}, format="json")
        assert response.status_code == 200
        assert mail.outbox[0].subject == "Email Configuration Test"
        assert mail.outbox[0].to == ["alice@example.com"]


@pytest.mark.django_db
class TestDevHelpers:

    def test_verify_user_in_debug(self, api_client, make_user, settings):
        settings.DEBUG = True
        make_user("pending@example.com", verified=False)

        response = api_client.post("/api/auth/dev/verify-user", {"email": "pending@example.com"}, format="json")
        assert response.status_code == 200

        status = api_client.get("/api/auth/dev/user-status/pending@example.com")
        assert status.data["is_email_verified"] is True

    def test_hidden_outside_debug(self, api_client, settings):
        settings.DEBUG = False
        response = api_client.post("/api/auth/dev/verify-user", {"email": "x@example.com"}, format="json")
        assert response.status_code == 404
