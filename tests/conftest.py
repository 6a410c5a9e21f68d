import pytest
from rest_framework.test import APIClient

from items.services import items_service
from loops.services import loop_service
from users.models import User

PASSWORD = "Secret#123"


@pytest.fixture(autouse=True)
def test_settings(settings, tmp_path):
    settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.EMAIL_TEST_MODE = False
    settings.MEDIA_ROOT = tmp_path / "uploads"
    return settings


@pytest.fixture
def make_user(db):
    def _make(email, first_name="Test", last_name="User", verified=True, password=PASSWORD, **extra):
        return User.objects.create_user(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            is_email_verified=verified,
            **extra,
        )
    return _make


@pytest.fixture
def alice(make_user):
    return make_user("alice@example.com", first_name="Alice", last_name="Owner")


@pytest.fixture
def bob(make_user):
    return make_user("bob@example.com", first_name="Bob", last_name="Borrower")


@pytest.fixture
def carol(make_user):
    return make_user("carol@example.com", first_name="Carol", last_name="Outsider")


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _client


@pytest.fixture
def loop(alice, bob):
    """
    Alice owns the loop, Bob is a member.
    """
    new_loop = loop_service.create_loop(alice, "Maple Street", description="Neighbours on Maple Street")
    loop_service.add_member(new_loop.pk, bob.pk)
    return new_loop


@pytest.fixture
def drill(alice, loop):
    return items_service.create_item(
        alice, "Cordless Drill", description="18V with two batteries", visible_to_loop_ids=[loop.pk]
    )
