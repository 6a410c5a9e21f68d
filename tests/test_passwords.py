import pytest

from users.services import password_service


class TestValidatePassword:

    def test_strong_password_has_no_errors(self):
        assert password_service.validate_password("Secret#123") == []

    def test_empty_password(self):
        assert password_service.validate_password("") == ["Password is required"]
        assert password_service.validate_password("   ") == ["Password is required"]

    def test_each_rule_reports_its_own_message(self):
        errors = password_service.validate_password("abc")
        assert len(errors) == 3
        assert any("at least 8 characters" in e for e in errors)
        assert any("uppercase" in e for e in errors)
        assert any("special character" in e for e in errors)

    def test_missing_lowercase(self):
        errors = password_service.validate_password("SECRET#123")
        assert errors == ["Password must contain at least one lowercase letter"]

    def test_digits_are_not_required(self):
        assert password_service.validate_password("Secret#word") == []


class TestPasswordStrength:

    @pytest.mark.parametrize("password, expected", [
        ("", 0),
        ("abc", 0),
        ("abcdefgh", 1),
        ("Abcdefgh", 2),
        ("Abcdefg1", 3),
        ("Abcdefg1!xyz", 4),
    ])
    def test_strength_scale(self, password, expected):
        assert password_service.get_password_strength(password) == expected


class TestHashing:

    def test_hash_and_verify(self):
        hashed = password_service.hash_password("Secret#123")
        assert hashed != "Secret#123"
        assert password_service.verify_password("Secret#123", hashed)
        assert not password_service.verify_password("secret#123", hashed)

    def test_empty_password_cannot_be_hashed(self):
        with pytest.raises(ValueError):
            password_service.hash_password("")

    def test_verify_handles_missing_values(self):
        assert not password_service.verify_password("", "anything")
        assert not password_service.verify_password("Secret#123", None)

    def test_bcrypt_is_the_default_hasher(self, settings):
        settings.PASSWORD_HASHERS = [
            "django.contrib.auth.hashers.BCryptSHA256PasswordHasher",
            "django.contrib.auth.hashers.PBKDF2PasswordHasher",
        ]
        hashed = password_service.hash_password("Secret#123")
        assert hashed.startswith("bcrypt_sha256$")
        assert password_service.verify_password("Secret#123", hashed)
