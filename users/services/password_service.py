from django.contrib.auth.hashers import make_password, check_password

MIN_PASSWORD_LENGTH = 8
SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{}|;:,.<>?"


def validate_password(password):
    """
    Check a password against the account policy.
    Returns a list of error messages, empty when the password is acceptable.
    """
    if not password or not password.strip():
        return ["Password is required"]

    errors = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if not any(c.islower() for c in password):
        errors.append("Password must contain at least one lowercase letter")
    if not any(c.isupper() for c in password):
        errors.append("Password must contain at least one uppercase letter")
    if not any(c in SPECIAL_CHARACTERS for c in password):
        errors.append(f"Password must contain at least one special character ({SPECIAL_CHARACTERS})")
    return errors


def hash_password(password):
    if not password or not password.strip():
        raise ValueError("Password cannot be empty")
    return make_password(password)


def verify_password(password, password_hash):
    if not password or not password_hash:
        return False
    return check_password(password, password_hash)


def get_password_strength(password):
    """
    Score from 0 (weak) to 4 (very strong).
    """
    if not password or not password.strip():
        return 0

    has_lower = any(c.islower() for c in password)
    has_upper = any(c.isupper() for c in password)
    has_digit = any(c.isdigit() for c in password)
    has_letter = any(c.isalpha() for c in password)
    has_special = any(c in SPECIAL_CHARACTERS for c in password)

    score = sum([
        len(password) >= 8,
        len(password) >= 12,
        has_lower,
        has_upper,
        has_digit,
        has_special,
        has_lower and has_upper,
        has_digit and has_letter,
    ])
    return min(score // 2, 4)
