import logging
import secrets
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from users.models import User
from users.services import password_service

logger = logging.getLogger(__name__)


def generate_token():
    """
    URL-safe random token (32 bytes of entropy).
    """
    return secrets.token_urlsafe(32)


def get_user_by_email(email):
    if not email:
        return None
    return User.objects.filter(email__iexact=email.strip()).first()


def get_user_by_id(user_id):
    return User.objects.filter(pk=user_id).first()


def create_user(email, password, first_name="", last_name="", street_address="", **extra_fields):
    """
    Create an unverified user with a fresh email verification token.
    """
    lifetime = settings.LENDINGLOOP["EMAIL_VERIFICATION_LIFETIME_HOURS"]
    user = User(
        email=User.objects.normalize_email(email.strip()),
        first_name=first_name,
        last_name=last_name,
        street_address=street_address,
        is_email_verified=False,
        email_verification_token=generate_token(),
        email_verification_expiry=timezone.now() + timedelta(hours=lifetime),
        **extra_fields,
    )
    user.password = password_service.hash_password(password)
    user.save()
    logger.info(f"User created: {user.email}")
    return user


def update_user(user_id, **fields):
    user = get_user_by_id(user_id)
    if user is None:
        return None
    for name, value in fields.items():
        setattr(user, name, value)
    user.save()
    return user


def delete_user(user_id):
    deleted, _ = User.objects.filter(pk=user_id).delete()
    return deleted > 0


def refresh_verification_token(user):
    lifetime = settings.LENDINGLOOP["EMAIL_VERIFICATION_LIFETIME_HOURS"]
    user.email_verification_token = generate_token()
    user.email_verification_expiry = timezone.now() + timedelta(hours=lifetime)
    user.save(update_fields=["email_verification_token", "email_verification_expiry", "updated_at"])
    return user.email_verification_token


def verify_email(token):
    """
    Mark the owner of `token` verified. Returns the user, or None when the
    token is unknown or expired.
    """
    if not token:
        return None

    user = User.objects.filter(
        email_verification_token=token,
        email_verification_expiry__gt=timezone.now(),
    ).first()
    if user is None:
        return None

    # token is single use: only the first of two concurrent calls matches
    updated = User.objects.filter(pk=user.pk, email_verification_token=token).update(
        is_email_verified=True,
        email_verification_token=None,
        email_verification_expiry=None,
        updated_at=timezone.now(),
    )
    if not updated:
        return None

    user.refresh_from_db()
    logger.info(f"Email verified for user {user.email}")

    if user.invited_by_id:
        from users.services import score_service

        score_service.check_achievement_badge(user.invited_by, "CommunityBuilder")
    return user
