"""
Templated transactional email.

Every sender returns True when the message was handed to the mail backend
(or deliberately skipped in test mode / without SMTP credentials) and False
on failure. Senders never raise.
"""
import logging
import smtplib
import time

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.core.validators import validate_email
from django.core.exceptions import ValidationError
from django.template.loader import render_to_string
from django.utils.html import strip_tags

logger = logging.getLogger(__name__)

MAX_RETRY_ATTEMPTS = 2
RETRY_DELAY_SECONDS = 1

BADGE_DESCRIPTIONS = {
    "Bronze": "Reached 10 LoopScore points",
    "Silver": "Reached 50 LoopScore points",
    "Gold": "Reached 100 LoopScore points",
    "FirstLend": "Completed your first lending transaction",
    "ReliableBorrower": "Returned 10 items on time",
    "GenerousLender": "Completed 50 lending transactions",
    "PerfectRecord": "Returned 25 items on time in a row",
    "CommunityBuilder": "Invited 10 active members",
}


def _base_url():
    return settings.LENDINGLOOP["FRONTEND_BASE_URL"].rstrip("/")


def _smtp_unconfigured():
    return settings.EMAIL_BACKEND.endswith("smtp.EmailBackend") and not (
        settings.EMAIL_HOST_USER and settings.EMAIL_HOST_PASSWORD
    )


def _is_valid_email(address):
    try:
        validate_email(address)
    except ValidationError:
        return False
    return True


def send_email(to_email, subject, template, context, email_type="email"):
    if not to_email or not _is_valid_email(to_email):
        logger.error(f"Cannot send {email_type}: invalid email address {to_email!r}")
        return False

    html_body = render_to_string(f"emails/{template}", {"base_url": _base_url(), **context})

    if settings.EMAIL_TEST_MODE:
        logger.info(f"TEST MODE: {email_type} would be sent to {to_email} with subject: {subject}")
        return True

    if _smtp_unconfigured():
        logger.warning(f"SMTP credentials not configured. {email_type} would be sent to {to_email} with subject: {subject}")
        return True

    message = EmailMultiAlternatives(
        subject=subject,
        body=strip_tags(html_body),
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[to_email],
    )
    message.attach_alternative(html_body, "text/html")

    for attempt in range(MAX_RETRY_ATTEMPTS + 1):
        try:
            message.send()
            logger.info(f"{email_type} sent to {to_email}")
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"Attempt {attempt + 1} to send {email_type} to {to_email} failed: {e}")
            if attempt < MAX_RETRY_ATTEMPTS:
                time.sleep(RETRY_DELAY_SECONDS * (attempt + 1))

    logger.error(f"Failed to send {email_type} to {to_email} after {MAX_RETRY_ATTEMPTS + 1} attempts")
    return False


# ----------------------------------------------
# Account emails
# ----------------------------------------------

def send_verification_email(user, verification_token):
    return send_email(
        user.email,
        "Verify Your Email Address",
        "verify_email.html",
        {
            "first_name": user.first_name,
            "verification_url": f"{_base_url()}/verify-email?token={verification_token}",
        },
        email_type="verification email",
    )


def send_password_reset_email(user, reset_token):
    return send_email(
        user.email,
        "Reset Your Password",
        "password_reset.html",
        {
            "first_name": user.first_name,
            "reset_url": f"{_base_url()}/reset-password?token={reset_token}",
        },
        email_type="password reset email",
    )


def send_loop_invitation_email(recipient_email, recipient_name, inviter_name, loop_name, invitation_token):
    return send_email(
        recipient_email,
        f"You're invited to join {loop_name}",
        "loop_invitation.html",
        {
            "recipient_name": recipient_name,
            "inviter_name": inviter_name,
            "loop_name": loop_name,
            "invitation_url": f"{_base_url()}/loops/accept-invitation?token={invitation_token}",
        },
        email_type="loop invitation email",
    )


# ----------------------------------------------
# Item request emails
# ----------------------------------------------

def send_item_request_created_email(owner_email, owner_name, requester_name, item_name, request_id):
    return send_email(
        owner_email,
        f"New request for your item: {item_name}",
        "item_request_created.html",
        {
            "owner_name": owner_name,
            "requester_name": requester_name,
            "item_name": item_name,
            "request_url": f"{_base_url()}/item-requests/{request_id}",
        },
        email_type="item request created email",
    )


def send_item_request_approved_email(requester_email, requester_name, owner_name, item_name):
    return send_email(
        requester_email,
        f"Your request for {item_name} has been approved",
        "item_request_status.html",
        {
            "recipient_name": requester_name,
            "other_name": owner_name,
            "item_name": item_name,
            "status": "approved",
        },
        email_type="item request approved email",
    )


def send_item_request_rejected_email(requester_email, requester_name, owner_name, item_name):
    return send_email(
        requester_email,
        f"Your request for {item_name} was not approved",
        "item_request_status.html",
        {
            "recipient_name": requester_name,
            "other_name": owner_name,
            "item_name": item_name,
            "status": "rejected",
        },
        email_type="item request rejected email",
    )


def send_item_request_completed_email(requester_email, requester_name, owner_name, item_name):
    return send_email(
        requester_email,
        f"Your borrowing of {item_name} is complete",
        "item_request_status.html",
        {
            "recipient_name": requester_name,
            "other_name": owner_name,
            "item_name": item_name,
            "status": "completed",
        },
        email_type="item request completed email",
    )


def send_item_request_cancelled_email(owner_email, owner_name, requester_name, item_name):
    return send_email(
        owner_email,
        f"Request for {item_name} has been cancelled",
        "item_request_status.html",
        {
            "recipient_name": owner_name,
            "other_name": requester_name,
            "item_name": item_name,
            "status": "cancelled",
        },
        email_type="item request cancelled email",
    )


def send_badge_award_email(recipient_email, recipient_name, badge_type, current_score):
    return send_email(
        recipient_email,
        f"Congratulations! You've earned a {badge_type} Badge!",
        "badge_award.html",
        {
            "recipient_name": recipient_name,
            "badge_type": badge_type,
            "badge_description": BADGE_DESCRIPTIONS.get(badge_type, ""),
            "current_score": current_score,
        },
        email_type="badge award email",
    )


# ----------------------------------------------
# Diagnostics
# ----------------------------------------------

def send_test_email(to_email=None):
    to_email = to_email or settings.EMAIL_HOST_USER or settings.DEFAULT_FROM_EMAIL
    result = send_email(to_email, "Email Configuration Test", "test_email.html", {}, email_type="test email")
    if result:
        logger.info("Email configuration test succeeded")
    else:
        logger.error("Email configuration test failed")
    return result


def get_email_health_status():
    errors = []
    if not settings.DEFAULT_FROM_EMAIL:
        errors.append("DEFAULT_FROM_EMAIL is required")
    if not settings.LENDINGLOOP["FRONTEND_BASE_URL"].startswith(("http://", "https://")):
        errors.append("FRONTEND_BASE_URL must be a valid URL")
    if settings.EMAIL_BACKEND.endswith("smtp.EmailBackend") and not settings.EMAIL_HOST:
        errors.append("EMAIL_HOST is required")

    return {
        "is_configured": not _smtp_unconfigured(),
        "test_mode": settings.EMAIL_TEST_MODE,
        "backend": settings.EMAIL_BACKEND,
        "smtp_host": settings.EMAIL_HOST,
        "smtp_port": settings.EMAIL_PORT,
        "from_email": settings.DEFAULT_FROM_EMAIL,
        "configuration_errors": errors,
    }
