"""
Loop invitations.

An invitation is addressed by email and, when the address already belongs
to a registered user, also by user. Pending invitations expire after
LENDINGLOOP["INVITATION_LIFETIME_DAYS"] and are swept by the scheduler
(see loops/tasks.py) or the `expire_invitations` command.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from backend.core.exceptions import NotFound, InvalidOperation, Forbidden
from loops.models import LoopInvitation
from loops.services import loop_service
from notifications.services import email_service
from users.services import user_service, score_service

logger = logging.getLogger(__name__)


def _expiry():
    return timezone.now() + timedelta(days=settings.LENDINGLOOP["INVITATION_LIFETIME_DAYS"])


def _send_invitation_email(invitation, inviter, recipient_name=""):
    if settings.DEBUG:
        base_url = settings.LENDINGLOOP["FRONTEND_BASE_URL"].rstrip("/")
        logger.debug(
            f"Invitation URL for {invitation.invited_email}: "
            f"{base_url}/loops/accept-invitation?token={invitation.invitation_token}"
        )

    sent = email_service.send_loop_invitation_email(
        invitation.invited_email,
        recipient_name,
        inviter.full_name(),
        invitation.loop.name,
        invitation.invitation_token,
    )
    if not sent:
        logger.warning(f"Invitation email for loop {invitation.loop_id} to {invitation.invited_email} was not sent")


def _require_inviter(loop, inviter):
    if not loop.members.filter(pk=inviter.pk).exists():
        raise Forbidden("Only loop members can send invitations")
    if loop.is_archived:
        raise InvalidOperation("Cannot invite to an archived loop")


# ----------------------------------------------
# Creating invitations
# ----------------------------------------------

def create_email_invitation(loop_id, inviter, email):
    email = (email or "").strip()
    if not email:
        raise InvalidOperation("Email is required")

    loop = loop_service.get_loop_or_404(loop_id)
    _require_inviter(loop, inviter)

    existing_user = user_service.get_user_by_email(email)
    if existing_user is not None:
        if loop.members.filter(pk=existing_user.pk).exists():
            raise InvalidOperation("User is already a member of this loop")
        return create_user_invitation(loop_id, inviter, existing_user.pk)

    invitation = LoopInvitation.objects.create(
        loop=loop,
        invited_by=inviter,
        invited_email=email.lower(),
        invitation_token=user_service.generate_token(),
        status="Pending",
        expires_at=_expiry(),
    )
    logger.info(f"Email invitation {invitation.pk} to loop {loop.pk} created for {invitation.invited_email}")
    _send_invitation_email(invitation, inviter)
    return invitation


def create_user_invitation(loop_id, inviter, user_id):
    loop = loop_service.get_loop_or_404(loop_id)
    _require_inviter(loop, inviter)

    invited_user = user_service.get_user_by_id(user_id)
    if invited_user is None:
        raise InvalidOperation("User not found")
    if loop.members.filter(pk=invited_user.pk).exists():
        raise InvalidOperation("User is already a member of this loop")

    invitation = LoopInvitation.objects.create(
        loop=loop,
        invited_by=inviter,
        invited_email=invited_user.email.lower(),
        invited_user=invited_user,
        invitation_token=user_service.generate_token(),
        status="Pending",
        expires_at=_expiry(),
    )
    logger.info(f"User invitation {invitation.pk} to loop {loop.pk} created for user {invited_user.pk}")
    _send_invitation_email(invitation, inviter, recipient_name=invited_user.first_name)
    return invitation


# ----------------------------------------------
# Accepting invitations
# ----------------------------------------------

def accept_invitation(token, current_user=None):
    """
    Accept a pending, unexpired invitation by token.

    The joining user is the authenticated caller when there is one, else the
    invited user, else the registered user matching the invited email.
    Returns the accepted invitation, or None when nobody can accept it.
    Raises InvalidOperation when the loop has been archived since.
    """
    invitation = (
        LoopInvitation.objects.select_related("loop", "invited_by", "invited_user")
        .filter(invitation_token=token, status="Pending", expires_at__gt=timezone.now())
        .first()
    )
    if invitation is None:
        return None

    user = current_user or invitation.invited_user or user_service.get_user_by_email(invitation.invited_email)
    if user is None:
        return None

    return _accept(invitation, user)


def accept_invitation_for_user(invitation_id, user):
    invitation = (
        LoopInvitation.objects.select_related("loop", "invited_by")
        .filter(pk=invitation_id, status="Pending", expires_at__gt=timezone.now())
        .first()
    )
    if invitation is None:
        raise NotFound("Invitation not found or expired")

    addressed_to_user = invitation.invited_user_id == user.pk or (
        invitation.invited_email.lower() == user.email.lower()
    )
    if not addressed_to_user:
        raise Forbidden("This invitation is not addressed to you")

    return _accept(invitation, user)


def _accept(invitation, user):
    if invitation.loop.is_archived:
        raise InvalidOperation("Cannot join an archived loop")

    with transaction.atomic():
        updated = LoopInvitation.objects.filter(pk=invitation.pk, status="Pending").update(
            status="Accepted",
            accepted_at=timezone.now(),
            invited_user=user,
        )
        if not updated:
            return None

        loop_service.add_member(invitation.loop_id, user.pk)

        if user.invited_by_id is None and invitation.invited_by_id != user.pk:
            user.invited_by_id = invitation.invited_by_id
            user.save(update_fields=["invited_by", "updated_at"])

    logger.info(f"User {user.pk} accepted invitation {invitation.pk} to loop {invitation.loop_id}")

    if user.is_email_verified and user.invited_by_id:
        try:
            score_service.check_achievement_badge(user.invited_by, "CommunityBuilder")
        except Exception:
            logger.exception(f"CommunityBuilder check failed for user {user.invited_by_id}")

    invitation.refresh_from_db()
    return invitation


# ----------------------------------------------
# Queries and maintenance
# ----------------------------------------------

def get_pending_invitations_for_user(user):
    return list(
        LoopInvitation.objects.select_related("loop", "invited_by")
        .filter(status="Pending", expires_at__gt=timezone.now())
        .filter(Q(invited_user=user) | Q(invited_email__iexact=user.email))
    )


def get_pending_invitations_for_loop(loop_id):
    return list(
        LoopInvitation.objects.select_related("invited_by", "invited_user")
        .filter(loop_id=loop_id, status="Pending", expires_at__gt=timezone.now())
    )


def expire_old_invitations():
    count = LoopInvitation.objects.filter(status="Pending", expires_at__lte=timezone.now()).update(status="Expired")
    logger.info(f"Expired {count} loop invitations")
    return count


def delete_invitations_for_loop(loop_id):
    deleted, _ = LoopInvitation.objects.filter(loop_id=loop_id).delete()
    return deleted
