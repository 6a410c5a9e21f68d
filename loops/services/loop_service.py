import logging

from django.db import transaction
from django.db.models import Q, Count
from django.utils import timezone

from backend.core.exceptions import NotFound, InvalidOperation, Forbidden
from items.services import items_service
from loops.models import Loop, OwnershipTransfer
from users.models import User

logger = logging.getLogger(__name__)


# ----------------------------------------------
# Lookups
# ----------------------------------------------

def get_loop(loop_id):
    return Loop.objects.select_related("creator").filter(pk=loop_id).first()


def get_loop_or_404(loop_id):
    loop = get_loop(loop_id)
    if loop is None:
        raise NotFound("Loop not found")
    return loop


def get_owned_loop(loop_id, user_id, action="modify this loop"):
    loop = get_loop_or_404(loop_id)
    if not loop.is_owner(user_id):
        raise Forbidden(f"Only the loop owner can {action}")
    return loop


def get_member_loop(loop_id, user_id):
    loop = get_loop_or_404(loop_id)
    if not loop.members.filter(pk=user_id).exists():
        raise Forbidden("You are not a member of this loop")
    return loop


def get_user_loops(user_id):
    return Loop.objects.filter(members__id=user_id, is_archived=False).distinct()


def get_archived_loops(user_id):
    return Loop.objects.filter(members__id=user_id, is_archived=True).order_by("-archived_at").distinct()


def get_loop_members(loop_id):
    return list(User.objects.filter(loops__id=loop_id).order_by("first_name", "last_name"))


def is_loop_member(loop_id, user_id):
    return Loop.objects.filter(pk=loop_id, members__id=user_id).exists()


def is_loop_owner(loop_id, user_id):
    return Loop.objects.filter(pk=loop_id, creator_id=user_id).exists()


def get_potential_invitees(loop_id, user_id):
    """
    Members of the user's other loops who are not yet in this loop.
    """
    other_loops = Loop.objects.filter(members__id=user_id).exclude(pk=loop_id)
    return list(
        User.objects.filter(loops__in=other_loops)
        .exclude(pk=user_id)
        .exclude(loops__id=loop_id)
        .distinct()
        .order_by("first_name", "last_name")
    )


def get_public_loops(skip=0, limit=20):
    qs = Loop.objects.filter(is_public=True, is_archived=False).annotate(
        member_count=Count("members", distinct=True)
    )
    return list(qs.order_by("-created_at", "-id")[skip:skip + limit])


def search_public_loops(query, skip=0, limit=20):
    qs = Loop.objects.filter(is_public=True, is_archived=False).filter(
        Q(name__icontains=query) | Q(description__icontains=query)
    ).annotate(member_count=Count("members", distinct=True))
    return list(qs.order_by("-created_at", "-id")[skip:skip + limit])


# ----------------------------------------------
# Membership
# ----------------------------------------------

def create_loop(creator, name, description="", is_public=False):
    if not name or not name.strip():
        raise InvalidOperation("Loop name is required")

    with transaction.atomic():
        loop = Loop.objects.create(
            name=name.strip(),
            description=description or "",
            creator=creator,
            is_public=is_public,
        )
        loop.members.add(creator)
        items_service.add_loop_to_future_visible_items(creator.pk, loop.pk)

    logger.info(f"Loop {loop.pk} '{loop.name}' created by user {creator.pk}")
    return loop


def add_member(loop_id, user_id):
    loop = get_loop_or_404(loop_id)
    if loop.members.filter(pk=user_id).exists():
        return loop

    loop.members.add(user_id)
    added = items_service.add_loop_to_future_visible_items(user_id, loop.pk)
    logger.info(f"User {user_id} joined loop {loop.pk}; {added} items made visible")
    return loop


def remove_member(loop_id, member_id, requesting_user_id):
    loop = get_owned_loop(loop_id, requesting_user_id, action="remove members")
    if loop.is_owner(member_id):
        raise InvalidOperation("The loop owner cannot be removed")
    if not loop.members.filter(pk=member_id).exists():
        raise NotFound("User is not a member of this loop")

    _drop_member(loop, member_id)
    logger.info(f"User {member_id} removed from loop {loop.pk} by {requesting_user_id}")
    return loop


def leave_loop(loop_id, user_id):
    loop = get_loop_or_404(loop_id)
    if loop.is_owner(user_id):
        raise InvalidOperation("The loop owner cannot leave the loop. Transfer ownership or delete it instead.")
    if not loop.members.filter(pk=user_id).exists():
        raise InvalidOperation("You are not a member of this loop")

    _drop_member(loop, user_id)
    logger.info(f"User {user_id} left loop {loop.pk}")
    return loop


def _drop_member(loop, user_id):
    with transaction.atomic():
        loop.members.remove(user_id)
        items_service.remove_loop_from_user_items(user_id, loop.pk)


# ----------------------------------------------
# Settings, archive, delete
# ----------------------------------------------

def update_loop_settings(loop_id, user_id, name=None, description=None, is_public=None):
    loop = get_owned_loop(loop_id, user_id, action="update loop settings")

    if name is not None:
        if not name.strip():
            raise InvalidOperation("Loop name is required")
        loop.name = name.strip()
    if description is not None:
        loop.description = description
    if is_public is not None:
        loop.is_public = is_public

    loop.save()
    return loop


def archive_loop(loop_id, user_id):
    loop = get_owned_loop(loop_id, user_id, action="archive the loop")
    if loop.is_archived:
        raise InvalidOperation("Loop is already archived")

    loop.is_archived = True
    loop.archived_at = timezone.now()
    loop.save(update_fields=["is_archived", "archived_at", "updated_at"])
    logger.info(f"Loop {loop.pk} archived by user {user_id}")
    return loop


def restore_loop(loop_id, user_id):
    loop = get_owned_loop(loop_id, user_id, action="restore the loop")
    if not loop.is_archived:
        raise InvalidOperation("Loop is not archived")

    loop.is_archived = False
    loop.archived_at = None
    loop.save(update_fields=["is_archived", "archived_at", "updated_at"])
    logger.info(f"Loop {loop.pk} restored by user {user_id}")
    return loop


def delete_loop(loop_id, user_id):
    from loops.services import invitation_service

    loop = get_owned_loop(loop_id, user_id, action="delete the loop")
    with transaction.atomic():
        invitation_service.delete_invitations_for_loop(loop.pk)
        loop.join_requests.all().delete()
        items_service.remove_loop_from_all_items(loop.pk)
        loop.delete()
    logger.info(f"Loop {loop_id} deleted by user {user_id}")


# ----------------------------------------------
# Ownership transfer
# ----------------------------------------------

def get_pending_transfer(loop_id):
    return OwnershipTransfer.objects.filter(loop_id=loop_id, status="Pending").first()


def initiate_ownership_transfer(loop_id, from_user_id, to_user_id):
    loop = get_owned_loop(loop_id, from_user_id, action="transfer ownership")
    if from_user_id == to_user_id:
        raise InvalidOperation("You already own this loop")
    if not loop.members.filter(pk=to_user_id).exists():
        raise InvalidOperation("Ownership can only be transferred to a loop member")
    if get_pending_transfer(loop.pk):
        raise InvalidOperation("An ownership transfer is already pending for this loop")

    transfer = OwnershipTransfer.objects.create(
        loop=loop, from_user_id=from_user_id, to_user_id=to_user_id, status="Pending"
    )
    logger.info(f"Ownership transfer of loop {loop.pk} from {from_user_id} to {to_user_id} initiated")
    return transfer


def _pending_transfer_or_404(loop_id):
    transfer = get_pending_transfer(loop_id)
    if transfer is None:
        raise NotFound("No pending ownership transfer for this loop")
    return transfer


def accept_ownership_transfer(loop_id, user_id):
    transfer = _pending_transfer_or_404(loop_id)
    if transfer.to_user_id != user_id:
        raise Forbidden("Only the designated recipient can accept this transfer")

    with transaction.atomic():
        updated = OwnershipTransfer.objects.filter(pk=transfer.pk, status="Pending").update(
            status="Accepted", transferred_at=timezone.now()
        )
        if not updated:
            raise InvalidOperation("Transfer is no longer pending")
        Loop.objects.filter(pk=loop_id).update(creator_id=user_id, updated_at=timezone.now())

    logger.info(f"Ownership of loop {loop_id} transferred to user {user_id}")
    return get_loop(loop_id)


def decline_ownership_transfer(loop_id, user_id):
    transfer = _pending_transfer_or_404(loop_id)
    if transfer.to_user_id != user_id:
        raise Forbidden("Only the designated recipient can decline this transfer")
    return _close_transfer(transfer, "Declined")


def cancel_ownership_transfer(loop_id, user_id):
    transfer = _pending_transfer_or_404(loop_id)
    if transfer.from_user_id != user_id:
        raise Forbidden("Only the loop owner can cancel this transfer")
    return _close_transfer(transfer, "Cancelled")


def _close_transfer(transfer, new_status):
    updated = OwnershipTransfer.objects.filter(pk=transfer.pk, status="Pending").update(status=new_status)
    if not updated:
        raise InvalidOperation("Transfer is no longer pending")
    transfer.refresh_from_db()
    logger.info(f"Ownership transfer {transfer.pk} for loop {transfer.loop_id} {new_status.lower()}")
    return transfer
