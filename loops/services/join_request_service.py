import logging

from django.utils import timezone

from backend.core.exceptions import NotFound, InvalidOperation, Forbidden
from loops.models import Loop, LoopJoinRequest
from loops.services import loop_service

logger = logging.getLogger(__name__)


def create_join_request(loop_id, user, message=""):
    loop = Loop.objects.filter(pk=loop_id, is_archived=False).first()
    if loop is None:
        raise NotFound("Loop not found")
    if loop.members.filter(pk=user.pk).exists():
        raise InvalidOperation("You are already a member of this loop")
    if LoopJoinRequest.objects.filter(loop=loop, user=user, status="Pending").exists():
        raise InvalidOperation("You already have a pending request to join this loop")

    join_request = LoopJoinRequest.objects.create(
        loop=loop, user=user, message=(message or "").strip(), status="Pending"
    )
    logger.info(f"Join request {join_request.pk} created by user {user.pk} for loop {loop.pk}")
    return join_request


def _respond(join_request_id, owner_id, new_status):
    join_request = LoopJoinRequest.objects.select_related("loop").filter(pk=join_request_id).first()
    if join_request is None:
        raise NotFound("Join request not found")
    if not loop_service.is_loop_owner(join_request.loop_id, owner_id):
        raise Forbidden("Only the loop owner can respond to join requests")
    if new_status == "Approved" and join_request.loop.is_archived:
        raise InvalidOperation("Cannot add members to an archived loop")
    if join_request.status != "Pending":
        raise InvalidOperation(f"Join request is already {join_request.status.lower()}")

    updated = LoopJoinRequest.objects.filter(pk=join_request.pk, status="Pending").update(
        status=new_status, responded_at=timezone.now()
    )
    if not updated:
        raise InvalidOperation("Join request is no longer pending")

    join_request.refresh_from_db()
    logger.info(f"Join request {join_request.pk} for loop {join_request.loop_id} {new_status.lower()}")
    return join_request


def approve_join_request(join_request_id, owner_id):
    join_request = _respond(join_request_id, owner_id, "Approved")
    loop_service.add_member(join_request.loop_id, join_request.user_id)
    return join_request


def reject_join_request(join_request_id, owner_id):
    return _respond(join_request_id, owner_id, "Rejected")


def get_pending_requests_for_loop(loop_id):
    return list(
        LoopJoinRequest.objects.select_related("user")
        .filter(loop_id=loop_id, status="Pending")
        .order_by("created_at", "id")
    )


def get_user_join_requests(user_id):
    return list(
        LoopJoinRequest.objects.select_related("loop")
        .filter(user_id=user_id)
        .order_by("-created_at", "-id")
    )
