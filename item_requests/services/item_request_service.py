"""
Borrow/lend workflow.

    Pending --approve--> Approved --complete--> Completed
       |                    |
       +--reject--> Rejected
       +--cancel--> Cancelled <--cancel--+

Every transition is applied with a status-guarded UPDATE so two concurrent
calls cannot both move the same request. Notifications, emails and score
changes run after the transition and never fail it.
"""
import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.html import escape

from backend.core.exceptions import NotFound, InvalidOperation, Forbidden
from item_requests.models import ItemRequest
from items.models import SharedItem
from items.services import items_service
from notifications.services import notification_service, email_service
from users.services import score_service

logger = logging.getLogger(__name__)


# ----------------------------------------------
# Validation
# ----------------------------------------------

def clean_message(message):
    """
    Trim, length-check and HTML-escape a request message. Blank becomes None.
    """
    if message is None:
        return None
    message = message.strip()
    if not message:
        return None

    max_length = settings.LENDINGLOOP["REQUEST_MESSAGE_MAX_LENGTH"]
    if len(message) > max_length:
        raise InvalidOperation(f"Message cannot exceed {max_length} characters")
    return escape(message)


def validate_expected_return_date(expected_return_date):
    if expected_return_date is not None and expected_return_date < timezone.localdate():
        raise InvalidOperation("Expected return date cannot be in the past")
    return expected_return_date


# ----------------------------------------------
# Lookups
# ----------------------------------------------

def _base_queryset():
    return ItemRequest.objects.select_related("item", "requester", "owner")


def get_request(request_id):
    return _base_queryset().filter(pk=request_id).first()


def get_request_for_participant(request_id, user_id):
    item_request = get_request(request_id)
    if item_request is None:
        raise NotFound(f"Item request with id {request_id} not found")
    if user_id not in (item_request.requester_id, item_request.owner_id):
        raise Forbidden("You do not have access to this request")
    return item_request


def requester_queryset(user_id):
    return _base_queryset().filter(requester_id=user_id)


def get_pending_requests_for_owner(owner_id):
    return list(_base_queryset().filter(owner_id=owner_id, status="Pending"))


def get_requests_for_item(item_id, user_id):
    item = SharedItem.objects.filter(pk=item_id).first()
    if item is None:
        raise NotFound(f"Item with id {item_id} not found")
    if item.owner_id != user_id:
        raise Forbidden("Only the item owner can view its requests")
    return list(_base_queryset().filter(item_id=item_id))


# ----------------------------------------------
# Transitions
# ----------------------------------------------

def create_request(item_id, requester, message=None, expected_return_date=None):
    item = SharedItem.objects.select_related("owner").filter(pk=item_id).first()
    if item is None:
        raise NotFound(f"Item with id {item_id} not found")
    if item.owner_id == requester.pk:
        raise InvalidOperation("You cannot request your own item")
    if not item.is_available:
        raise InvalidOperation("Item is not available")

    message = clean_message(message)
    validate_expected_return_date(expected_return_date)

    if ItemRequest.objects.filter(item=item, requester=requester, status="Pending").exists():
        raise InvalidOperation("You already have a pending request for this item")

    item_request = ItemRequest.objects.create(
        item=item,
        requester=requester,
        owner=item.owner,
        status="Pending",
        message=message,
        expected_return_date=expected_return_date,
    )
    logger.info(f"Item request {item_request.pk} created for item {item.pk} by user {requester.pk}")

    _notify(
        item.owner_id,
        "ItemRequestCreated",
        f"{requester.full_name()} requested to borrow your {item.name}",
        item_request,
        related_user_id=requester.pk,
    )
    _side_effect(
        "request created email",
        email_service.send_item_request_created_email,
        item.owner.email, item.owner.first_name, requester.full_name(), item.name, item_request.pk,
    )
    return item_request


def approve_request(request_id, owner_id):
    item_request = _get_for_owner(request_id, owner_id, "approve")
    _require_status(item_request, "Pending", "approved")

    with transaction.atomic():
        # row lock on the item serializes approvals of competing requests
        SharedItem.objects.select_for_update().filter(pk=item_request.item_id).first()
        if ItemRequest.objects.filter(item_id=item_request.item_id, status="Approved").exclude(pk=item_request.pk).exists():
            raise InvalidOperation("This item already has an approved request")
        _transition(item_request, ["Pending"], "Approved", responded_at=timezone.now())
        items_service.update_item_availability(item_request.item_id, False)

    item = item_request.item
    _side_effect("lend points", score_service.award_lend_points, owner_id, item_request.pk, item.name)
    _notify(
        item_request.requester_id,
        "ItemRequestApproved",
        f"{item_request.owner.full_name()} approved your request for {item.name}",
        item_request,
        related_user_id=owner_id,
    )
    _side_effect(
        "request approved email",
        email_service.send_item_request_approved_email,
        item_request.requester.email, item_request.requester.first_name,
        item_request.owner.full_name(), item.name,
    )
    return item_request


def reject_request(request_id, owner_id):
    item_request = _get_for_owner(request_id, owner_id, "reject")
    _require_status(item_request, "Pending", "rejected")

    _transition(item_request, ["Pending"], "Rejected", responded_at=timezone.now())

    item = item_request.item
    _notify(
        item_request.requester_id,
        "ItemRequestRejected",
        f"{item_request.owner.full_name()} declined your request for {item.name}",
        item_request,
        related_user_id=owner_id,
    )
    _side_effect(
        "request rejected email",
        email_service.send_item_request_rejected_email,
        item_request.requester.email, item_request.requester.first_name,
        item_request.owner.full_name(), item.name,
    )
    return item_request


def cancel_request(request_id, requester_id):
    """
    The requester withdraws a Pending request, or gives up an Approved one
    before it is completed. Cancelling an Approved request frees the item
    and takes back the owner's lend points.
    """
    item_request = get_request(request_id)
    if item_request is None:
        raise NotFound(f"Item request with id {request_id} not found")
    if item_request.requester_id != requester_id:
        raise Forbidden("Only the requester can cancel this request")
    if item_request.status not in ("Pending", "Approved"):
        raise InvalidOperation(f"Cannot cancel a request that is {item_request.status.lower()}")

    was_approved = item_request.status == "Approved"
    with transaction.atomic():
        _transition(item_request, [item_request.status], "Cancelled", responded_at=timezone.now())
        if was_approved:
            items_service.update_item_availability(item_request.item_id, True)

    item = item_request.item
    if was_approved:
        _side_effect("lend points reversal", score_service.reverse_lend_points,
                     item_request.owner_id, item_request.pk, item.name)

    _notify(
        item_request.owner_id,
        "ItemRequestCancelled",
        f"{item_request.requester.full_name()} cancelled their request for {item.name}",
        item_request,
        related_user_id=requester_id,
    )
    _side_effect(
        "request cancelled email",
        email_service.send_item_request_cancelled_email,
        item_request.owner.email, item_request.owner.first_name,
        item_request.requester.full_name(), item.name,
    )
    return item_request


def complete_request(request_id, owner_id):
    item_request = _get_for_owner(request_id, owner_id, "complete")
    _require_status(item_request, "Approved", "completed")

    with transaction.atomic():
        _transition(item_request, ["Approved"], "Completed", completed_at=timezone.now())
        items_service.update_item_availability(item_request.item_id, True)

    item = item_request.item
    requester_id = item_request.requester_id

    _side_effect("borrow points", score_service.award_borrow_points, requester_id, item_request.pk, item.name)
    if item_request.returned_on_time():
        _side_effect("on-time points", score_service.award_on_time_return_points,
                     requester_id, item_request.pk, item.name)
    else:
        _side_effect("on-time streak reset", score_service.reset_consecutive_on_time_returns, requester_id)
    _side_effect("lending transaction", score_service.record_completed_lending_transaction,
                 owner_id, item_request.pk, item.name)

    _notify(
        requester_id,
        "ItemRequestCompleted",
        f"Your borrowing of {item.name} from {item_request.owner.full_name()} is complete",
        item_request,
        related_user_id=owner_id,
    )
    _side_effect(
        "request completed email",
        email_service.send_item_request_completed_email,
        item_request.requester.email, item_request.requester.first_name,
        item_request.owner.full_name(), item.name,
    )
    return item_request


# ----------------------------------------------
# Helpers
# ----------------------------------------------

def _get_for_owner(request_id, owner_id, action):
    item_request = get_request(request_id)
    if item_request is None:
        raise NotFound(f"Item request with id {request_id} not found")
    if item_request.owner_id != owner_id:
        raise Forbidden(f"Only the item owner can {action} this request")
    return item_request


def _require_status(item_request, expected, target):
    if item_request.status != expected:
        raise InvalidOperation(
            f"Only {expected.lower()} requests can be {target}; this request is {item_request.status.lower()}"
        )


def _transition(item_request, from_statuses, to_status, **fields):
    updated = ItemRequest.objects.filter(pk=item_request.pk, status__in=from_statuses).update(
        status=to_status, **fields
    )
    if not updated:
        raise InvalidOperation("Request status changed concurrently; please reload")

    item_request.refresh_from_db(fields=["status", "responded_at", "completed_at"])
    logger.info(f"Item request {item_request.pk} moved to {to_status}")


def _notify(user_id, notification_type, message, item_request, related_user_id=None):
    _side_effect(
        f"{notification_type} notification",
        notification_service.create_notification,
        user_id, notification_type, message,
        item_id=item_request.item_id,
        item_request_id=item_request.pk,
        related_user_id=related_user_id,
    )


def _side_effect(description, func, *args, **kwargs):
    try:
        return func(*args, **kwargs)
    except Exception:
        logger.exception(f"Failed to apply {description}")
        return None
