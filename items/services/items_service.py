import logging
import os

from django.conf import settings
from django.db.models import Q

from backend.core.exceptions import NotFound, InvalidOperation, Forbidden
from items.models import SharedItem

logger = logging.getLogger(__name__)


# ----------------------------------------------
# Lookups
# ----------------------------------------------

def get_items_by_user(user_id):
    return SharedItem.objects.filter(owner_id=user_id).prefetch_related("visible_to_loops")


def get_item(item_id):
    return SharedItem.objects.select_related("owner").filter(pk=item_id).first()


def get_owned_item(item_id, user_id):
    """
    Fetch an item the caller owns, or raise NotFound / Forbidden.
    """
    item = get_item(item_id)
    if item is None:
        raise NotFound(f"Item with id {item_id} not found")
    if item.owner_id != user_id:
        raise Forbidden("Only the item owner can modify this item")
    return item


def get_items_by_loop(loop, search=None):
    """
    Items a loop's members share with that loop: the owner must still be a
    member, and the item must be visible to all loops or to this one.
    """
    qs = (
        SharedItem.objects.filter(owner__in=loop.members.all())
        .filter(Q(visible_to_all_loops=True) | Q(visible_to_loops=loop))
        .select_related("owner")
        .distinct()
    )
    if search:
        search = search.strip()
        qs = qs.filter(Q(name__icontains=search) | Q(description__icontains=search))
    return qs


# ----------------------------------------------
# Mutations
# ----------------------------------------------

def _validate_loop_ids(user_id, loop_ids):
    from loops.models import Loop

    loop_ids = {int(pk) for pk in loop_ids or []}
    if not loop_ids:
        return []
    loops = list(Loop.objects.filter(pk__in=loop_ids, members__id=user_id))
    if len(loops) != len(loop_ids):
        raise InvalidOperation("Items can only be shared with loops you belong to")
    return loops


def create_item(owner, name, description="", is_available=True, visible_to_loop_ids=None,
                visible_to_all_loops=False, visible_to_future_loops=False):
    if not name or not name.strip():
        raise InvalidOperation("Item name is required.")

    loops = _validate_loop_ids(owner.pk, visible_to_loop_ids)
    item = SharedItem.objects.create(
        owner=owner,
        name=name.strip(),
        description=description or "",
        is_available=is_available,
        visible_to_all_loops=visible_to_all_loops,
        visible_to_future_loops=visible_to_future_loops,
    )
    if loops:
        item.visible_to_loops.set(loops)

    logger.info(f"Item {item.pk} created by user {owner.pk}")
    return item


def update_item(item_id, user_id, name, description, is_available, visible_to_loop_ids,
                visible_to_all_loops, visible_to_future_loops):
    item = get_owned_item(item_id, user_id)
    if not name or not name.strip():
        raise InvalidOperation("Item name is required.")

    loops = _validate_loop_ids(user_id, visible_to_loop_ids)
    item.name = name.strip()
    item.description = description or ""
    item.is_available = is_available
    item.visible_to_all_loops = visible_to_all_loops
    item.visible_to_future_loops = visible_to_future_loops
    item.save()
    item.visible_to_loops.set(loops)

    logger.info(f"Item {item.pk} updated by user {user_id}")
    return item


def update_item_visibility(item_id, user_id, loop_ids, visible_to_all_loops, visible_to_future_loops):
    item = get_owned_item(item_id, user_id)
    loops = _validate_loop_ids(user_id, loop_ids)

    item.visible_to_all_loops = visible_to_all_loops
    item.visible_to_future_loops = visible_to_future_loops
    item.save(update_fields=["visible_to_all_loops", "visible_to_future_loops", "updated_at"])
    item.visible_to_loops.set(loops)
    return item


def update_item_image(item_id, user_id, uploaded_file):
    """
    Validate and store an uploaded image for an owned item. The previous
    image file, if any, is removed from storage.
    """
    if uploaded_file is None or uploaded_file.size == 0:
        raise InvalidOperation("No file uploaded.")

    config = settings.LENDINGLOOP
    ext = os.path.splitext(uploaded_file.name)[1].lower()
    if ext not in config["ITEM_IMAGE_EXTENSIONS"]:
        raise InvalidOperation("Invalid file type. Only jpg, jpeg, png, and gif are allowed.")

    max_bytes = config["ITEM_IMAGE_MAX_BYTES"]
    if uploaded_file.size > max_bytes:
        raise InvalidOperation(f"File size exceeds maximum allowed size of {max_bytes // 1024 // 1024}MB.")

    item = get_owned_item(item_id, user_id)
    old_image = item.image.name if item.image else None

    item.image.save(uploaded_file.name, uploaded_file, save=False)
    item.save(update_fields=["image", "updated_at"])

    if old_image and old_image != item.image.name:
        item.image.storage.delete(old_image)

    logger.info(f"Image uploaded for item {item.pk}: {item.image.name}")
    return item


def update_item_availability(item_id, is_available):
    updated = SharedItem.objects.filter(pk=item_id).update(is_available=is_available)
    if not updated:
        logger.warning(f"Cannot update availability: item {item_id} not found")
        return None
    return SharedItem.objects.get(pk=item_id)


def delete_item(item_id, user_id):
    from item_requests.models import ItemRequest

    item = get_owned_item(item_id, user_id)
    if ItemRequest.objects.filter(item=item, status="Approved").exists():
        raise InvalidOperation("Cannot delete an item that is currently lent out")

    if item.image:
        item.image.delete(save=False)
    item.delete()
    logger.info(f"Item {item_id} deleted by user {user_id}")


# ----------------------------------------------
# Loop visibility maintenance
# ----------------------------------------------

def add_loop_to_future_visible_items(user_id, loop_id):
    """
    A user joined a loop: items flagged visible_to_future_loops follow them.
    """
    items = SharedItem.objects.filter(owner_id=user_id, visible_to_future_loops=True)
    for item in items:
        item.visible_to_loops.add(loop_id)
    return len(items)


def remove_loop_from_all_items(loop_id):
    deleted, _ = SharedItem.visible_to_loops.through.objects.filter(loop_id=loop_id).delete()
    logger.info(f"Removed loop {loop_id} from {deleted} item visibility entries")


def remove_loop_from_user_items(user_id, loop_id):
    SharedItem.visible_to_loops.through.objects.filter(
        loop_id=loop_id, shareditem__owner_id=user_id
    ).delete()
