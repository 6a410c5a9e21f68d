import logging

from django.db import transaction, IntegrityError
from django.db.models import F

from users.models import (
    User,
    ScoreHistoryEntry,
    BadgeAward,
    SCORE_POINTS,
    MILESTONE_BADGES,
    ACHIEVEMENT_BADGES,
)

logger = logging.getLogger(__name__)


# ----------------------------------------------
# Awarding points
# ----------------------------------------------

def award_borrow_points(user_id, item_request_id, item_name):
    return _award_points(user_id, item_request_id, item_name, "BorrowCompleted")


def award_on_time_return_points(user_id, item_request_id, item_name):
    user = _award_points(user_id, item_request_id, item_name, "OnTimeReturn")
    if user is not None:
        check_achievement_badge(user, "ReliableBorrower")
        check_achievement_badge(user, "PerfectRecord")
    return user


def award_lend_points(user_id, item_request_id, item_name):
    user = _award_points(user_id, item_request_id, item_name, "LendApproved")
    if user is not None:
        check_achievement_badge(user, "FirstLend")
    return user


def reverse_lend_points(user_id, item_request_id, item_name):
    return _award_points(user_id, item_request_id, item_name, "LendCancelled")


def record_completed_lending_transaction(user_id, item_request_id, item_name):
    """
    Called when the owner's item comes back. The completed request itself is
    the record, so this only re-evaluates the lender achievement.
    """
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        logger.warning(f"Cannot record lending transaction {item_request_id}: user {user_id} not found")
        return None
    logger.info(f"Recorded completed lending transaction {item_request_id} ({item_name}) for user {user_id}")
    check_achievement_badge(user, "GenerousLender")
    return user


def reset_consecutive_on_time_returns(user_id):
    User.objects.filter(pk=user_id).update(consecutive_on_time_returns=0)
    logger.info(f"Reset consecutive on-time returns for user {user_id}")


def _award_points(user_id, item_request_id, item_name, action_type):
    """
    Apply the points for `action_type` and append a history row in one
    transaction. The score never drops below zero.
    Returns the refreshed user, or None when the user does not exist.
    """
    points = SCORE_POINTS[action_type]

    with transaction.atomic():
        updated = User.objects.filter(pk=user_id).update(loop_score=F("loop_score") + points)
        if not updated:
            logger.warning(f"Failed to award {points} points to user {user_id}. User may not exist.")
            return None

        ScoreHistoryEntry.objects.create(
            user_id=user_id,
            points=points,
            action_type=action_type,
            item_request_id=item_request_id,
            item_name=item_name or "",
        )
        User.objects.filter(pk=user_id, loop_score__lt=0).update(loop_score=0)

        if action_type == "OnTimeReturn":
            User.objects.filter(pk=user_id).update(
                consecutive_on_time_returns=F("consecutive_on_time_returns") + 1
            )

    logger.info(f"Awarded {points} points to user {user_id} for {action_type}")

    user = User.objects.get(pk=user_id)
    check_milestone_badges(user)
    return user


# ----------------------------------------------
# Badges
# ----------------------------------------------

def check_milestone_badges(user):
    awarded = []
    for badge_type, threshold in MILESTONE_BADGES.items():
        if user.loop_score >= threshold and award_badge(user, badge_type):
            awarded.append(badge_type)
    return awarded


def check_achievement_badge(user, badge_type):
    progress = get_badge_progress(user, badge_type)
    if progress["current"] >= progress["target"]:
        return award_badge(user, badge_type)
    return False


def award_badge(user, badge_type):
    """
    Award `badge_type` once. Returns True only when the badge is new.
    """
    if BadgeAward.objects.filter(user=user, badge_type=badge_type).exists():
        return False
    try:
        with transaction.atomic():
            BadgeAward.objects.create(user=user, badge_type=badge_type)
    except IntegrityError:
        # awarded concurrently
        return False

    logger.info(f"Awarded {badge_type} badge to user {user.pk}")
    _send_badge_email(user, badge_type)
    return True


def _send_badge_email(user, badge_type):
    from notifications.services import email_service

    try:
        user.refresh_from_db(fields=["loop_score"])
        email_service.send_badge_award_email(user.email, user.full_name(), badge_type, user.loop_score)
    except Exception:
        logger.exception(f"Failed to send {badge_type} badge email to user {user.pk}")


# ----------------------------------------------
# Queries
# ----------------------------------------------

def get_user_score(user_id):
    user = User.objects.filter(pk=user_id).only("loop_score").first()
    return user.loop_score if user else 0


def get_score_history(user_id, limit=50):
    return list(ScoreHistoryEntry.objects.filter(user_id=user_id).order_by("-timestamp", "-id")[:limit])


def get_user_badges(user_id):
    return list(BadgeAward.objects.filter(user_id=user_id).order_by("awarded_at", "id"))


def get_on_time_return_count(user_id):
    return ScoreHistoryEntry.objects.filter(user_id=user_id, action_type="OnTimeReturn").count()


def get_lend_count(user_id):
    return ScoreHistoryEntry.objects.filter(user_id=user_id, action_type="LendApproved").count()


def get_completed_lending_transaction_count(user_id):
    from item_requests.models import ItemRequest

    return ItemRequest.objects.filter(owner_id=user_id, status="Completed").count()


def get_active_invited_users_count(user_id):
    return User.objects.filter(invited_by_id=user_id, is_active=True, is_email_verified=True).count()


def get_badge_progress(user, badge_type):
    if badge_type in MILESTONE_BADGES:
        target = MILESTONE_BADGES[badge_type]
        current = user.loop_score
    elif badge_type in ACHIEVEMENT_BADGES:
        target = ACHIEVEMENT_BADGES[badge_type]
        current = {
            "FirstLend": get_lend_count,
            "ReliableBorrower": get_on_time_return_count,
            "GenerousLender": get_completed_lending_transaction_count,
            "PerfectRecord": lambda _: user.consecutive_on_time_returns,
            "CommunityBuilder": get_active_invited_users_count,
        }[badge_type](user.pk)
    else:
        raise ValueError(f"Unknown badge type: {badge_type}")

    return {
        "badge_type": badge_type,
        "current": current,
        "target": target,
        "is_earned": BadgeAward.objects.filter(user=user, badge_type=badge_type).exists(),
        "percentage": min(100, current * 100 // target),
    }


def get_all_badge_progress(user):
    badge_types = list(MILESTONE_BADGES) + list(ACHIEVEMENT_BADGES)
    return {badge_type: get_badge_progress(user, badge_type) for badge_type in badge_types}
