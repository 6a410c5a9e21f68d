import threading
import time
import logging

import schedule

from loops.services.invitation_service import expire_old_invitations

logger = logging.getLogger(__name__)

_scheduler_started = False


def run_invitation_expiry():
    """
    Mark every pending invitation past its expiry date as Expired.
    """
    logger.info("Running loop invitation expiry...")
    count = expire_old_invitations()
    logger.info(f"Loop invitation expiry completed: {count} invitations expired.")
    return count


def schedule_invitation_expiry():
    """
    Schedule `run_invitation_expiry` daily at 02:00 in a background thread.
    """
    global _scheduler_started
    if _scheduler_started:
        return
    _scheduler_started = True

    schedule.every().day.at("02:00").do(run_invitation_expiry)

    # Run scheduler in a separate thread so it doesn't block Django
    def run_scheduler():
        while True:
            schedule.run_pending()
            time.sleep(60)  # check every minute

    scheduler_thread = threading.Thread(target=run_scheduler, daemon=True)
    scheduler_thread.start()
    logger.info("Invitation expiry scheduler started (running in background).")
