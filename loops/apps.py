from django.apps import AppConfig
from django.conf import settings


class LoopsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'loops'

    def ready(self):
        # Start the invitation expiry scheduler when Django starts
        if settings.LENDINGLOOP["SCHEDULER_ENABLED"]:
            from .tasks import schedule_invitation_expiry
            schedule_invitation_expiry()
