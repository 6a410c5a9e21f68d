from django.core.management.base import BaseCommand

from loops.tasks import run_invitation_expiry


class Command(BaseCommand):
    help = "Expire pending loop invitations past their expiry date (run daily via cron)."

    def handle(self, *args, **options):
        count = run_invitation_expiry()
        self.stdout.write(self.style.SUCCESS(f"Expired {count} loop invitations"))
