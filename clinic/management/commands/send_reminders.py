import logging

from django.core.management.base import BaseCommand
from django.utils import timezone

from clinic.models import Notification
from clinic.services.appointments import due_for_reminder
from clinic.services.notifications import (
    cleanup_expired,
    get_dispatcher,
    notify_appointment_reminder,
    notify_prescription_expiring,
)
from clinic.services.prescriptions import expire_stale, expiring_soon

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Send appointment and prescription reminders, expire old prescriptions, purge expired notifications."

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true", help="report what would be sent without sending")

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        dispatcher = get_dispatcher()
        now = timezone.now()

        reminded = 0
        for appt in due_for_reminder():
            if not dry_run:
                notify_appointment_reminder(appt, dispatcher=dispatcher)
                appt.reminder_sent = True
                appt.reminder_sent_at = now
                appt.save(update_fields=["reminder_sent", "reminder_sent_at", "updated_at"])
            reminded += 1

        already = set(
            Notification.objects.filter(type="prescription_expiring")
            .values_list("data__prescriptionId", flat=True)
        )
        expiring = 0
        for rx in expiring_soon(now):
            if rx.id in already:
                continue
            if not dry_run:
                notify_prescription_expiring(rx, dispatcher=dispatcher)
            expiring += 1

        expired = purged = 0
        if not dry_run:
            expired = expire_stale(now)
            purged = cleanup_expired()

        logger.info("reminders: appointments=%s prescriptions=%s expired=%s purged=%s",
                    reminded, expiring, expired, purged)
        prefix = "[dry-run] " if dry_run else ""
        self.stdout.write(self.style.SUCCESS(
            f"{prefix}appointment reminders={reminded} expiring prescriptions={expiring} "
            f"expired={expired} notifications purged={purged} at {now}"
        ))
