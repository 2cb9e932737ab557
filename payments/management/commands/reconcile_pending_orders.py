from django.conf import settings
from django.core.management.base import BaseCommand

from payments.services import fail_stale_orders


class Command(BaseCommand):
    help = "Report orders stuck in pending (no callback ever arrived) and optionally fail them"

    def add_arguments(self, parser):
        parser.add_argument(
            "--older-than-minutes", type=int,
            default=settings.PAYMENTS.get("STALE_ORDER_MINUTES", 120),
        )
        parser.add_argument("--fail", action="store_true", help="Mark stale orders as failed")

    def handle(self, *args, **opts):
        minutes = opts["older_than_minutes"]
        stale = fail_stale_orders(minutes, dry_run=not opts["fail"])

        if not stale:
            self.stdout.write(self.style.SUCCESS("No pending orders to reconcile."))
            return

        for order_id in stale:
            if opts["fail"]:
                self.stdout.write(self.style.SUCCESS(f"Updated {order_id} -> failed"))
            else:
                self.stdout.write(self.style.WARNING(f"{order_id}: pending for over {minutes} minutes"))

        verb = "Failed" if opts["fail"] else "Found"
        self.stdout.write(self.style.SUCCESS(f"{verb} {len(stale)} stale pending orders."))
