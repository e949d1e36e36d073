from django.core.management.base import BaseCommand

from ticketing.services import build_transaction_service


class Command(BaseCommand):
    help = "Run the expiry and stale sweeps once and exit."

    def add_arguments(self, parser):
        parser.add_argument("--expiry-only", action="store_true", help="Skip the stale sweep.")
        parser.add_argument("--stale-only", action="store_true", help="Skip the expiry sweep.")

    def handle(self, *args, **options):
        service = build_transaction_service()
        if not options["stale_only"]:
            result = service.run_expiry_sweep()
            self.stdout.write(f"Expired {result.expired_count} unpaid transactions")
        if not options["expiry_only"]:
            result = service.run_stale_sweep()
            self.stdout.write(f"Cancelled {result.cancelled_count} stale transactions")
