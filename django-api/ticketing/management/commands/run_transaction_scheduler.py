import logging
import signal

from django.core.management.base import BaseCommand

from ticketing.services import build_scheduler

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Run the periodic transaction sweeps until interrupted."

    def handle(self, *args, **options):
        scheduler = build_scheduler()

        def shutdown(signum, frame):
            logger.info("Received signal %s, stopping scheduler", signum)
            scheduler.stop()

        signal.signal(signal.SIGINT, shutdown)
        signal.signal(signal.SIGTERM, shutdown)

        scheduler.start()
        self.stdout.write("Transaction scheduler running. Press Ctrl+C to stop.")
        while scheduler.is_running:
            if scheduler.wait(timeout=1.0):
                break
        scheduler.stop()
