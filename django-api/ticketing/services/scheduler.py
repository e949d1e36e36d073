"""Background sweeps for unpaid and stale transactions.

Each job runs on its own daemon thread: once immediately on start, then every
interval until stopped, releasing its database connections between runs.
A run never raises into the loop; failures are logged and the next run
happens on schedule. Runs of different jobs may overlap with
each other and with request traffic; the service's compare-and-set transitions
keep that safe.
"""

import logging
import threading
from collections.abc import Callable
from datetime import timedelta

from django.db import close_old_connections

from ticketing.services.transaction_service import TransactionService

logger = logging.getLogger(__name__)


class TransactionScheduler:
    """Explicit start/stop lifecycle around the two periodic sweeps."""

    def __init__(
        self,
        service: TransactionService,
        expiry_interval: timedelta = timedelta(minutes=5),
        stale_interval: timedelta = timedelta(minutes=60),
    ) -> None:
        self._service = service
        self._jobs: dict[str, tuple[Callable[[], None], timedelta]] = {
            "expire-unpaid": (self.run_expiry, expiry_interval),
            "cancel-stale": (self.run_stale, stale_interval),
        }
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def start(self) -> None:
        if self.is_running:
            raise RuntimeError("Scheduler is already running")
        logger.info("Starting transaction scheduler")
        self._stop.clear()
        self._threads = [
            threading.Thread(
                target=self._loop,
                args=(job, interval),
                name=f"ticketing-{name}",
                daemon=True,
            )
            for name, (job, interval) in self._jobs.items()
        ]
        for thread in self._threads:
            thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
        logger.info("Transaction scheduler stopped")

    def wait(self, timeout: float | None = None) -> bool:
        """Block until stop() is called or `timeout` elapses."""
        return self._stop.wait(timeout)

    def run_expiry(self) -> None:
        try:
            result = self._service.run_expiry_sweep()
            if result.expired_count:
                logger.info("Scheduler expired %s unpaid transactions", result.expired_count)
        except Exception:
            logger.exception("Error expiring unpaid transactions")

    def run_stale(self) -> None:
        try:
            result = self._service.run_stale_sweep()
            if result.cancelled_count:
                logger.info("Scheduler cancelled %s stale transactions", result.cancelled_count)
        except Exception:
            logger.exception("Error cancelling stale transactions")

    def _loop(self, job: Callable[[], None], interval: timedelta) -> None:
        seconds = interval.total_seconds()
        while not self._stop.is_set():
            job()
            close_old_connections()
            if self._stop.wait(seconds):
                break
