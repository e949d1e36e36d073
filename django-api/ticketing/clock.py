"""Time source used for every deadline and staleness comparison."""

from datetime import datetime
from typing import Protocol

from django.utils import timezone


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock returning timezone-aware datetimes."""

    def now(self) -> datetime:
        return timezone.now()
