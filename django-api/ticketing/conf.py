"""Ticketing policy settings.

Values come from the `TICKETING` dict in Django settings, falling back to the
defaults below. Services receive these values by injection.
"""

from dataclasses import dataclass, fields
from datetime import timedelta
from typing import Any, Self

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    "PAYMENT_WINDOW": timedelta(hours=2),
    "STALE_AFTER": timedelta(days=3),
    "POINT_REFUND_VALIDITY_MONTHS": 3,
    "EXPIRY_SWEEP_INTERVAL": timedelta(minutes=5),
    "STALE_SWEEP_INTERVAL": timedelta(minutes=60),
    "PAYMENT_PROOF_DIR": "payment_proofs",
    "EMAIL_RESOLVER": "ticketing.services.notifications.lookup_user_email",
    "NOTIFICATION_FROM_EMAIL": None,
}


@dataclass(frozen=True)
class TicketingSettings:
    payment_window: timedelta
    stale_after: timedelta
    point_refund_validity_months: int
    expiry_sweep_interval: timedelta
    stale_sweep_interval: timedelta
    payment_proof_dir: str
    email_resolver: str
    notification_from_email: str | None

    @classmethod
    def load(cls) -> Self:
        configured = getattr(settings, "TICKETING", {})
        unknown = set(configured) - set(DEFAULTS)
        if unknown:
            raise ValueError(f"Unknown TICKETING settings: {', '.join(sorted(unknown))}")
        merged = {**DEFAULTS, **configured}
        return cls(**{field.name: merged[field.name.upper()] for field in fields(cls)})
