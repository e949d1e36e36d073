"""Buyer notifications for organizer decisions.

Senders are fire-and-forget from the caller's point of view: the transaction
service logs any exception they raise and never lets it affect a transition.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.mail import send_mail

from ticketing.domain import Money, UserId

logger = logging.getLogger(__name__)

NO_REASON_GIVEN = "The organizer did not provide a reason."


@dataclass(frozen=True)
class TicketLine:
    name: str
    quantity: int
    unit_price: Money


@dataclass(frozen=True)
class TransactionDetails:
    """Snapshot of a transaction rendered into notifications."""

    invoice_number: str
    event_name: str
    event_start: datetime | None
    tickets: tuple[TicketLine, ...]
    total_amount: Money
    final_amount: Money


@dataclass(frozen=True)
class RefundSummary:
    """What a rejection gave back to the buyer."""

    points_refunded: int
    coupon_restored: str | None
    seats_restored: int


class NotificationSender(ABC):
    """Interface for decision notifications."""

    @abstractmethod
    def send_accepted(self, to_user: UserId, details: TransactionDetails) -> None:
        ...

    @abstractmethod
    def send_rejected(
        self,
        to_user: UserId,
        details: TransactionDetails,
        reason: str,
        refund: RefundSummary,
    ) -> None:
        ...


def lookup_user_email(user_id: UserId) -> str | None:
    """Default email resolver backed by the configured auth user model."""
    user_model = get_user_model()
    try:
        return (
            user_model.objects.filter(pk=user_id.value)
            .values_list("email", flat=True)
            .first()
        )
    except (TypeError, ValueError, OverflowError, DjangoValidationError):
        return None


class EmailNotificationSender(NotificationSender):
    """Plain-text email through Django's mail backend."""

    def __init__(
        self,
        resolve_email: Callable[[UserId], str | None],
        from_email: str | None = None,
    ) -> None:
        self._resolve_email = resolve_email
        self._from_email = from_email

    def send_accepted(self, to_user: UserId, details: TransactionDetails) -> None:
        lines = [
            f"Your payment for {details.event_name} has been confirmed.",
            f"Invoice: {details.invoice_number}",
            "",
            *(
                f"- {ticket.name} x{ticket.quantity} @ {ticket.unit_price}"
                for ticket in details.tickets
            ),
            "",
            f"Total: {details.total_amount}",
            f"Paid: {details.final_amount}",
        ]
        if details.event_start is not None:
            lines.append(f"Event starts: {details.event_start:%Y-%m-%d %H:%M %Z}")
        self._send(to_user, f"Transaction confirmed - {details.invoice_number}", lines)

    def send_rejected(
        self,
        to_user: UserId,
        details: TransactionDetails,
        reason: str,
        refund: RefundSummary,
    ) -> None:
        lines = [
            f"Your transaction for {details.event_name} was rejected.",
            f"Invoice: {details.invoice_number}",
            f"Reason: {reason}",
            "",
            f"Seats released: {refund.seats_restored}",
        ]
        if refund.points_refunded:
            lines.append(f"Points refunded: {refund.points_refunded}")
        if refund.coupon_restored:
            lines.append(f"Coupon restored: {refund.coupon_restored}")
        self._send(to_user, f"Transaction rejected - {details.invoice_number}", lines)

    def _send(self, to_user: UserId, subject: str, lines: list[str]) -> None:
        recipient = self._resolve_email(to_user)
        if not recipient:
            logger.warning("No email address for user %s; skipping %r", to_user, subject)
            return
        send_mail(subject, "\n".join(lines), self._from_email, [recipient], fail_silently=False)
        logger.info("Sent %r to user %s", subject, to_user)
