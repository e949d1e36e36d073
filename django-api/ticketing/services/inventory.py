"""Inventory reservation engine.

Owns every mutation of ticket type availability and event seat counts.
`reserve` and `restore` are exact inverses; callers guarantee that a
reservation is restored at most once.
"""

import logging

from ticketing.domain import (
    EventId,
    OrderLine,
    Reservation,
    ReservationLine,
    TicketType,
    TicketTypeId,
)
from ticketing.domain.errors import OutOfStockError, TicketTypeMismatchError
from ticketing.stores.interfaces import LedgerStore

logger = logging.getLogger(__name__)


class InventoryReservationEngine:
    """Atomic check-and-decrement of ticket and seat availability."""

    def __init__(self, store: LedgerStore) -> None:
        self._store = store

    def check_availability(
        self, event_id: EventId, lines: list[OrderLine]
    ) -> dict[TicketTypeId, TicketType]:
        """Read-only pre-check used to fail fast and to price the order.

        Raises:
            TicketTypeMismatchError: If a ticket type is unknown or belongs to
                another event.
            OutOfStockError: If a line asks for more than is available now.
        """
        ticket_types = self._load(event_id, [line.ticket_type_id for line in lines])
        for line in lines:
            ticket_type = ticket_types[line.ticket_type_id]
            if ticket_type.available_quantity.value < line.quantity:
                raise OutOfStockError(ticket_type.name, ticket_type.available_quantity.value)
        return ticket_types

    def reserve(self, event_id: EventId, lines: list[OrderLine]) -> Reservation:
        """Decrement every line's availability and the event's seats together.

        Rows are decremented in a stable order so concurrent reservations
        acquire row locks in the same sequence.

        Raises:
            TicketTypeMismatchError: If a ticket type does not belong to the event.
            OutOfStockError: If any decrement would overdraw availability.
        """
        ticket_types = self._load(event_id, [line.ticket_type_id for line in lines])
        reservation = Reservation(
            event_id=event_id,
            lines=tuple(ReservationLine(line.ticket_type_id, line.quantity) for line in lines),
        )
        with self._store.atomic():
            for line in sorted(reservation.lines, key=lambda line: str(line.ticket_type_id)):
                if not self._store.try_decrement_ticket_type(line.ticket_type_id, line.quantity):
                    raise OutOfStockError(ticket_types[line.ticket_type_id].name)
            if not self._store.try_decrement_event_seats(event_id, reservation.total_quantity):
                raise OutOfStockError("this event")
        logger.debug("Reserved %s seats for event %s", reservation.total_quantity, event_id)
        return reservation

    def restore(self, reservation: Reservation) -> None:
        """Give back exactly what `reserve` took."""
        with self._store.atomic():
            for line in sorted(reservation.lines, key=lambda line: str(line.ticket_type_id)):
                self._store.increment_ticket_type(line.ticket_type_id, line.quantity)
            self._store.increment_event_seats(reservation.event_id, reservation.total_quantity)
        logger.debug("Restored %s seats for event %s", reservation.total_quantity, reservation.event_id)

    def _load(
        self, event_id: EventId, ticket_type_ids: list[TicketTypeId]
    ) -> dict[TicketTypeId, TicketType]:
        found = {tt.id: tt for tt in self._store.get_ticket_types(event_id, ticket_type_ids)}
        missing = [str(tid) for tid in ticket_type_ids if tid not in found]
        if missing:
            raise TicketTypeMismatchError(missing)
        return found
