"""Pytest configuration and shared fixtures."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from ticketing.conf import TicketingSettings
from ticketing.domain import (
    Capacity,
    Coupon,
    Event,
    EventId,
    Money,
    PointGrant,
    Promotion,
    TicketType,
    TicketTypeId,
    TransactionId,
    UserId,
)
from ticketing.services import build_transaction_service, build_wallet_service
from ticketing.services.notifications import NotificationSender
from ticketing.services.proof_storage import PaymentProofStorage, StoredProof
from ticketing.stores import InMemoryLedgerStore

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=dt_timezone.utc)


class FixedClock:
    """Clock that only moves when a test moves it."""

    def __init__(self, now: datetime = NOW) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class RecordingNotifier(NotificationSender):
    def __init__(self) -> None:
        self.accepted = []
        self.rejected = []

    def send_accepted(self, to_user, details) -> None:
        self.accepted.append((to_user, details))

    def send_rejected(self, to_user, details, reason, refund) -> None:
        self.rejected.append((to_user, details, reason, refund))


class FakeProofStorage(PaymentProofStorage):
    def __init__(self) -> None:
        self.saved = []
        self.deleted = []

    def save(self, transaction_id: TransactionId, upload) -> StoredProof:
        self.saved.append((transaction_id, upload.name))
        name = f"payment_{transaction_id}.png"
        return StoredProof(name=name, url=f"https://files.example.com/{name}")

    def delete(self, name: str) -> None:
        self.deleted.append(name)


@dataclass(frozen=True)
class Catalog:
    """A seeded event with two ticket types and its organizer."""

    event: Event
    vip: TicketType
    regular: TicketType
    organizer_id: UserId


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def buyer_id() -> UserId:
    return UserId(uuid.uuid4())


@pytest.fixture
def catalog(store: InMemoryLedgerStore, clock: FixedClock) -> Catalog:
    """Event with 25 seats: 5 VIP at 100.00 and 20 regular at 50.00."""
    event = store.add_event(
        Event(
            id=EventId(uuid.uuid4()),
            organizer_id=UserId(uuid.uuid4()),
            name="Harbour Lights Festival",
            total_seats=Capacity(25),
            available_seats=Capacity(25),
            start_date=clock.now() + timedelta(days=30),
            end_date=clock.now() + timedelta(days=31),
        )
    )
    vip = store.add_ticket_type(
        TicketType(
            id=TicketTypeId(uuid.uuid4()),
            event_id=event.id,
            name="VIP",
            price=Money.of("100.00"),
            quantity=Capacity(5),
            available_quantity=Capacity(5),
        )
    )
    regular = store.add_ticket_type(
        TicketType(
            id=TicketTypeId(uuid.uuid4()),
            event_id=event.id,
            name="Regular",
            price=Money.of("50.00"),
            quantity=Capacity(20),
            available_quantity=Capacity(20),
        )
    )
    return Catalog(event=event, vip=vip, regular=regular, organizer_id=event.organizer_id)


@pytest.fixture
def make_promotion(store: InMemoryLedgerStore, catalog: Catalog, clock: FixedClock):
    def factory(
        code: str = "SAVE10",
        percentage: str | None = "10",
        amount: str | None = None,
        max_usage: int = 10,
        current_usage: int = 0,
        valid_from: datetime | None = None,
        valid_until: datetime | None = None,
    ) -> Promotion:
        return store.add_promotion(
            Promotion(
                id=uuid.uuid4(),
                event_id=catalog.event.id,
                code=code,
                discount_percentage=Decimal(percentage) if percentage else None,
                discount_amount=Money.of(amount) if amount else None,
                max_usage=max_usage,
                current_usage=current_usage,
                valid_from=valid_from or clock.now() - timedelta(days=1),
                valid_until=valid_until or clock.now() + timedelta(days=10),
            )
        )

    return factory


@pytest.fixture
def make_coupon(store: InMemoryLedgerStore, clock: FixedClock, buyer_id: UserId):
    def factory(
        code: str = "WELCOME-1",
        user_id: UserId | None = None,
        percentage: str | None = None,
        amount: str | None = "20.00",
        is_used: bool = False,
        valid_from: datetime | None = None,
        valid_until: datetime | None = None,
    ) -> Coupon:
        return store.add_coupon(
            Coupon(
                id=uuid.uuid4(),
                user_id=user_id or buyer_id,
                code=code,
                discount_percentage=Decimal(percentage) if percentage else None,
                discount_amount=Money.of(amount) if amount else None,
                valid_from=valid_from or clock.now() - timedelta(days=1),
                valid_until=valid_until or clock.now() + timedelta(days=30),
                is_used=is_used,
                created_at=clock.now(),
            )
        )

    return factory


@pytest.fixture
def give_points(store: InMemoryLedgerStore, clock: FixedClock, buyer_id: UserId):
    def factory(
        amount: int,
        expires_in: timedelta = timedelta(days=90),
        user_id: UserId | None = None,
        remaining: int | None = None,
    ) -> PointGrant:
        return store.add_point_grant(
            PointGrant(
                id=uuid.uuid4(),
                user_id=user_id or buyer_id,
                amount=amount,
                remaining_amount=amount if remaining is None else remaining,
                expires_at=clock.now() + expires_in,
                created_at=clock.now(),
            )
        )

    return factory


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def proof_storage() -> FakeProofStorage:
    return FakeProofStorage()


@pytest.fixture
def ticketing_settings() -> TicketingSettings:
    return TicketingSettings.load()


@pytest.fixture
def service(store, clock, notifier, proof_storage, ticketing_settings):
    return build_transaction_service(
        store=store,
        clock=clock,
        notifier=notifier,
        proof_storage=proof_storage,
        config=ticketing_settings,
    )


@pytest.fixture
def wallet(store, clock, ticketing_settings):
    return build_wallet_service(store=store, clock=clock, config=ticketing_settings)
