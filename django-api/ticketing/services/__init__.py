"""Service layer and its default wiring."""

from django.utils.module_loading import import_string

from ticketing.clock import Clock, SystemClock
from ticketing.conf import TicketingSettings
from ticketing.services.discount_resolver import DiscountResolver, PricedOrder
from ticketing.services.inventory import InventoryReservationEngine
from ticketing.services.notifications import EmailNotificationSender, NotificationSender
from ticketing.services.points_ledger import PointsLedger
from ticketing.services.proof_storage import DjangoPaymentProofStorage, PaymentProofStorage
from ticketing.services.scheduler import TransactionScheduler
from ticketing.services.transaction_service import (
    ExpirySweepResult,
    StaleSweepResult,
    TransactionService,
    TransactionView,
)
from ticketing.services.wallet_service import WalletService
from ticketing.stores.django_store import DjangoLedgerStore
from ticketing.stores.interfaces import LedgerStore

__all__ = [
    "DiscountResolver",
    "PricedOrder",
    "InventoryReservationEngine",
    "PointsLedger",
    "TransactionService",
    "TransactionView",
    "ExpirySweepResult",
    "StaleSweepResult",
    "TransactionScheduler",
    "WalletService",
    "build_transaction_service",
    "build_wallet_service",
    "build_scheduler",
]


def build_transaction_service(
    store: LedgerStore | None = None,
    clock: Clock | None = None,
    notifier: NotificationSender | None = None,
    proof_storage: PaymentProofStorage | None = None,
    config: TicketingSettings | None = None,
) -> TransactionService:
    """Assemble a TransactionService, defaulting to the ORM store and email."""
    config = config or TicketingSettings.load()
    store = store or DjangoLedgerStore()
    clock = clock or SystemClock()
    points = PointsLedger(store, clock, config.point_refund_validity_months)
    if notifier is None:
        notifier = EmailNotificationSender(
            resolve_email=import_string(config.email_resolver),
            from_email=config.notification_from_email,
        )
    if proof_storage is None:
        proof_storage = DjangoPaymentProofStorage(clock, directory=config.payment_proof_dir)
    return TransactionService(
        store=store,
        clock=clock,
        inventory=InventoryReservationEngine(store),
        discounts=DiscountResolver(store, points, clock),
        notifier=notifier,
        proof_storage=proof_storage,
        payment_window=config.payment_window,
        stale_after=config.stale_after,
    )


def build_wallet_service(
    store: LedgerStore | None = None,
    clock: Clock | None = None,
    config: TicketingSettings | None = None,
) -> WalletService:
    config = config or TicketingSettings.load()
    store = store or DjangoLedgerStore()
    clock = clock or SystemClock()
    return WalletService(store, PointsLedger(store, clock, config.point_refund_validity_months), clock)


def build_scheduler(
    service: TransactionService | None = None,
    config: TicketingSettings | None = None,
) -> TransactionScheduler:
    config = config or TicketingSettings.load()
    return TransactionScheduler(
        service or build_transaction_service(config=config),
        expiry_interval=config.expiry_sweep_interval,
        stale_interval=config.stale_sweep_interval,
    )
