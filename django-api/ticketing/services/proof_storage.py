"""Payment proof storage backed by the Django storage API."""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass

from django.core.files import File
from django.core.files.storage import Storage, default_storage

from ticketing.clock import Clock
from ticketing.domain import TransactionId


@dataclass(frozen=True)
class StoredProof:
    name: str
    url: str


class PaymentProofStorage(ABC):
    """Accepts an uploaded proof and returns where it was stored."""

    @abstractmethod
    def save(self, transaction_id: TransactionId, upload: File) -> StoredProof:
        ...

    @abstractmethod
    def delete(self, name: str) -> None:
        ...


class DjangoPaymentProofStorage(PaymentProofStorage):
    def __init__(
        self,
        clock: Clock,
        directory: str = "payment_proofs",
        storage: Storage | None = None,
    ) -> None:
        self._clock = clock
        self._directory = directory
        self._storage = storage or default_storage

    def save(self, transaction_id: TransactionId, upload: File) -> StoredProof:
        extension = os.path.splitext(upload.name or "")[1].lower()
        stamp = int(self._clock.now().timestamp() * 1000)
        name = f"{self._directory}/payment_{transaction_id}_{stamp}{extension}"
        saved = self._storage.save(name, upload)
        return StoredProof(name=saved, url=self._storage.url(saved))

    def delete(self, name: str) -> None:
        self._storage.delete(name)
