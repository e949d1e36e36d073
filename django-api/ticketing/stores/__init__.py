from ticketing.stores.in_memory import InMemoryLedgerStore
from ticketing.stores.interfaces import LedgerStore

__all__ = ["LedgerStore", "InMemoryLedgerStore"]
