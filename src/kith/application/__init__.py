"""Application layer: use cases, ports, and DTOs. Depends only on domain."""

from kith.application.aggregation import AggregationEngine
from kith.application.contact_service import ContactService
from kith.application.dto import UNCHANGED, AggregateSnapshot
from kith.application.identity_store import IdentityStore
from kith.application.ports import ChangeNotifier, RowReader, RowStorage, RowWriter
from kith.application.presence_store import PresenceStore

__all__ = [
    "AggregateSnapshot",
    "AggregationEngine",
    "ChangeNotifier",
    "ContactService",
    "IdentityStore",
    "PresenceStore",
    "RowReader",
    "RowStorage",
    "RowWriter",
    "UNCHANGED",
]
