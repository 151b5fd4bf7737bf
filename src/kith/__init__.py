"""
Kith core: clean-architecture layout.

- domain: entities (Contact, Aggregate, PresenceRow), name parsing, preference rules.
- application: use cases (ContactService, AggregationEngine), ports (RowStorage, ChangeNotifier), DTOs.
- infrastructure: adapters (InMemoryRowStorage, Neo4jRowStorage, notifiers, handle normalization).
"""

from kith.application import (
    UNCHANGED,
    AggregateSnapshot,
    AggregationEngine,
    ChangeNotifier,
    ContactService,
    IdentityStore,
    PresenceStore,
    RowStorage,
)
from kith.domain import (
    Aggregate,
    AggregationException,
    Contact,
    ExceptionType,
    ImProtocol,
    KithError,
    MalformedNameError,
    NotFoundError,
    PresenceRow,
    PresenceStatus,
    StorageError,
    StructuredName,
)
from kith.infrastructure import (
    InMemoryRowStorage,
    LoggingChangeNotifier,
    Neo4jRowStorage,
    RecordingChangeNotifier,
    normalize_im_handle,
    normalize_phone,
)


def build_service(
    storage: RowStorage | None = None, notifier: ChangeNotifier | None = None
) -> ContactService:
    """ContactService wired with the default adapters (in-memory storage, logging notifier)."""
    return ContactService(
        storage if storage is not None else InMemoryRowStorage(),
        notifier if notifier is not None else LoggingChangeNotifier(),
        normalize_phone=normalize_phone,
        normalize_im_handle=normalize_im_handle,
    )


__all__ = [
    "Aggregate",
    "AggregateSnapshot",
    "AggregationEngine",
    "AggregationException",
    "ChangeNotifier",
    "Contact",
    "ContactService",
    "ExceptionType",
    "IdentityStore",
    "ImProtocol",
    "InMemoryRowStorage",
    "KithError",
    "LoggingChangeNotifier",
    "MalformedNameError",
    "Neo4jRowStorage",
    "NotFoundError",
    "PresenceRow",
    "PresenceStatus",
    "PresenceStore",
    "RecordingChangeNotifier",
    "RowStorage",
    "StorageError",
    "StructuredName",
    "UNCHANGED",
    "build_service",
]
