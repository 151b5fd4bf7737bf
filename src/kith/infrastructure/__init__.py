"""Infrastructure layer: concrete implementations of application ports."""

from kith.infrastructure.handles import normalize_im_handle, normalize_phone
from kith.infrastructure.memory_repository import InMemoryRowStorage
from kith.infrastructure.notifications import LoggingChangeNotifier, RecordingChangeNotifier
from kith.infrastructure.persistence.neo4j_repository import (
    Neo4jRowStorage,
    ensure_constraints,
)

__all__ = [
    "InMemoryRowStorage",
    "LoggingChangeNotifier",
    "Neo4jRowStorage",
    "RecordingChangeNotifier",
    "ensure_constraints",
    "normalize_im_handle",
    "normalize_phone",
]
