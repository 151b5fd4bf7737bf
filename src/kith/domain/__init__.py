"""Domain layer: entities, name parsing, preference rules. No dependencies on outer layers."""

from kith.domain.entities import (
    Aggregate,
    AggregationException,
    Contact,
    ExceptionType,
    ImHandle,
    ImProtocol,
    PresenceRow,
    PresenceStatus,
    StructuredName,
)
from kith.domain.errors import KithError, MalformedNameError, NotFoundError, StorageError
from kith.domain.names import build_structured_name, parse_display_name
from kith.domain.preferences import ResolvedPreferences, resolve

__all__ = [
    "Aggregate",
    "AggregationException",
    "Contact",
    "ExceptionType",
    "ImHandle",
    "ImProtocol",
    "KithError",
    "MalformedNameError",
    "NotFoundError",
    "PresenceRow",
    "PresenceStatus",
    "ResolvedPreferences",
    "StorageError",
    "StructuredName",
    "build_structured_name",
    "parse_display_name",
    "resolve",
]
