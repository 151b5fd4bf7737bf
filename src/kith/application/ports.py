"""Application ports (interfaces). Implemented by infrastructure adapters."""

from contextlib import AbstractContextManager
from typing import Protocol

from kith.domain import Aggregate, AggregationException, Contact, PresenceRow


class RowReader(Protocol):
    """Read access to contact, aggregate, presence and exception rows."""

    def get_contact(self, contact_id: str) -> Contact | None:
        """Return the contact with the given id, or None."""
        ...

    def get_aggregate(self, aggregate_id: str) -> Aggregate | None:
        """Return the aggregate with the given id, or None."""
        ...

    def list_aggregates(self) -> list[Aggregate]:
        """Return all aggregates in creation order."""
        ...

    def find_contacts_by_im_handle(self, key: str) -> list[Contact]:
        """Return contacts holding the IM handle with the given "protocol:handle" key."""
        ...

    def find_contacts_by_phone(self, phone_number: str) -> list[Contact]:
        """Return contacts holding the given E.164 phone number."""
        ...

    def get_presence(self, key: str) -> PresenceRow | None:
        """Return the presence row for a "protocol:handle" key, or None."""
        ...

    def list_exceptions(self) -> list[AggregationException]:
        """Return the latest recorded exception per contact pair, oldest first."""
        ...


class RowWriter(RowReader, Protocol):
    """Reads and writes inside one transaction. Reads see the transaction's own writes."""

    def save_contact(self, contact: Contact) -> None: ...

    def delete_contact(self, contact_id: str) -> None:
        """Delete the contact and every exception that names it."""
        ...

    def save_aggregate(self, aggregate: Aggregate) -> None: ...

    def delete_aggregate(self, aggregate_id: str) -> None: ...

    def save_presence(self, row: PresenceRow) -> None:
        """Insert or replace the row for (protocol, handle)."""
        ...

    def save_exception(self, exception: AggregationException) -> None:
        """Record the exception, replacing any earlier one for the same pair."""
        ...


class RowStorage(RowReader, Protocol):
    """Persists contacts, aggregates and presence. Writes happen in atomic()."""

    def snapshot(self) -> AbstractContextManager[RowReader]:
        """A consistent read-only view for reads spanning several rows."""
        ...

    def atomic(self) -> AbstractContextManager[RowWriter]:
        """Run writes as one transaction: all are committed, or none on error.
        Transactions are serialized; readers see state before or after, never between.
        """
        ...


class ChangeNotifier(Protocol):
    """Receives one event per aggregate touched by a committed mutation."""

    def notify(self, aggregate_id: str) -> None: ...
