"""In-memory implementation of RowStorage (no DB).

Committed state is never modified in place: a transaction works on a copy and
the copy replaces the committed state when the transaction ends without error.
Readers therefore always see a complete state.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field

from kith.domain import Aggregate, AggregationException, Contact, PresenceRow


@dataclass
class _State:
    contacts: dict[str, Contact] = field(default_factory=dict)
    aggregates: dict[str, Aggregate] = field(default_factory=dict)
    presence: dict[str, PresenceRow] = field(default_factory=dict)
    exceptions: dict[str, AggregationException] = field(default_factory=dict)

    def copy(self) -> "_State":
        # Entities are frozen, so copying the dicts is enough.
        return _State(
            contacts=dict(self.contacts),
            aggregates=dict(self.aggregates),
            presence=dict(self.presence),
            exceptions=dict(self.exceptions),
        )


class _StateView:
    """Read methods over one _State. Dict order is insertion order."""

    def __init__(self, state: _State) -> None:
        self._state = state

    def get_contact(self, contact_id: str) -> Contact | None:
        return self._state.contacts.get(contact_id)

    def get_aggregate(self, aggregate_id: str) -> Aggregate | None:
        return self._state.aggregates.get(aggregate_id)

    def list_aggregates(self) -> list[Aggregate]:
        return sorted(self._state.aggregates.values(), key=lambda a: a.created_at)

    def find_contacts_by_im_handle(self, key: str) -> list[Contact]:
        return [
            c
            for c in self._state.contacts.values()
            if any(im.key == key for im in c.im_handles)
        ]

    def find_contacts_by_phone(self, phone_number: str) -> list[Contact]:
        return [c for c in self._state.contacts.values() if phone_number in c.phone_numbers]

    def get_presence(self, key: str) -> PresenceRow | None:
        return self._state.presence.get(key)

    def list_exceptions(self) -> list[AggregationException]:
        return sorted(self._state.exceptions.values(), key=lambda e: e.created_at)


class _MemoryTransaction(_StateView):
    """Reads and writes against the transaction's working copy."""

    def save_contact(self, contact: Contact) -> None:
        self._state.contacts[contact.id] = contact

    def delete_contact(self, contact_id: str) -> None:
        self._state.contacts.pop(contact_id, None)
        self._state.exceptions = {
            key: exc
            for key, exc in self._state.exceptions.items()
            if contact_id not in (exc.contact_a, exc.contact_b)
        }

    def save_aggregate(self, aggregate: Aggregate) -> None:
        self._state.aggregates[aggregate.id] = aggregate

    def delete_aggregate(self, aggregate_id: str) -> None:
        self._state.aggregates.pop(aggregate_id, None)

    def save_presence(self, row: PresenceRow) -> None:
        self._state.presence[row.key] = row

    def save_exception(self, exception: AggregationException) -> None:
        # Re-insert so the latest exception for a pair sorts last.
        self._state.exceptions.pop(exception.pair_key, None)
        self._state.exceptions[exception.pair_key] = exception


class InMemoryRowStorage(_StateView):
    """Stores contacts, aggregates, presence and exceptions in memory."""

    def __init__(self) -> None:
        super().__init__(_State())
        self._lock = threading.Lock()

    @contextmanager
    def snapshot(self):
        yield _StateView(self._state)

    @contextmanager
    def atomic(self):
        with self._lock:
            working = self._state.copy()
            yield _MemoryTransaction(working)
            self._state = working
