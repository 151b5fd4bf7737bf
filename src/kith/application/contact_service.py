"""Contact service: the single entry point for reading and updating contacts and aggregates."""

from collections.abc import Callable, Mapping

from kith.application.aggregation import AggregationEngine
from kith.application.dto import UNCHANGED, AggregateSnapshot
from kith.application.identity_store import IdentityStore
from kith.application.ports import ChangeNotifier, RowStorage
from kith.application.presence_store import PresenceStore, summary_presence
from kith.domain import (
    AggregationException,
    ExceptionType,
    ImHandle,
    ImProtocol,
    NotFoundError,
    PresenceRow,
    PresenceStatus,
    StructuredName,
)


class ContactService:
    """Core flow: create contacts -> name them, add handles and presence -> merge/split -> query aggregates."""

    def __init__(
        self,
        storage: RowStorage,
        notifier: ChangeNotifier,
        *,
        normalize_phone: Callable[[str, str | None], str | None] | None = None,
        normalize_im_handle: Callable[[ImProtocol, str], str | None] | None = None,
    ) -> None:
        self._storage = storage
        self.identity = IdentityStore(
            storage,
            notifier,
            normalize_phone=normalize_phone,
            normalize_im_handle=normalize_im_handle,
        )
        self.presence = PresenceStore(
            storage, notifier, normalize_im_handle=normalize_im_handle
        )
        self.aggregation = AggregationEngine(storage, notifier)

    # --- contacts ---

    def create_contact(self) -> str:
        return self.identity.create_contact()

    def remove_contact(self, contact_id: str) -> None:
        self.aggregation.remove_contact(contact_id)

    def insert_structured_name(
        self, contact_id: str, fields: Mapping[str, str | None]
    ) -> StructuredName:
        return self.identity.insert_structured_name(contact_id, fields)

    def get_structured_name(self, contact_id: str) -> StructuredName | None:
        return self.identity.get_structured_name(contact_id)

    def insert_im_handle(
        self, contact_id: str, protocol: ImProtocol | int, handle: str
    ) -> ImHandle:
        return self.identity.insert_im_handle(contact_id, protocol, handle)

    def insert_phone(
        self, contact_id: str, raw: str, default_region: str | None = None
    ) -> str:
        return self.identity.insert_phone(contact_id, raw, default_region)

    def find_contacts_by_phone(
        self, raw: str, default_region: str | None = None
    ) -> list[str]:
        return self.identity.find_contacts_by_phone(raw, default_region)

    def set_contact_preferences(
        self, contact_id: str, send_to_voicemail: bool, ringtone=UNCHANGED
    ) -> AggregateSnapshot:
        aggregate = self.aggregation.set_contact_preferences(
            contact_id, send_to_voicemail, ringtone
        )
        return self.query_aggregate(aggregate.id)

    # --- presence ---

    def insert_presence(
        self, protocol: ImProtocol | int, handle: str, status: PresenceStatus | int
    ) -> PresenceRow:
        return self.presence.insert_presence(protocol, handle, status)

    def list_presence(self, protocol: ImProtocol | int, handle: str) -> list[PresenceRow]:
        return self.presence.list_presence(protocol, handle)

    def query_aggregate_summary_presence(self, aggregate_id: str) -> PresenceStatus | None:
        return self.presence.query_aggregate_summary_presence(aggregate_id)

    # --- aggregation ---

    def apply_exception(
        self, exception_type: ExceptionType | str, contact_a: str, contact_b: str
    ) -> str:
        return self.aggregation.apply_exception(exception_type, contact_a, contact_b)

    def list_exceptions(self) -> list[AggregationException]:
        return self.aggregation.list_exceptions()

    def query_aggregate_id(self, contact_id: str) -> str:
        return self.aggregation.query_aggregate_id(contact_id)

    def update_preferences(
        self, aggregate_id: str, send_to_voicemail: bool, ringtone=UNCHANGED
    ) -> int:
        """Set send-to-voicemail (and the ringtone, when given) for the whole aggregate.

        Returns the number of aggregates updated (always 1). Raises NotFoundError
        for an unknown aggregate.
        """
        self.aggregation.set_aggregate_preferences(aggregate_id, send_to_voicemail, ringtone)
        return 1

    def query_aggregate(self, aggregate_id: str) -> AggregateSnapshot:
        with self._storage.snapshot() as view:
            aggregate = view.get_aggregate(aggregate_id)
            if aggregate is None:
                raise NotFoundError("aggregate", aggregate_id)
            return AggregateSnapshot.from_aggregate(
                aggregate, presence=summary_presence(view, aggregate)
            )

    def list_aggregates(self) -> list[AggregateSnapshot]:
        with self._storage.snapshot() as view:
            return [
                AggregateSnapshot.from_aggregate(a, presence=summary_presence(view, a))
                for a in view.list_aggregates()
            ]
