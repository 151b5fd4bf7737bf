"""IM presence: one row per (protocol, handle) and a single summary status per aggregate."""

from collections.abc import Callable

from kith.application.ports import ChangeNotifier, RowReader, RowStorage
from kith.application.recompute import notify_all
from kith.domain import (
    Aggregate,
    ImHandle,
    ImProtocol,
    NotFoundError,
    PresenceRow,
    PresenceStatus,
)


class PresenceStore:
    """Stores presence rows keyed by (protocol, handle); a new status replaces the old one."""

    def __init__(
        self,
        storage: RowStorage,
        notifier: ChangeNotifier,
        *,
        normalize_im_handle: Callable[[ImProtocol, str], str | None] | None = None,
    ) -> None:
        self._storage = storage
        self._notifier = notifier
        self._normalize_im_handle = normalize_im_handle

    def _key(self, protocol: ImProtocol | int, handle: str) -> ImHandle:
        protocol = ImProtocol(protocol)
        if self._normalize_im_handle is not None:
            normalized = self._normalize_im_handle(protocol, handle)
            if not normalized:
                raise ValueError(f"Invalid IM handle: {handle!r}")
            handle = normalized
        return ImHandle(protocol=protocol, handle=handle)

    def insert_presence(
        self, protocol: ImProtocol | int, handle: str, status: PresenceStatus | int
    ) -> PresenceRow:
        """Upsert the status for (protocol, handle) and notify aggregates holding the handle."""
        im = self._key(protocol, handle)
        row = PresenceRow(protocol=im.protocol, handle=im.handle, status=status)
        with self._storage.atomic() as txn:
            txn.save_presence(row)
            affected = [c.aggregate_id for c in txn.find_contacts_by_im_handle(im.key)]
        notify_all(self._notifier, affected)
        return row

    def list_presence(self, protocol: ImProtocol | int, handle: str) -> list[PresenceRow]:
        row = self._storage.get_presence(self._key(protocol, handle).key)
        return [row] if row is not None else []

    def query_aggregate_summary_presence(self, aggregate_id: str) -> PresenceStatus | None:
        """The aggregate's presence: the most available status among its members' handles."""
        with self._storage.snapshot() as view:
            aggregate = view.get_aggregate(aggregate_id)
            if aggregate is None:
                raise NotFoundError("aggregate", aggregate_id)
            return summary_presence(view, aggregate)


def summary_presence(view: RowReader, aggregate: Aggregate) -> PresenceStatus | None:
    """Most available status over every IM handle of the aggregate's members, or None."""
    best: PresenceStatus | None = None
    for contact_id in aggregate.member_ids:
        contact = view.get_contact(contact_id)
        if contact is None:
            continue
        for im in contact.im_handles:
            row = view.get_presence(im.key)
            if row is not None and (best is None or row.status > best):
                best = row.status
    return best
