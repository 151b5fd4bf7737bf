"""Contact records: creation, structured names, IM handles and phone numbers."""

from collections.abc import Callable, Mapping
from dataclasses import replace

from kith.application.ports import ChangeNotifier, RowStorage
from kith.application.recompute import notify_all, recompute_aggregate
from kith.domain import (
    Aggregate,
    Contact,
    ImHandle,
    ImProtocol,
    NotFoundError,
    StructuredName,
    build_structured_name,
)
from kith.domain.entities import new_id


def _strip_handle(protocol: ImProtocol, raw: str) -> str | None:
    return (raw or "").strip() or None


def _strip_phone(raw: str, default_region: str | None = None) -> str | None:
    return (raw or "").strip() or None


class IdentityStore:
    """Creates contacts and stores their name, IM handles and phone numbers.

    normalize_phone and normalize_im_handle turn caller input into the stored
    form, returning None when the input is not usable.
    """

    def __init__(
        self,
        storage: RowStorage,
        notifier: ChangeNotifier,
        *,
        normalize_phone: Callable[[str, str | None], str | None] | None = None,
        normalize_im_handle: Callable[[ImProtocol, str], str | None] | None = None,
    ) -> None:
        self._storage = storage
        self._notifier = notifier
        self._normalize_phone = normalize_phone or _strip_phone
        self._normalize_im_handle = normalize_im_handle or _strip_handle

    def create_contact(self) -> str:
        """Create a contact as the only member of a new aggregate. Returns the contact id."""
        contact_id = new_id()
        aggregate = Aggregate(member_ids=(contact_id,))
        with self._storage.atomic() as txn:
            txn.save_aggregate(aggregate)
            txn.save_contact(Contact(id=contact_id, aggregate_id=aggregate.id))
        notify_all(self._notifier, [aggregate.id])
        return contact_id

    def get_contact(self, contact_id: str) -> Contact:
        contact = self._storage.get_contact(contact_id)
        if contact is None:
            raise NotFoundError("contact", contact_id)
        return contact

    def insert_structured_name(
        self, contact_id: str, fields: Mapping[str, str | None]
    ) -> StructuredName:
        """Set the contact's name from explicit parts or by parsing display_name.

        Explicit parts always win: when any part is given the display name is
        not parsed and missing parts stay None.
        """
        name = build_structured_name(fields)
        with self._storage.atomic() as txn:
            contact = txn.get_contact(contact_id)
            if contact is None:
                raise NotFoundError("contact", contact_id)
            txn.save_contact(replace(contact, name=name))
            recompute_aggregate(txn, contact.aggregate_id)
        notify_all(self._notifier, [contact.aggregate_id])
        return name

    def get_structured_name(self, contact_id: str) -> StructuredName | None:
        return self.get_contact(contact_id).name

    def insert_im_handle(
        self, contact_id: str, protocol: ImProtocol | int, handle: str
    ) -> ImHandle:
        protocol = ImProtocol(protocol)
        normalized = self._normalize_im_handle(protocol, handle)
        if not normalized:
            raise ValueError(f"Invalid IM handle: {handle!r}")
        im = ImHandle(protocol=protocol, handle=normalized)
        with self._storage.atomic() as txn:
            contact = txn.get_contact(contact_id)
            if contact is None:
                raise NotFoundError("contact", contact_id)
            if im in contact.im_handles:
                return im
            txn.save_contact(replace(contact, im_handles=contact.im_handles + (im,)))
        notify_all(self._notifier, [contact.aggregate_id])
        return im

    def insert_phone(
        self, contact_id: str, raw: str, default_region: str | None = None
    ) -> str:
        """Attach a phone number, stored in E.164 form. Returns the stored number."""
        number = self._normalize_phone(raw, default_region)
        if not number:
            raise ValueError(f"Invalid phone number: {raw!r}")
        with self._storage.atomic() as txn:
            contact = txn.get_contact(contact_id)
            if contact is None:
                raise NotFoundError("contact", contact_id)
            if number in contact.phone_numbers:
                return number
            txn.save_contact(
                replace(contact, phone_numbers=contact.phone_numbers + (number,))
            )
        notify_all(self._notifier, [contact.aggregate_id])
        return number

    def find_contacts_by_phone(
        self, raw: str, default_region: str | None = None
    ) -> list[str]:
        """Return ids of contacts holding the number (any format of the same number matches)."""
        number = self._normalize_phone(raw, default_region)
        if not number:
            return []
        return [c.id for c in self._storage.find_contacts_by_phone(number)]
