"""Aggregation: which contacts form one logical person, and the values derived for it.

Membership is explicit: each aggregate lists its members and each contact names
its aggregate. Every structural change (merge, split, removal) rewrites both
sides and recomputes the affected aggregates in the same transaction.
"""

import logging
from dataclasses import replace

from kith.application.dto import UNCHANGED
from kith.application.ports import ChangeNotifier, RowStorage, RowWriter
from kith.application.recompute import notify_all, recompute_aggregate
from kith.domain import (
    Aggregate,
    AggregationException,
    Contact,
    ExceptionType,
    NotFoundError,
)

logger = logging.getLogger(__name__)


def _require_contact(txn: RowWriter, contact_id: str) -> Contact:
    contact = txn.get_contact(contact_id)
    if contact is None:
        raise NotFoundError("contact", contact_id)
    return contact


def _require_aggregate(txn: RowWriter, aggregate_id: str) -> Aggregate:
    aggregate = txn.get_aggregate(aggregate_id)
    if aggregate is None:
        raise NotFoundError("aggregate", aggregate_id)
    return aggregate


class AggregationEngine:
    """Applies KEEP_IN / KEEP_OUT exceptions and keeps aggregate values current."""

    def __init__(self, storage: RowStorage, notifier: ChangeNotifier) -> None:
        self._storage = storage
        self._notifier = notifier

    def apply_exception(
        self, exception_type: ExceptionType | str, contact_a: str, contact_b: str
    ) -> str:
        """Merge (KEEP_IN) or split (KEEP_OUT) two contacts. Returns contact_a's aggregate id.

        KEEP_IN keeps contact_a's aggregate and moves every member of
        contact_b's aggregate into it. KEEP_OUT moves contact_b alone into a
        new aggregate whose values come from contact_b's own settings. Either
        is a no-op when the contacts are already together / apart.
        """
        exception = AggregationException(type=exception_type, contact_a=contact_a, contact_b=contact_b)
        with self._storage.atomic() as txn:
            first = _require_contact(txn, contact_a)
            second = _require_contact(txn, contact_b)
            txn.save_exception(exception)
            if exception.type is ExceptionType.KEEP_IN:
                touched = self._merge(txn, first, second)
            else:
                touched = self._split(txn, first, second)
            result = _require_contact(txn, contact_a).aggregate_id
        notify_all(self._notifier, touched)
        return result

    def _merge(self, txn: RowWriter, first: Contact, second: Contact) -> list[str]:
        if first.aggregate_id == second.aggregate_id:
            return []
        survivor = _require_aggregate(txn, first.aggregate_id)
        absorbed = _require_aggregate(txn, second.aggregate_id)
        for contact_id in absorbed.member_ids:
            member = _require_contact(txn, contact_id)
            txn.save_contact(replace(member, aggregate_id=survivor.id))
        txn.delete_aggregate(absorbed.id)
        recompute_aggregate(txn, survivor.id, survivor.member_ids + absorbed.member_ids)
        logger.info("Merged aggregate %s into %s", absorbed.id, survivor.id)
        return [survivor.id, absorbed.id]

    def _split(self, txn: RowWriter, first: Contact, second: Contact) -> list[str]:
        if first.aggregate_id != second.aggregate_id:
            return []
        shared = _require_aggregate(txn, first.aggregate_id)
        split_off = Aggregate(member_ids=(second.id,))
        txn.save_aggregate(split_off)
        txn.save_contact(replace(second, aggregate_id=split_off.id))
        remaining = tuple(m for m in shared.member_ids if m != second.id)
        recompute_aggregate(txn, shared.id, remaining)
        recompute_aggregate(txn, split_off.id)
        logger.info("Split contact %s out of %s into %s", second.id, shared.id, split_off.id)
        return [shared.id, split_off.id]

    def query_aggregate_id(self, contact_id: str) -> str:
        contact = self._storage.get_contact(contact_id)
        if contact is None:
            raise NotFoundError("contact", contact_id)
        return contact.aggregate_id

    def get_aggregate(self, aggregate_id: str) -> Aggregate:
        aggregate = self._storage.get_aggregate(aggregate_id)
        if aggregate is None:
            raise NotFoundError("aggregate", aggregate_id)
        return aggregate

    def list_exceptions(self) -> list[AggregationException]:
        return self._storage.list_exceptions()

    def remove_contact(self, contact_id: str) -> None:
        """Delete a contact. Its aggregate is recomputed, or deleted with its last member."""
        with self._storage.atomic() as txn:
            contact = _require_contact(txn, contact_id)
            aggregate = _require_aggregate(txn, contact.aggregate_id)
            remaining = tuple(m for m in aggregate.member_ids if m != contact_id)
            txn.delete_contact(contact_id)
            if remaining:
                recompute_aggregate(txn, aggregate.id, remaining)
            else:
                txn.delete_aggregate(aggregate.id)
                logger.info("Deleted aggregate %s with its last contact", aggregate.id)
        notify_all(self._notifier, [aggregate.id])

    def set_contact_preferences(
        self, contact_id: str, send_to_voicemail: bool, ringtone=UNCHANGED
    ) -> Aggregate:
        """Change one contact's own settings and recompute its aggregate."""
        with self._storage.atomic() as txn:
            contact = _require_contact(txn, contact_id)
            txn.save_contact(_with_preferences(contact, send_to_voicemail, ringtone))
            aggregate = recompute_aggregate(txn, contact.aggregate_id)
        notify_all(self._notifier, [aggregate.id])
        return aggregate

    def set_aggregate_preferences(
        self, aggregate_id: str, send_to_voicemail: bool, ringtone=UNCHANGED
    ) -> Aggregate:
        """Set the aggregate's values, written through to each current member."""
        with self._storage.atomic() as txn:
            aggregate = _require_aggregate(txn, aggregate_id)
            for contact_id in aggregate.member_ids:
                member = _require_contact(txn, contact_id)
                txn.save_contact(_with_preferences(member, send_to_voicemail, ringtone))
            aggregate = recompute_aggregate(txn, aggregate_id)
        notify_all(self._notifier, [aggregate_id])
        return aggregate


def _with_preferences(contact: Contact, send_to_voicemail: bool, ringtone) -> Contact:
    contact = replace(contact, send_to_voicemail=bool(send_to_voicemail))
    if ringtone is not UNCHANGED:
        contact = replace(contact, custom_ringtone=ringtone)
    return contact
