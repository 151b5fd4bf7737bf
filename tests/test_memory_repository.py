"""Tests for InMemoryRowStorage transactions and snapshots."""

import pytest

from kith.domain import (
    Aggregate,
    AggregationException,
    Contact,
    ExceptionType,
    ImHandle,
    ImProtocol,
    PresenceRow,
    PresenceStatus,
)
from kith.domain.entities import new_id
from kith.infrastructure import InMemoryRowStorage


def _store_contact(storage: InMemoryRowStorage, **kwargs) -> Contact:
    aggregate_id = new_id()
    contact = Contact(aggregate_id=aggregate_id, **kwargs)
    with storage.atomic() as txn:
        txn.save_aggregate(Aggregate(id=aggregate_id, member_ids=(contact.id,)))
        txn.save_contact(contact)
    return contact


def test_commit_makes_writes_visible() -> None:
    storage = InMemoryRowStorage()
    contact = _store_contact(storage)
    assert storage.get_contact(contact.id) == contact
    assert storage.get_aggregate(contact.aggregate_id).member_ids == (contact.id,)


def test_failed_transaction_rolls_back() -> None:
    storage = InMemoryRowStorage()
    aggregate = Aggregate(member_ids=("c1",))
    with pytest.raises(RuntimeError):
        with storage.atomic() as txn:
            txn.save_aggregate(aggregate)
            assert txn.get_aggregate(aggregate.id) == aggregate
            raise RuntimeError("boom")
    assert storage.get_aggregate(aggregate.id) is None
    assert storage.list_aggregates() == []


def test_uncommitted_writes_hidden_from_readers() -> None:
    storage = InMemoryRowStorage()
    aggregate = Aggregate(member_ids=("c1",))
    with storage.snapshot() as before:
        with storage.atomic() as txn:
            txn.save_aggregate(aggregate)
            assert storage.get_aggregate(aggregate.id) is None
        assert before.get_aggregate(aggregate.id) is None
    assert storage.get_aggregate(aggregate.id) == aggregate


def test_presence_upsert_keeps_one_row() -> None:
    storage = InMemoryRowStorage()
    with storage.atomic() as txn:
        txn.save_presence(PresenceRow(ImProtocol.QQ, "10001", PresenceStatus.AVAILABLE))
        txn.save_presence(PresenceRow(ImProtocol.QQ, "10001", PresenceStatus.AWAY))
    assert storage.get_presence("4:10001").status is PresenceStatus.AWAY


def test_lookup_by_handle_and_phone() -> None:
    storage = InMemoryRowStorage()
    holder = _store_contact(
        storage,
        im_handles=(ImHandle(ImProtocol.YAHOO, "jane"),),
        phone_numbers=("+12025551234",),
    )
    _store_contact(storage)

    assert storage.find_contacts_by_im_handle("2:jane") == [holder]
    assert storage.find_contacts_by_phone("+12025551234") == [holder]
    assert storage.find_contacts_by_phone("+12025559999") == []


def test_exceptions_replaced_per_pair_and_dropped_with_contact() -> None:
    storage = InMemoryRowStorage()
    a, b, c = (_store_contact(storage) for _ in range(3))
    with storage.atomic() as txn:
        txn.save_exception(AggregationException(ExceptionType.KEEP_IN, a.id, b.id))
        txn.save_exception(AggregationException(ExceptionType.KEEP_IN, a.id, c.id))
        txn.save_exception(AggregationException(ExceptionType.KEEP_OUT, b.id, a.id))
    assert [e.type for e in storage.list_exceptions()] == [
        ExceptionType.KEEP_IN,
        ExceptionType.KEEP_OUT,
    ]

    with storage.atomic() as txn:
        txn.delete_contact(c.id)
    remaining = storage.list_exceptions()
    assert len(remaining) == 1
    assert {remaining[0].contact_a, remaining[0].contact_b} == {a.id, b.id}
    assert storage.get_contact(c.id) is None
