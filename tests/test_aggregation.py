"""Unit tests for AggregationEngine: merge, split, idempotence, removal, notifications."""

import pytest

from kith.application import AggregationEngine, IdentityStore
from kith.domain import ExceptionType, NotFoundError
from kith.infrastructure import InMemoryRowStorage, RecordingChangeNotifier


def _setup():
    storage = InMemoryRowStorage()
    notifier = RecordingChangeNotifier()
    return IdentityStore(storage, notifier), AggregationEngine(storage, notifier), notifier


def _partition(engine: AggregationEngine, *contact_ids: str) -> dict[str, str]:
    return {c: engine.query_aggregate_id(c) for c in contact_ids}


def test_keep_in_is_idempotent() -> None:
    identity, engine, _ = _setup()
    a, b = identity.create_contact(), identity.create_contact()

    engine.apply_exception(ExceptionType.KEEP_IN, a, b)
    once = _partition(engine, a, b)
    members_once = engine.get_aggregate(once[a]).member_ids
    engine.apply_exception(ExceptionType.KEEP_IN, a, b)

    assert _partition(engine, a, b) == once
    assert engine.get_aggregate(once[a]).member_ids == members_once


def test_keep_out_is_idempotent() -> None:
    identity, engine, _ = _setup()
    a, b = identity.create_contact(), identity.create_contact()
    engine.apply_exception(ExceptionType.KEEP_IN, a, b)

    engine.apply_exception(ExceptionType.KEEP_OUT, a, b)
    once = _partition(engine, a, b)
    engine.apply_exception(ExceptionType.KEEP_OUT, a, b)

    assert _partition(engine, a, b) == once
    assert once[a] != once[b]


def test_keep_out_on_separate_contacts_is_noop() -> None:
    identity, engine, notifier = _setup()
    a, b = identity.create_contact(), identity.create_contact()
    before = _partition(engine, a, b)
    notifier.clear()

    assert engine.apply_exception(ExceptionType.KEEP_OUT, a, b) == before[a]
    assert _partition(engine, a, b) == before
    assert notifier.events == []


def test_keep_in_merges_whole_aggregates() -> None:
    identity, engine, _ = _setup()
    a, b, c, d = (identity.create_contact() for _ in range(4))
    engine.apply_exception(ExceptionType.KEEP_IN, a, b)
    engine.apply_exception(ExceptionType.KEEP_IN, c, d)

    survivor = engine.apply_exception(ExceptionType.KEEP_IN, b, d)

    assert set(_partition(engine, a, b, c, d).values()) == {survivor}
    assert engine.get_aggregate(survivor).member_ids == (a, b, c, d)


def test_keep_out_moves_only_the_second_contact() -> None:
    identity, engine, _ = _setup()
    a, b, c = (identity.create_contact() for _ in range(3))
    engine.apply_exception(ExceptionType.KEEP_IN, a, b)
    engine.apply_exception(ExceptionType.KEEP_IN, a, c)
    shared = engine.query_aggregate_id(a)

    engine.apply_exception(ExceptionType.KEEP_OUT, a, c)

    assert engine.get_aggregate(shared).member_ids == (a, b)
    assert engine.get_aggregate(engine.query_aggregate_id(c)).member_ids == (c,)


def test_merge_and_split_notify_both_aggregates() -> None:
    identity, engine, notifier = _setup()
    a, b = identity.create_contact(), identity.create_contact()
    aggregate_a, aggregate_b = engine.query_aggregate_id(a), engine.query_aggregate_id(b)
    notifier.clear()

    engine.apply_exception(ExceptionType.KEEP_IN, a, b)
    assert notifier.events == [aggregate_a, aggregate_b]

    notifier.clear()
    engine.apply_exception(ExceptionType.KEEP_OUT, a, b)
    assert notifier.events == [aggregate_a, engine.query_aggregate_id(b)]


def test_unknown_contact_changes_nothing() -> None:
    identity, engine, notifier = _setup()
    a = identity.create_contact()
    aggregate_a = engine.query_aggregate_id(a)
    notifier.clear()

    with pytest.raises(NotFoundError):
        engine.apply_exception(ExceptionType.KEEP_IN, a, "missing")

    assert engine.get_aggregate(aggregate_a).member_ids == (a,)
    assert engine.list_exceptions() == []
    assert notifier.events == []
    with pytest.raises(NotFoundError):
        engine.query_aggregate_id("missing")


def test_exception_needs_two_distinct_contacts() -> None:
    identity, engine, _ = _setup()
    a = identity.create_contact()
    with pytest.raises(ValueError):
        engine.apply_exception(ExceptionType.KEEP_IN, a, a)


def test_latest_exception_per_pair_is_recorded() -> None:
    identity, engine, _ = _setup()
    a, b, c = (identity.create_contact() for _ in range(3))
    engine.apply_exception(ExceptionType.KEEP_IN, a, b)
    engine.apply_exception(ExceptionType.KEEP_IN, a, c)
    engine.apply_exception(ExceptionType.KEEP_OUT, b, a)

    recorded = engine.list_exceptions()
    assert [(e.type, {e.contact_a, e.contact_b}) for e in recorded] == [
        (ExceptionType.KEEP_IN, {a, c}),
        (ExceptionType.KEEP_OUT, {a, b}),
    ]


def test_remove_contact_recomputes_then_deletes_aggregate() -> None:
    identity, engine, _ = _setup()
    a, b = identity.create_contact(), identity.create_contact()
    engine.set_contact_preferences(a, True, "foo")
    engine.set_contact_preferences(b, False)
    aggregate_id = engine.apply_exception(ExceptionType.KEEP_IN, a, b)
    assert engine.get_aggregate(aggregate_id).send_to_voicemail is False

    engine.remove_contact(b)
    remaining = engine.get_aggregate(aggregate_id)
    assert remaining.member_ids == (a,)
    assert remaining.send_to_voicemail is True
    assert engine.list_exceptions() == []

    engine.remove_contact(a)
    with pytest.raises(NotFoundError):
        engine.get_aggregate(aggregate_id)
    with pytest.raises(NotFoundError):
        engine.remove_contact(a)
