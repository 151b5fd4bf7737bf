"""Neo4j implementation of RowStorage.
Graph, scoped by owner id:
(c:Contact {id, owner, aggregate_id, ...settings, name_* parts, im_handles, phone_numbers})
    -[:MEMBER_OF]->(a:Aggregate {id, owner, member_ids, ...derived values}).
(:Presence {owner, key, protocol, handle, status}) is unique per (owner, key);
(:AggregationException {owner, pair_key, type, contact_a, contact_b}) per (owner, pair_key).
Member order lives in Aggregate.member_ids; MEMBER_OF mirrors it for traversal.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime

from neo4j.exceptions import DriverError, Neo4jError

from kith.domain import (
    Aggregate,
    AggregationException,
    Contact,
    ImHandle,
    PresenceRow,
    StorageError,
    StructuredName,
)

_CONSTRAINTS = (
    """
    CREATE CONSTRAINT kith_contact_unique IF NOT EXISTS
    FOR (c:Contact) REQUIRE (c.owner, c.id) IS NODE UNIQUE
    """,
    """
    CREATE CONSTRAINT kith_aggregate_unique IF NOT EXISTS
    FOR (a:Aggregate) REQUIRE (a.owner, a.id) IS NODE UNIQUE
    """,
    """
    CREATE CONSTRAINT kith_presence_unique IF NOT EXISTS
    FOR (p:Presence) REQUIRE (p.owner, p.key) IS NODE UNIQUE
    """,
    """
    CREATE CONSTRAINT kith_exception_unique IF NOT EXISTS
    FOR (e:AggregationException) REQUIRE (e.owner, e.pair_key) IS NODE UNIQUE
    """,
)

_NAME_FIELDS = ("prefix", "given", "middle", "family", "suffix", "display_name")


def _datetime_to_iso(dt: datetime) -> str:
    return dt.isoformat()


def _iso_to_datetime(s: str) -> datetime:
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


@contextmanager
def _storage_errors():
    try:
        yield
    except (Neo4jError, DriverError) as exc:
        raise StorageError(f"Neo4j storage failed: {exc}") from exc


def ensure_constraints(driver) -> None:
    """Create the uniqueness constraints kith relies on, if missing."""
    with _storage_errors(), driver.session() as session:
        for query in _CONSTRAINTS:
            session.run(query)


class _Neo4jView(ABC):
    """Read queries. Subclasses decide whether they run in a session or a transaction."""

    def __init__(self, owner: str) -> None:
        self._owner = owner

    @abstractmethod
    def _run(self, query: str, **params) -> list:
        """Run query with $owner bound and return its records as a list."""

    def get_contact(self, contact_id: str) -> Contact | None:
        records = self._run(
            "MATCH (c:Contact {owner: $owner, id: $id}) RETURN c",
            id=contact_id,
        )
        return _node_to_contact(records[0]["c"]) if records else None

    def get_aggregate(self, aggregate_id: str) -> Aggregate | None:
        records = self._run(
            "MATCH (a:Aggregate {owner: $owner, id: $id}) RETURN a",
            id=aggregate_id,
        )
        return _node_to_aggregate(records[0]["a"]) if records else None

    def list_aggregates(self) -> list[Aggregate]:
        records = self._run(
            """
            MATCH (a:Aggregate {owner: $owner})
            RETURN a
            ORDER BY a.created_at
            """
        )
        return [_node_to_aggregate(rec["a"]) for rec in records]

    def find_contacts_by_im_handle(self, key: str) -> list[Contact]:
        records = self._run(
            """
            MATCH (c:Contact {owner: $owner})
            WHERE $key IN c.im_handles
            RETURN c
            ORDER BY c.created_at
            """,
            key=key,
        )
        return [_node_to_contact(rec["c"]) for rec in records]

    def find_contacts_by_phone(self, phone_number: str) -> list[Contact]:
        records = self._run(
            """
            MATCH (c:Contact {owner: $owner})
            WHERE $phone IN c.phone_numbers
            RETURN c
            ORDER BY c.created_at
            """,
            phone=phone_number,
        )
        return [_node_to_contact(rec["c"]) for rec in records]

    def get_presence(self, key: str) -> PresenceRow | None:
        records = self._run(
            "MATCH (p:Presence {owner: $owner, key: $key}) RETURN p",
            key=key,
        )
        if not records:
            return None
        p = records[0]["p"]
        return PresenceRow(
            protocol=p["protocol"],
            handle=p["handle"],
            status=p["status"],
            updated_at=_iso_to_datetime(p["updated_at"]),
        )

    def list_exceptions(self) -> list[AggregationException]:
        records = self._run(
            """
            MATCH (e:AggregationException {owner: $owner})
            RETURN e
            ORDER BY e.created_at
            """
        )
        return [
            AggregationException(
                type=rec["e"]["type"],
                contact_a=rec["e"]["contact_a"],
                contact_b=rec["e"]["contact_b"],
                created_at=_iso_to_datetime(rec["e"]["created_at"]),
            )
            for rec in records
        ]


class _Neo4jTransaction(_Neo4jView):
    """Runs every query in one explicit driver transaction."""

    def __init__(self, tx, owner: str) -> None:
        super().__init__(owner)
        self._tx = tx

    def _run(self, query: str, **params) -> list:
        with _storage_errors():
            return list(self._tx.run(query, owner=self._owner, **params))

    def save_contact(self, contact: Contact) -> None:
        self._run(
            """
            MERGE (c:Contact {owner: $owner, id: $id})
            SET c += $props
            WITH c
            OPTIONAL MATCH (c)-[m:MEMBER_OF]->(:Aggregate)
            DELETE m
            WITH DISTINCT c
            MATCH (a:Aggregate {owner: $owner, id: $aggregate_id})
            MERGE (c)-[:MEMBER_OF]->(a)
            """,
            id=contact.id,
            aggregate_id=contact.aggregate_id,
            props=_contact_props(contact),
        )

    def delete_contact(self, contact_id: str) -> None:
        self._run(
            """
            OPTIONAL MATCH (e:AggregationException {owner: $owner})
            WHERE e.contact_a = $id OR e.contact_b = $id
            DETACH DELETE e
            WITH count(*) AS removed
            MATCH (c:Contact {owner: $owner, id: $id})
            DETACH DELETE c
            """,
            id=contact_id,
        )

    def save_aggregate(self, aggregate: Aggregate) -> None:
        self._run(
            """
            MERGE (a:Aggregate {owner: $owner, id: $id})
            SET a.member_ids = $member_ids,
                a.send_to_voicemail = $send_to_voicemail,
                a.custom_ringtone = $custom_ringtone,
                a.display_name = $display_name,
                a.created_at = $created_at
            """,
            id=aggregate.id,
            member_ids=list(aggregate.member_ids),
            send_to_voicemail=aggregate.send_to_voicemail,
            custom_ringtone=aggregate.custom_ringtone,
            display_name=aggregate.display_name,
            created_at=_datetime_to_iso(aggregate.created_at),
        )

    def delete_aggregate(self, aggregate_id: str) -> None:
        self._run(
            "MATCH (a:Aggregate {owner: $owner, id: $id}) DETACH DELETE a",
            id=aggregate_id,
        )

    def save_presence(self, row: PresenceRow) -> None:
        self._run(
            """
            MERGE (p:Presence {owner: $owner, key: $key})
            SET p.protocol = $protocol,
                p.handle = $handle,
                p.status = $status,
                p.updated_at = $updated_at
            """,
            key=row.key,
            protocol=int(row.protocol),
            handle=row.handle,
            status=int(row.status),
            updated_at=_datetime_to_iso(row.updated_at),
        )

    def save_exception(self, exception: AggregationException) -> None:
        self._run(
            """
            MERGE (e:AggregationException {owner: $owner, pair_key: $pair_key})
            SET e.type = $type,
                e.contact_a = $contact_a,
                e.contact_b = $contact_b,
                e.created_at = $created_at
            """,
            pair_key=exception.pair_key,
            type=exception.type.value,
            contact_a=exception.contact_a,
            contact_b=exception.contact_b,
            created_at=_datetime_to_iso(exception.created_at),
        )


class Neo4jRowStorage(_Neo4jView):
    """Stores contact rows in Neo4j, scoped by owner.
    Writes from this process are serialized; each atomic() block is one Neo4j transaction.
    """

    def __init__(self, driver: object, owner: str = "default") -> None:
        super().__init__(owner)
        self._driver = driver
        self._lock = threading.Lock()

    def _run(self, query: str, **params) -> list:
        with _storage_errors(), self._driver.session() as session:
            return list(session.run(query, owner=self._owner, **params))

    @contextmanager
    def snapshot(self):
        with _storage_errors(), self._driver.session() as session:
            tx = session.begin_transaction()
            try:
                yield _Neo4jTransaction(tx, self._owner)
            finally:
                tx.close()

    @contextmanager
    def atomic(self):
        with self._lock, self._driver.session() as session:
            with _storage_errors():
                tx = session.begin_transaction()
            try:
                yield _Neo4jTransaction(tx, self._owner)
            except BaseException:
                tx.close()
                raise
            with _storage_errors():
                tx.commit()


def _contact_props(contact: Contact) -> dict:
    name = contact.name
    props = {
        "aggregate_id": contact.aggregate_id,
        "send_to_voicemail": contact.send_to_voicemail,
        "custom_ringtone": contact.custom_ringtone,
        "im_handles": [im.key for im in contact.im_handles],
        "phone_numbers": list(contact.phone_numbers),
        "created_at": _datetime_to_iso(contact.created_at),
        "has_name": name is not None,
    }
    for field_name in _NAME_FIELDS:
        props[f"name_{field_name}"] = getattr(name, field_name) if name else None
    return props


def _node_to_contact(c) -> Contact:
    name = None
    if c.get("has_name"):
        name = StructuredName(
            **{field_name: c.get(f"name_{field_name}") for field_name in _NAME_FIELDS}
        )
    return Contact(
        id=c["id"],
        aggregate_id=c["aggregate_id"],
        name=name,
        send_to_voicemail=bool(c.get("send_to_voicemail", False)),
        custom_ringtone=c.get("custom_ringtone"),
        im_handles=tuple(ImHandle.from_key(k) for k in c.get("im_handles") or []),
        phone_numbers=tuple(c.get("phone_numbers") or []),
        created_at=_iso_to_datetime(c["created_at"]),
    )


def _node_to_aggregate(a) -> Aggregate:
    return Aggregate(
        id=a["id"],
        member_ids=tuple(a["member_ids"]),
        send_to_voicemail=bool(a.get("send_to_voicemail", False)),
        custom_ringtone=a.get("custom_ringtone"),
        display_name=a.get("display_name"),
        created_at=_iso_to_datetime(a["created_at"]),
    )
