"""Rewrite an aggregate's derived values from its current members."""

from dataclasses import replace

from kith.application.ports import RowWriter
from kith.domain import Aggregate, Contact, NotFoundError, resolve


def load_members(txn: RowWriter, aggregate: Aggregate) -> list[Contact]:
    members = []
    for contact_id in aggregate.member_ids:
        contact = txn.get_contact(contact_id)
        if contact is None:
            raise NotFoundError("contact", contact_id)
        members.append(contact)
    return members


def recompute_aggregate(
    txn: RowWriter, aggregate_id: str, member_ids: tuple[str, ...] | None = None
) -> Aggregate:
    """Store the aggregate with values resolved from its members.

    When member_ids is given it replaces the stored membership first.
    """
    aggregate = txn.get_aggregate(aggregate_id)
    if aggregate is None:
        raise NotFoundError("aggregate", aggregate_id)
    if member_ids is not None:
        aggregate = replace(aggregate, member_ids=member_ids)
    resolved = resolve(load_members(txn, aggregate))
    aggregate = replace(
        aggregate,
        send_to_voicemail=resolved.send_to_voicemail,
        custom_ringtone=resolved.custom_ringtone,
        display_name=resolved.display_name,
    )
    txn.save_aggregate(aggregate)
    return aggregate


def notify_all(notifier, aggregate_ids) -> None:
    """Send one notification per distinct aggregate id, in first-seen order."""
    for aggregate_id in dict.fromkeys(aggregate_ids):
        notifier.notify(aggregate_id)
