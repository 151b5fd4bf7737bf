"""Aggregate-level values derived from the member contacts."""

from collections.abc import Sequence
from dataclasses import dataclass

from kith.domain.entities import Contact


@dataclass(frozen=True)
class ResolvedPreferences:
    send_to_voicemail: bool
    custom_ringtone: str | None
    display_name: str | None


def resolve_send_to_voicemail(members: Sequence[Contact]) -> bool:
    """True only when every member is sent to voicemail; one dissenting member wins."""
    return all(c.send_to_voicemail for c in members)


def resolve_ringtone(members: Sequence[Contact]) -> str | None:
    """One of the members' ringtones, or None when no member has one.

    When members carry different ringtones any of them may be returned;
    callers must not rely on which.
    """
    for contact in members:
        if contact.custom_ringtone is not None:
            return contact.custom_ringtone
    return None


def resolve_display_name(members: Sequence[Contact]) -> str | None:
    for contact in members:
        if contact.name is not None and contact.name.display_name:
            return contact.name.display_name
    return None


def resolve(members: Sequence[Contact]) -> ResolvedPreferences:
    """Compute the aggregate's values from its members, in member order."""
    if not members:
        raise ValueError("Cannot resolve preferences of an empty aggregate.")
    return ResolvedPreferences(
        send_to_voicemail=resolve_send_to_voicemail(members),
        custom_ringtone=resolve_ringtone(members),
        display_name=resolve_display_name(members),
    )
