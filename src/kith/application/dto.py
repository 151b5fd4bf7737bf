"""Data returned by the application layer."""

from dataclasses import dataclass

from kith.domain import Aggregate, PresenceStatus


@dataclass(frozen=True)
class AggregateSnapshot:
    aggregate_id: str
    member_ids: tuple[str, ...]
    send_to_voicemail: bool
    custom_ringtone: str | None
    display_name: str | None = None
    presence: PresenceStatus | None = None

    @classmethod
    def from_aggregate(
        cls, aggregate: Aggregate, presence: PresenceStatus | None = None
    ) -> "AggregateSnapshot":
        return cls(
            aggregate_id=aggregate.id,
            member_ids=aggregate.member_ids,
            send_to_voicemail=aggregate.send_to_voicemail,
            custom_ringtone=aggregate.custom_ringtone,
            display_name=aggregate.display_name,
            presence=presence,
        )


class _Unchanged:
    def __repr__(self) -> str:
        return "UNCHANGED"


# Default for optional updates: leave the stored value as it is. None clears it.
UNCHANGED = _Unchanged()
