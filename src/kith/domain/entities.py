"""Domain entities: Contact, StructuredName, Aggregate, AggregationException, PresenceRow."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum


def new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImProtocol(IntEnum):
    AIM = 0
    MSN = 1
    YAHOO = 2
    SKYPE = 3
    QQ = 4
    GOOGLE_TALK = 5
    ICQ = 6
    JABBER = 7


class PresenceStatus(IntEnum):
    """Ordered from least to most available."""

    OFFLINE = 0
    INVISIBLE = 1
    AWAY = 2
    IDLE = 3
    DO_NOT_DISTURB = 4
    AVAILABLE = 5


class ExceptionType(str, Enum):
    KEEP_IN = "keep_in"
    KEEP_OUT = "keep_out"


@dataclass(frozen=True)
class StructuredName:
    """
    Parts of a person's name as stored for one contact.
    display_name is the string the caller supplied, or one composed from the parts.
    """

    prefix: str | None = None
    given: str | None = None
    middle: str | None = None
    family: str | None = None
    suffix: str | None = None
    display_name: str | None = None

    def __post_init__(self):
        for name in ("prefix", "given", "middle", "family", "suffix", "display_name"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, value.strip() or None)
        if self.display_name is None:
            object.__setattr__(self, "display_name", self.compose())

    def parts(self) -> tuple[str | None, ...]:
        return (self.prefix, self.given, self.middle, self.family, self.suffix)

    def compose(self) -> str | None:
        """Join the parts as "Prefix Given Middle Family, Suffix"."""
        head = " ".join(
            p for p in (self.prefix, self.given, self.middle, self.family) if p
        )
        if self.suffix:
            head = f"{head}, {self.suffix}" if head else self.suffix
        return head or None


@dataclass(frozen=True)
class ImHandle:
    """An instant-messaging identity: (protocol, handle)."""

    protocol: ImProtocol
    handle: str

    def __post_init__(self):
        object.__setattr__(self, "protocol", ImProtocol(self.protocol))
        if not self.handle or not self.handle.strip():
            raise ValueError("IM handle must be non-empty.")

    @property
    def key(self) -> str:
        return f"{int(self.protocol)}:{self.handle}"

    @classmethod
    def from_key(cls, key: str) -> "ImHandle":
        protocol, handle = key.split(":", 1)
        return cls(protocol=ImProtocol(int(protocol)), handle=handle)


@dataclass(frozen=True)
class Contact:
    """
    A single contact record. Belongs to exactly one aggregate.
    send_to_voicemail and custom_ringtone are the contact's own settings; the
    aggregate's values are derived from those of all its members.
    """

    id: str = field(default_factory=new_id)
    aggregate_id: str = field(default="")
    name: StructuredName | None = None
    send_to_voicemail: bool = False
    custom_ringtone: str | None = None
    im_handles: tuple[ImHandle, ...] = ()
    phone_numbers: tuple[str, ...] = ()
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if not self.aggregate_id:
            raise ValueError("Contact must belong to an aggregate.")


@dataclass(frozen=True)
class Aggregate:
    """
    A group of contacts presented as one logical contact.
    member_ids keeps join order; the first member is the oldest in the group.
    """

    id: str = field(default_factory=new_id)
    member_ids: tuple[str, ...] = ()
    send_to_voicemail: bool = False
    custom_ringtone: str | None = None
    display_name: str | None = None
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if not self.member_ids:
            raise ValueError("Aggregate must have at least one member.")
        if len(set(self.member_ids)) != len(self.member_ids):
            raise ValueError("Aggregate members must be unique.")


@dataclass(frozen=True)
class AggregationException:
    """A manual directive to keep two contacts together or apart."""

    type: ExceptionType
    contact_a: str
    contact_b: str
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        object.__setattr__(self, "type", ExceptionType(self.type))
        if not self.contact_a or not self.contact_b:
            raise ValueError("AggregationException needs two contact ids.")
        if self.contact_a == self.contact_b:
            raise ValueError("AggregationException needs two distinct contacts.")

    @property
    def pair_key(self) -> str:
        return pair_key(self.contact_a, self.contact_b)


def pair_key(contact_a: str, contact_b: str) -> str:
    """Order-independent key for a pair of contacts."""
    low, high = sorted((contact_a, contact_b))
    return f"{low}|{high}"


@dataclass(frozen=True)
class PresenceRow:
    """Latest known status for one (protocol, handle)."""

    protocol: ImProtocol
    handle: str
    status: PresenceStatus
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        object.__setattr__(self, "protocol", ImProtocol(self.protocol))
        object.__setattr__(self, "status", PresenceStatus(self.status))

    @property
    def key(self) -> str:
        return f"{int(self.protocol)}:{self.handle}"
