"""Errors surfaced by kith operations."""


class KithError(Exception):
    """Base class for kith errors."""


class MalformedNameError(KithError, ValueError):
    """A display name has no usable tokens once prefix and suffix are removed."""

    def __init__(self, display_name: str) -> None:
        super().__init__(f"Display name has no usable name tokens: {display_name!r}")
        self.display_name = display_name


class NotFoundError(KithError, LookupError):
    """A contact or aggregate id does not exist."""

    def __init__(self, kind: str, item_id: str) -> None:
        super().__init__(f"{kind} not found: {item_id}")
        self.kind = kind
        self.item_id = item_id


class StorageError(KithError):
    """Row storage failed. Raised by storage adapters and never reinterpreted."""
