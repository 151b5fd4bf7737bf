"""Normalization of phone numbers (E.164) and IM handles for storage and lookup."""

import phonenumbers

from kith.domain import ImProtocol

# Protocols whose handles are e-mail style or otherwise case-insensitive.
_CASE_INSENSITIVE = frozenset(
    {
        ImProtocol.AIM,
        ImProtocol.MSN,
        ImProtocol.YAHOO,
        ImProtocol.GOOGLE_TALK,
        ImProtocol.JABBER,
    }
)


def normalize_phone(raw: str, default_region: str | None = None) -> str | None:
    """Stored form of a phone number: E.164, or None when it is not a valid number.

    A number written with a leading + carries its own country code; national
    numbers ("202 555 1234") are read in default_region ("US", any case).
    """
    text = str(raw or "").strip()
    if not text:
        return None
    region = default_region.strip().upper() if default_region else None
    try:
        number = phonenumbers.parse(text, region or None)
    except phonenumbers.NumberParseException:
        return None
    if not phonenumbers.is_valid_number(number):
        return None
    return phonenumbers.format_number(number, phonenumbers.PhoneNumberFormat.E164)


def normalize_im_handle(protocol: ImProtocol, raw: str) -> str | None:
    """Trim the handle; lower-case it for protocols that ignore case. None if empty.

    AIM screen names also ignore inner spaces ("Jane Doe" == "janedoe").
    """
    handle = (raw or "").strip()
    if not handle:
        return None
    protocol = ImProtocol(protocol)
    if protocol is ImProtocol.AIM:
        handle = handle.replace(" ", "")
    if protocol in _CASE_INSENSITIVE:
        handle = handle.lower()
    return handle
