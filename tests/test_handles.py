"""Tests for phone number (E.164) and IM handle normalization."""

from kith.domain import ImProtocol
from kith.infrastructure.handles import normalize_im_handle, normalize_phone


def test_normalize_with_country_code_returns_e164():
    assert normalize_phone("+39 312 345 6789", default_region=None) == "+393123456789"
    assert normalize_phone("+1 202 555 1234", default_region=None) == "+12025551234"


def test_normalize_without_country_code_uses_default_region():
    assert normalize_phone("202 555 1234", default_region="US") == "+12025551234"


def test_normalize_invalid_returns_none():
    assert normalize_phone("", default_region=None) is None
    assert normalize_phone("abc", default_region=None) is None
    assert normalize_phone("123", default_region="US") is None  # too short


def test_email_style_handles_lowercased():
    assert normalize_im_handle(ImProtocol.GOOGLE_TALK, " Jane@Gmail.com ") == "jane@gmail.com"
    assert normalize_im_handle(ImProtocol.JABBER, "Jane@Jabber.org") == "jane@jabber.org"


def test_aim_ignores_spaces_and_case():
    assert normalize_im_handle(ImProtocol.AIM, "Jane Doe 99") == "janedoe99"


def test_case_sensitive_protocols_only_trimmed():
    assert normalize_im_handle(ImProtocol.SKYPE, "  Jane.Doe ") == "Jane.Doe"
    assert normalize_im_handle(ImProtocol.ICQ, "123456") == "123456"


def test_empty_handle_returns_none():
    assert normalize_im_handle(ImProtocol.SKYPE, "   ") is None
    assert normalize_im_handle(ImProtocol.SKYPE, "") is None


def test_default_region_case_ignored():
    assert normalize_phone("(202) 555-1234", default_region="us") == "+12025551234"
    assert normalize_phone("202 555 1234", default_region=" ") is None
