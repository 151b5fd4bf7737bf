"""Structured names: split a free-form display name into its parts.

Rules, applied in order:
- a comma tail that is a known suffix ("Jr", "III", "PhD") becomes the suffix;
- a known suffix as the last word (no comma) is also taken as the suffix,
  except roman numerals ("II", "V"), which need the comma;
- a comma left after that means the name was written "Family, Given Middle";
- a known prefix as the first word becomes the prefix. The prefix may be glued
  to the next word by a period ("Mr.John");
- of the remaining words the first is the given name and the last the family
  name, with everything between as the middle name. A family-name particle
  ("von", "de la") starts the family name and takes every word after it.
"""

import re
from collections.abc import Mapping

from kith.domain.entities import StructuredName
from kith.domain.errors import MalformedNameError

NAME_PART_FIELDS = ("prefix", "given", "middle", "family", "suffix")

PREFIXES = frozenset(
    {"mr", "mrs", "ms", "miss", "mx", "dr", "prof", "rev", "fr", "sir", "hon", "capt", "sr", "sra", "srta"}
)
SUFFIXES = frozenset(
    {"jr", "sr", "ii", "iii", "iv", "v", "esq", "phd", "md", "dds", "cpa", "ret"}
)
# Too easily a name or an initial ("Anna V") to be read as a suffix without a comma.
COMMA_ONLY_SUFFIXES = frozenset({"ii", "iii", "iv", "v"})
FAMILY_PARTICLES = frozenset(
    {"von", "van", "der", "den", "de", "da", "di", "del", "della", "dos", "das", "du", "la", "le", "ter", "ten", "st", "bin", "ibn"}
)

_PREFIX_RE = re.compile(r"^([^\s.,]+)\.?\s*(.*)$", re.DOTALL)


def _normalize(token: str) -> str:
    return token.strip().rstrip(".").lower()


def _clean(token: str) -> str:
    return token.strip().rstrip(".").strip()


def _split_suffix(text: str) -> tuple[str, str | None]:
    if "," in text:
        head, tail = text.rsplit(",", 1)
        if _normalize(tail) in SUFFIXES:
            return head.strip(), _clean(tail)
        return text, None
    words = text.split()
    if len(words) > 1:
        last = _normalize(words[-1])
        if last in SUFFIXES and last not in COMMA_ONLY_SUFFIXES:
            return " ".join(words[:-1]), _clean(words[-1])
    return text, None


def _split_family_first(text: str) -> tuple[str, str | None]:
    """Split "Family, Given Middle" at the first comma. The second item is None without one."""
    if "," not in text:
        return text, None
    family, rest = text.split(",", 1)
    rest = rest.replace(",", " ").strip()
    if not rest:
        return family.strip(), None
    return family.strip(), rest


def _split_prefix(text: str) -> tuple[str, str | None]:
    match = _PREFIX_RE.match(text.strip())
    if match is None:
        return text, None
    candidate, rest = match.group(1), match.group(2)
    if candidate.lower() not in PREFIXES:
        return text, None
    # "Sr" is both a prefix (Spanish) and a suffix; as a lone word it is a name.
    if not rest.strip() and candidate.lower() in SUFFIXES:
        return text, None
    return rest.strip(), candidate


def _split_words(words: list[str]) -> tuple[str | None, str | None, str | None]:
    if len(words) == 1:
        return words[0], None, None
    for i in range(1, len(words) - 1):
        if words[i].lower() in FAMILY_PARTICLES:
            middle = " ".join(words[1:i]) or None
            return words[0], middle, " ".join(words[i:])
    middle = " ".join(words[1:-1]) or None
    return words[0], middle, words[-1]


def parse_display_name(display_name: str) -> StructuredName:
    """Split display_name into prefix, given, middle, family and suffix.

    Raises MalformedNameError when nothing is left to use as a name.
    """
    text = (display_name or "").strip()
    if not text:
        raise MalformedNameError(display_name or "")

    text, suffix = _split_suffix(text)
    family_text, given_text = _split_family_first(text)
    if given_text is not None:
        # The prefix leads whichever side comes first: "Mr. Smith, John" or "Smith, Mr. John".
        family_text, prefix = _split_prefix(family_text)
        if prefix is None:
            given_text, prefix = _split_prefix(given_text)
        family_words = family_text.split()
        words = given_text.split()
        if not family_words or not words:
            raise MalformedNameError(display_name)
        given = words[0]
        middle = " ".join(words[1:]) or None
        family = " ".join(family_words)
    else:
        text, prefix = _split_prefix(family_text)
        words = text.split()
        if not words:
            raise MalformedNameError(display_name)
        given, middle, family = _split_words(words)

    return StructuredName(
        prefix=prefix,
        given=given,
        middle=middle,
        family=family,
        suffix=suffix,
        display_name=display_name,
    )


def has_explicit_parts(fields: Mapping[str, str | None]) -> bool:
    return any(fields.get(name) is not None for name in NAME_PART_FIELDS)


def build_structured_name(fields: Mapping[str, str | None]) -> StructuredName:
    """Build a StructuredName from caller-supplied fields.

    When any name part is given, exactly those parts are kept and the display
    name is not parsed; missing parts stay None. Otherwise the display name is
    parsed. Raises MalformedNameError when neither yields a name.
    """
    unknown = set(fields) - set(NAME_PART_FIELDS) - {"display_name"}
    if unknown:
        raise ValueError(f"Unknown structured name fields: {sorted(unknown)}")
    display_name = fields.get("display_name")
    if has_explicit_parts(fields):
        return StructuredName(
            display_name=display_name,
            **{name: fields.get(name) for name in NAME_PART_FIELDS},
        )
    if display_name is None:
        raise MalformedNameError("")
    return parse_display_name(display_name)
