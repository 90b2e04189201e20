from __future__ import annotations

import re

from .config import REGION_PREFIX_LENGTH
from .errors import InputError
from .models import SearchIntent, SearchType

_STRICT_POSTAL_RE = re.compile(r"^[0-9]{5}$")


def normalize_text(value: str | None) -> str:
    """Lower-case and trim; shared by every case-insensitive substring predicate."""
    if value is None:
        return ""
    return str(value).strip().lower()


def clean_input(value: str | None) -> str | None:
    """Trim caller input; blank strings count as absent."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def region_prefix_of(postal_code: str | None) -> str | None:
    if postal_code is None or len(postal_code) < REGION_PREFIX_LENGTH:
        return None
    return postal_code[:REGION_PREFIX_LENGTH]


def build_intent(
    query: str | None = None,
    city: str | None = None,
    plz: str | None = None,
    search_type: SearchType | str = SearchType.all,
    strict: bool = False,
) -> SearchIntent:
    """
    Turn raw, untrusted request parameters into a ``SearchIntent``.

    Malformed postal codes are accepted as-is and only degrade to a prefix
    match on whatever was given, unless ``strict`` is set, in which case
    anything other than exactly five digits raises ``InputError``.
    """
    postal_code = clean_input(plz)
    if strict and postal_code is not None and not _STRICT_POSTAL_RE.match(postal_code):
        raise InputError("plz", postal_code, "postal code must be exactly 5 digits")

    return SearchIntent(
        query=clean_input(query),
        city=clean_input(city),
        postal_code=postal_code,
        region_prefix=region_prefix_of(postal_code),
        search_type=SearchType(search_type),
    )
