"""Query payloads and their rendering to the Dehashed query syntax."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Union

from .errors import InvalidInputError

UNESCAPED_SLASH = re.compile(r"(?<!\\)/")
RESERVED_CHARS = frozenset('+-=&|><!(){}[]^"~*?:\\')
MATCH_MODES = ("simple", "exact", "regex")


class SearchField(str, Enum):
    """Fields the API can be searched by."""

    EMAIL = "email"
    DOMAIN = "domain"
    USERNAME = "username"
    PASSWORD = "password"
    HASHED_PASSWORD = "hashed_password"
    NAME = "name"
    ADDRESS = "address"
    PHONE = "phone"
    VIN = "vin"
    IP_ADDRESS = "ip_address"


def escape(term: str) -> str:
    """Backslash-escape characters reserved by the query language."""
    return "".join(f"\\{char}" if char in RESERVED_CHARS else char for char in term)


def _require_text(value: str, what: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{what} must be a non-empty string.")


@dataclass(frozen=True)
class Simple:
    """Unquoted term, matched the way the API tokenizes it."""

    value: str

    def __post_init__(self) -> None:
        _require_text(self.value, "Search value")


@dataclass(frozen=True)
class Exact:
    """Exact phrase match."""

    value: str

    def __post_init__(self) -> None:
        _require_text(self.value, "Search value")


@dataclass(frozen=True)
class Regex:
    """Regular expression match."""

    pattern: str

    def __post_init__(self) -> None:
        _require_text(self.pattern, "Regex pattern")


@dataclass(frozen=True)
class AnyOf:
    """Matches when any of the terms matches."""

    terms: tuple[SearchType, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "terms", tuple(self.terms))
        if not self.terms:
            raise InvalidInputError("AnyOf needs at least one term.")


@dataclass(frozen=True)
class AllOf:
    """Matches when all of the terms match."""

    terms: tuple[SearchType, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "terms", tuple(self.terms))
        if not self.terms:
            raise InvalidInputError("AllOf needs at least one term.")


SearchType = Union[Simple, Exact, Regex, AnyOf, AllOf]


@dataclass(frozen=True)
class FieldQuery:
    """Search one field with a match mode."""

    field: SearchField
    search: SearchType

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "field", SearchField(self.field))
        except ValueError as exc:
            raise InvalidInputError(f"Unknown search field: {self.field!r}") from exc
        if not isinstance(self.search, (Simple, Exact, Regex, AnyOf, AllOf)):
            raise InvalidInputError(f"Unsupported search type: {self.search!r}")


@dataclass(frozen=True)
class FreeTextQuery:
    """Search across all fields with a raw query string."""

    text: str

    def __post_init__(self) -> None:
        _require_text(self.text, "Free-text query")


Query = Union[FieldQuery, FreeTextQuery]


def render_search(search: SearchType) -> str:
    """Render one search term."""
    if isinstance(search, Simple):
        return escape(search.value)
    if isinstance(search, Exact):
        return f'"{escape(search.value)}"'
    if isinstance(search, Regex):
        return "/" + UNESCAPED_SLASH.sub(r"\\/", search.pattern) + "/"
    if isinstance(search, AnyOf):
        return " OR ".join(render_search(term) for term in search.terms)
    if isinstance(search, AllOf):
        return " ".join(render_search(term) for term in search.terms)
    raise InvalidInputError(f"Unsupported search type: {search!r}")


def render_query(query: Query) -> str:
    """Render a query to the string sent in the ``query`` parameter."""
    if isinstance(query, FreeTextQuery):
        return query.text
    return f"{query.field.value}:{render_search(query.search)}"


def parse_query(text: str, default_match: str = "simple") -> Query:
    """Parse the ``field:value`` command-line form into a query.

    ``field:"value"`` selects an exact match and ``field:/pattern/`` a regex;
    anything else uses ``default_match``. Text without a known field prefix
    becomes a free-text query.
    """
    if default_match not in MATCH_MODES:
        raise InvalidInputError(f"Unknown match mode: {default_match}")
    raw = text.strip()
    prefix, sep, value = raw.partition(":")
    try:
        field = SearchField(prefix.strip().lower())
    except ValueError:
        return FreeTextQuery(raw)
    if not sep:
        return FreeTextQuery(raw)

    value = value.strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return FieldQuery(field, Exact(value[1:-1]))
    if len(value) >= 2 and value.startswith("/") and value.endswith("/"):
        return FieldQuery(field, Regex(value[1:-1]))
    if default_match == "exact":
        return FieldQuery(field, Exact(value))
    if default_match == "regex":
        return FieldQuery(field, Regex(value))
    return FieldQuery(field, Simple(value))
