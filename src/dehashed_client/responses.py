"""Parsing of raw API payloads into typed results."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Any

from .errors import MalformedResponseError
from .models import SearchEntry

OPTIONAL_TEXT_FIELDS = (
    "email",
    "username",
    "password",
    "hashed_password",
    "name",
    "vin",
    "address",
    "phone",
    "database_name",
)


@dataclass(frozen=True)
class SearchPage:
    """One page of a paginated search response."""

    entries: tuple[SearchEntry, ...]
    balance: int
    total: int


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    # some entries come back as single element lists
    if isinstance(value, list):
        value = ", ".join(str(item) for item in value if item)
    text = str(value)
    return text if text else None


def parse_entry(raw: Any) -> SearchEntry:
    """Convert one raw entry dict, turning empty strings into None."""
    if not isinstance(raw, dict):
        raise MalformedResponseError(f"Entry is not an object: {raw!r}")
    try:
        entry_id = int(raw["id"])
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedResponseError(f"Invalid entry id: {raw.get('id')!r}") from exc

    ip_text = _optional_text(raw.get("ip_address"))
    try:
        ip_address = ipaddress.ip_address(ip_text) if ip_text else None
    except ValueError as exc:
        raise MalformedResponseError(f"Invalid ip address: {ip_text!r}") from exc

    fields = {name: _optional_text(raw.get(name)) for name in OPTIONAL_TEXT_FIELDS}
    return SearchEntry(id=entry_id, ip_address=ip_address, **fields)


def parse_page(payload: Any) -> SearchPage:
    """Validate a decoded response body and parse its entries."""
    if not isinstance(payload, dict):
        raise MalformedResponseError("Response body is not a JSON object.")
    if payload.get("success") is not True:
        raise MalformedResponseError("Success field in response is not set to true.")
    try:
        balance = int(payload["balance"])
        total = int(payload["total"])
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedResponseError(f"Missing or invalid counters: {exc}") from exc

    raw_entries = payload.get("entries") or []
    if not isinstance(raw_entries, list):
        raise MalformedResponseError("Entries field is not a list.")
    return SearchPage(
        entries=tuple(parse_entry(item) for item in raw_entries),
        balance=balance,
        total=total,
    )
