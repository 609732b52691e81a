"""Protocols and lightweight model types."""

from __future__ import annotations

from dataclasses import dataclass
from ipaddress import IPv4Address, IPv6Address
from typing import Protocol

from .query import Query


@dataclass(frozen=True)
class SearchEntry:
    """A single leaked record returned by a search."""

    id: int
    email: str | None = None
    username: str | None = None
    password: str | None = None
    hashed_password: str | None = None
    ip_address: IPv4Address | IPv6Address | None = None
    name: str | None = None
    vin: str | None = None
    address: str | None = None
    phone: str | None = None
    database_name: str | None = None


@dataclass(frozen=True)
class SearchResult:
    """The result of a search query."""

    entries: tuple[SearchEntry, ...]
    balance: int
    total: int = 0


class SearchExecutor(Protocol):
    """Contract for whatever performs the actual API call."""

    def search(self, query: Query) -> SearchResult:
        """Return the search result or raise an ApiError subclass."""
