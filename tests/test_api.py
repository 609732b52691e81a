import logging
from typing import Any

import pytest
import requests

from dehashed_client.api import SEARCH_URL, DehashedClient
from dehashed_client.config import SchedulerConfig
from dehashed_client.errors import (
    InvalidInputError,
    MalformedResponseError,
    NetworkError,
    RateLimitExceededError,
    UnauthorizedError,
    UnexpectedStatusError,
)
from dehashed_client.query import Exact, FieldQuery, SearchField, Simple


class FakeResponse:
    def __init__(
        self, *, status_code: int = 200, payload: Any = None, bad_json: bool = False
    ) -> None:
        self.status_code = status_code
        self._payload = payload
        self._bad_json = bad_json

    def json(self) -> Any:
        if self._bad_json:
            raise ValueError("Expecting value")
        return self._payload


class FakeSession:
    def __init__(
        self, responses: list[FakeResponse] | None = None, raise_error: bool = False
    ) -> None:
        self._responses = responses or []
        self._raise_error = raise_error
        self.calls: list[dict[str, Any]] = []

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        if self._raise_error:
            raise requests.ConnectionError("network down")
        if self._responses:
            return self._responses.pop(0)
        return FakeResponse(status_code=500)


def page(entries: list[dict[str, Any]], *, total: int, balance: int = 42) -> FakeResponse:
    return FakeResponse(
        payload={
            "balance": balance,
            "entries": entries,
            "success": True,
            "took": "12ms",
            "total": total,
        }
    )


def raw_entry(entry_id: int, email: str = "") -> dict[str, Any]:
    return {
        "id": str(entry_id),
        "email": email,
        "username": "",
        "password": "",
        "hashed_password": "",
        "ip_address": "",
        "name": "",
        "vin": "",
        "address": "",
        "phone": "",
        "database_name": "Example Leak",
    }


def make_client(session: FakeSession, **kwargs: Any) -> DehashedClient:
    return DehashedClient(
        session=session,  # type: ignore[arg-type]
        email="me@example.com",
        api_key="ABCDEF",
        logger=logging.getLogger("test"),
        **kwargs,
    )


QUERY = FieldQuery(SearchField.DOMAIN, Simple("example.com"))


def test_search_sends_authenticated_request() -> None:
    session = FakeSession([page([raw_entry(1, "a@example.com")], total=1)])
    result = make_client(session, timeout=7.0).search(QUERY)

    assert [entry.email for entry in result.entries] == ["a@example.com"]
    assert result.balance == 42
    call = session.calls[0]
    assert call["url"] == SEARCH_URL
    assert call["auth"] == ("me@example.com", "abcdef")
    assert call["params"] == {"query": "domain:example.com", "size": 10_000, "page": 1}
    assert call["timeout"] == 7.0
    assert call["allow_redirects"] is False


def test_search_follows_pagination() -> None:
    sleeps: list[float] = []
    session = FakeSession(
        [
            page([raw_entry(1), raw_entry(2)], total=3, balance=50),
            page([raw_entry(3)], total=3, balance=49),
        ]
    )
    client = make_client(session, page_size=2, page_interval=0.5, sleep_fn=sleeps.append)
    result = client.search(FieldQuery(SearchField.EMAIL, Exact("a@example.com")))

    assert [entry.id for entry in result.entries] == [1, 2, 3]
    assert result.balance == 49
    assert result.total == 3
    assert [call["params"]["page"] for call in session.calls] == [1, 2]
    assert sleeps == [0.5]


@pytest.mark.parametrize(
    ("status", "error"),
    [
        (302, InvalidInputError),
        (400, RateLimitExceededError),
        (429, RateLimitExceededError),
        (401, UnauthorizedError),
        (403, UnauthorizedError),
        (418, UnexpectedStatusError),
    ],
)
def test_status_codes_map_to_errors(status: int, error: type[Exception]) -> None:
    session = FakeSession([FakeResponse(status_code=status)])
    with pytest.raises(error):
        make_client(session).search(QUERY)


def test_unexpected_status_keeps_code() -> None:
    session = FakeSession([FakeResponse(status_code=503)])
    with pytest.raises(UnexpectedStatusError) as excinfo:
        make_client(session).search(QUERY)
    assert excinfo.value.status_code == 503


def test_transport_failure_is_network_error() -> None:
    with pytest.raises(NetworkError):
        make_client(FakeSession(raise_error=True)).search(QUERY)


def test_undecodable_body_is_malformed() -> None:
    session = FakeSession([FakeResponse(bad_json=True)])
    with pytest.raises(MalformedResponseError):
        make_client(session).search(QUERY)


def test_start_scheduler_runs_searches_through_client() -> None:
    session = FakeSession([page([raw_entry(9)], total=1)])
    scheduler = make_client(session).start_scheduler(SchedulerConfig(min_request_interval=0))
    try:
        result = scheduler.search(QUERY, timeout=5)
    finally:
        scheduler.shutdown()
    assert [entry.id for entry in result.entries] == [9]


def test_scheduled_pages_are_spaced_by_the_scheduler_interval() -> None:
    sleeps: list[float] = []
    session = FakeSession(
        [
            page([raw_entry(1)], total=3),
            page([raw_entry(2)], total=3),
            page([raw_entry(3)], total=3),
        ]
    )
    client = make_client(session, page_size=1, sleep_fn=sleeps.append)
    scheduler = client.start_scheduler(SchedulerConfig(min_request_interval=1.0))
    try:
        result = scheduler.search(QUERY, timeout=5)
    finally:
        scheduler.shutdown()
    assert [entry.id for entry in result.entries] == [1, 2, 3]
    assert sleeps == [1.0, 1.0]
