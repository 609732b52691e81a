"""Dehashed API client."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from requests import Response, Session
from requests.exceptions import RequestException

from .config import DEFAULT_PAGE_SIZE, DEFAULT_REQUEST_TIMEOUT, SchedulerConfig
from .errors import (
    InvalidInputError,
    MalformedResponseError,
    NetworkError,
    RateLimitExceededError,
    UnauthorizedError,
    UnexpectedStatusError,
)
from .models import SearchEntry, SearchResult
from .query import Query, render_query
from .responses import SearchPage, parse_page
from .scheduler import Scheduler

SEARCH_URL = "https://api.dehashed.com/search"
DEFAULT_PAGE_INTERVAL = 0.2


class DehashedClient:
    """Dehashed search API wrapper.

    Note that Dehashed bans accounts doing more than 5 requests per second.
    Callers sharing one account should go through :meth:`start_scheduler`
    instead of calling :meth:`search` concurrently.
    """

    def __init__(
        self,
        *,
        session: Session,
        email: str,
        api_key: str,
        logger: logging.Logger,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        page_size: int = DEFAULT_PAGE_SIZE,
        page_interval: float = DEFAULT_PAGE_INTERVAL,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        self._session = session
        self._email = email
        self._api_key = api_key.lower()
        self._logger = logger
        self._timeout = timeout
        self._page_size = page_size
        self._page_interval = page_interval
        self._sleep_fn = sleep_fn

    def _raw_request(self, query: str, page: int) -> SearchPage:
        params: dict[str, str | int] = {
            "query": query,
            "size": self._page_size,
            "page": page,
        }
        try:
            response = self._session.get(
                SEARCH_URL,
                params=params,
                auth=(self._email, self._api_key),
                timeout=self._timeout,
                allow_redirects=False,
            )
        except RequestException as exc:
            raise NetworkError(f"Request to Dehashed failed: {exc}") from exc
        return parse_page(self._decode(response))

    @staticmethod
    def _decode(response: Response) -> Any:
        status = response.status_code
        if status == 200:
            try:
                return response.json()
            except ValueError as exc:
                raise MalformedResponseError(f"Response is not valid JSON: {exc}") from exc
        if status == 302:
            raise InvalidInputError("The provided query is missing or invalid.")
        if status in (400, 429):
            raise RateLimitExceededError("The account got rate limited.")
        if status in (401, 403):
            raise UnauthorizedError("Invalid API credentials.")
        raise UnexpectedStatusError(status)

    def search(self, query: Query) -> SearchResult:
        """Run a query, following pagination until every entry is fetched."""
        rendered = render_query(query)
        self._logger.debug("Query: %s", rendered)

        entries: list[SearchEntry] = []
        balance = 0
        total = 0
        page = 1
        while True:
            result_page = self._raw_request(rendered, page)
            entries.extend(result_page.entries)
            balance = result_page.balance
            total = result_page.total
            if total <= page * self._page_size or not result_page.entries:
                break
            page += 1
            self._sleep_fn(self._page_interval)

        self._logger.debug("Query %s returned %d of %d entries", rendered, len(entries), total)
        return SearchResult(entries=tuple(entries), balance=balance, total=total)

    def start_scheduler(self, config: SchedulerConfig | None = None) -> Scheduler:
        """Start a scheduler serializing searches through this client.

        Pages of one search are spaced at least as far apart as the
        scheduler spaces searches.
        """
        config = config or SchedulerConfig()
        self._page_interval = max(self._page_interval, config.min_request_interval)
        return Scheduler(self, config=config, logger=self._logger).start()
