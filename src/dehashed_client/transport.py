"""HTTP session construction."""

from __future__ import annotations

from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


def make_retry_session(user_agent: str) -> Session:
    """Create requests session with retry/backoff defaults.

    Only connection failures and 5xx answers are retried here. Throttling
    (400/429) must reach the scheduler, which owns the rate-limit budget.
    """
    session = Session()
    session.headers.update({"User-Agent": user_agent, "Accept": "application/json"})
    retry = Retry(
        total=3,
        backoff_factor=0.6,
        status_forcelist=[500, 502, 503, 504],
        allowed_methods=frozenset({"GET"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    return session
