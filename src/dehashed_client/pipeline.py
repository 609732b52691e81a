"""Batch search orchestration."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from tqdm import tqdm

from .api import DehashedClient
from .config import SearchConfig
from .errors import DehashedClientError, UnauthorizedError
from .io_csv import entry_to_row, write_rows
from .query import Query, parse_query
from .scheduler import Scheduler
from .transport import make_retry_session


@dataclass
class BatchOutcome:
    """Rows collected from successful searches and errors of the failed ones."""

    rows: list[dict[str, str]] = field(default_factory=list)
    failures: dict[str, DehashedClientError] = field(default_factory=dict)
    balance: int | None = None
    total_queries: int = 0

    def record_balance(self, balance: int) -> None:
        """Keep the lowest balance reported, i.e. the most recent one."""
        self.balance = balance if self.balance is None else min(self.balance, balance)


def parse_queries(
    texts: tuple[str, ...], *, match: str, outcome: BatchOutcome, logger: logging.Logger
) -> dict[str, Query]:
    """Parse command-line queries, recording the invalid ones as failures.

    Duplicate lines are searched once.
    """
    parsed: dict[str, Query] = {}
    seen: set[str] = set()
    for text in texts:
        if text in seen:
            logger.warning("Ignoring duplicate query %r", text)
            continue
        seen.add(text)
        try:
            parsed[text] = parse_query(text, default_match=match)
        except DehashedClientError as exc:
            logger.error("Skipping invalid query %r: %s", text, exc)
            outcome.failures[text] = exc
    outcome.total_queries = len(seen)
    return parsed


def run_queries(
    texts: tuple[str, ...],
    *,
    scheduler: Scheduler,
    match: str,
    workers: int,
    show_progress: bool,
    logger: logging.Logger,
) -> BatchOutcome:
    """Search every query through the scheduler from a pool of worker threads.

    Rejected credentials abort the batch: queries not yet sent fail instead
    of being dispatched.
    """
    outcome = BatchOutcome()
    queries = parse_queries(texts, match=match, outcome=outcome, logger=logger)
    if not queries:
        return outcome

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(scheduler.search, query): text for text, query in queries.items()
        }
        iterator = as_completed(futures)
        if show_progress:
            iterator = tqdm(iterator, total=len(futures), desc="searching")
        for future in iterator:
            text = futures[future]
            try:
                result = future.result()
            except UnauthorizedError as exc:
                logger.error("Search %r was rejected, aborting the batch: %s", text, exc)
                outcome.failures[text] = exc
                scheduler.shutdown(wait=False, cancel_pending=True)
                continue
            except DehashedClientError as exc:
                logger.warning("Search %r failed: %s", text, exc)
                outcome.failures[text] = exc
                continue
            logger.info("Search %r returned %d entries", text, len(result.entries))
            outcome.rows.extend(entry_to_row(text, entry) for entry in result.entries)
            outcome.record_balance(result.balance)
    return outcome


def run_pipeline(config: SearchConfig, *, logger: logging.Logger) -> BatchOutcome:
    """Build concrete dependencies, execute all searches, and write CSV output."""
    session = make_retry_session(config.user_agent)
    try:
        client = DehashedClient(
            session=session,
            email=config.email,
            api_key=config.api_key,
            timeout=config.request_timeout,
            page_size=config.page_size,
            page_interval=config.scheduler.min_request_interval,
            logger=logger,
        )
        with Scheduler(client, config=config.scheduler, logger=logger) as scheduler:
            outcome = run_queries(
                config.queries,
                scheduler=scheduler,
                match=config.match,
                workers=config.workers,
                show_progress=config.show_progress,
                logger=logger,
            )
    finally:
        session.close()

    write_rows(config.output, outcome.rows)
    return outcome
