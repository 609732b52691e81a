"""Rate-limited request scheduler.

A single worker thread owns the rate-limit bookkeeping and is the only caller
of the search executor. Any number of threads submit queries and wait on the
returned future.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import Future, InvalidStateError
from threading import Event, Lock, Thread, current_thread

from .config import SchedulerConfig
from .errors import (
    ApiError,
    RateLimitExceededError,
    RequestAbandonedError,
    SchedulerUnavailableError,
)
from .models import SearchExecutor, SearchResult
from .query import Query
from .request_queue import RequestQueue, ScheduledRequest

ClockFn = Callable[[], float]
SleepFn = Callable[[float], None]


class RateLimitState:
    """Dispatch timestamps, touched only by the scheduler thread."""

    def __init__(self, min_interval: float, clock: ClockFn) -> None:
        self._min_interval = min_interval
        self._clock = clock
        self.last_dispatch: float | None = None
        self.not_before: float | None = None

    def next_allowed(self) -> float | None:
        """Earliest clock value at which the next request may be sent."""
        candidates: list[float] = []
        if self.not_before is not None:
            candidates.append(self.not_before)
        if self.last_dispatch is not None:
            candidates.append(self.last_dispatch + self._min_interval)
        return max(candidates) if candidates else None

    def record_dispatch(self) -> None:
        self.last_dispatch = self._clock()

    def penalize(self, delay: float) -> None:
        """Hold back the next dispatch by at least ``delay`` seconds from now."""
        until = self._clock() + delay
        if self.not_before is None or until > self.not_before:
            self.not_before = until


class Scheduler:
    """Serializes searches so the account never exceeds the rate limit.

    Create one scheduler per account and share it between threads::

        with Scheduler(client, config=SchedulerConfig(), logger=logger) as scheduler:
            future = scheduler.submit(query)
            result = future.result(timeout=60)

    Throttled requests are retried transparently up to ``max_retries``
    times. Every other API error is delivered to the caller as is.
    """

    def __init__(
        self,
        executor: SearchExecutor,
        *,
        config: SchedulerConfig,
        logger: logging.Logger,
        clock: ClockFn = time.monotonic,
        sleep_fn: SleepFn = time.sleep,
    ) -> None:
        self._executor = executor
        self._config = config
        self._logger = logger
        self._clock = clock
        self._sleep_fn = sleep_fn
        self._queue = RequestQueue(config.queue_capacity)
        self._rate_limit = RateLimitState(config.min_request_interval, clock)
        self._thread: Thread | None = None
        self._start_lock = Lock()
        self._aborted = Event()

    def __enter__(self) -> Scheduler:
        return self.start()

    def __exit__(self, *_exc_info: object) -> None:
        self.shutdown(wait=True)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def pending(self) -> int:
        """Number of requests waiting for dispatch."""
        return len(self._queue)

    def start(self) -> Scheduler:
        """Start the worker thread. Calling it again is a no-op."""
        with self._start_lock:
            if self._queue.closed:
                raise SchedulerUnavailableError("A shut down scheduler cannot be restarted.")
            if self._thread is None:
                self._thread = Thread(target=self._run, name="dehashed-scheduler", daemon=True)
                self._thread.start()
        return self

    def schedule(self, request: ScheduledRequest) -> None:
        """Queue a prepared request; blocks while a bounded queue is full.

        Done-callbacks run on the scheduler thread. Submissions made from
        there skip the capacity bound, since blocking would stall the loop
        that frees the room.
        """
        thread = self._thread
        if thread is None:
            raise SchedulerUnavailableError("The scheduler has not been started.")
        self._queue.put(request, bounded=current_thread() is not thread)

    def submit(self, query: Query) -> Future[SearchResult]:
        """Queue a query and return the future its outcome is written to."""
        request = ScheduledRequest(query)
        self.schedule(request)
        return request.future

    def search(self, query: Query, timeout: float | None = None) -> SearchResult:
        """Submit a query and wait for its result."""
        return self.submit(query).result(timeout=timeout)

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        """Stop accepting requests.

        Queued requests are still dispatched unless ``cancel_pending`` is set,
        in which case they fail with RequestAbandonedError, including one
        that is waiting out the rate limit.
        """
        if cancel_pending:
            self._aborted.set()
        self._queue.close()
        with self._start_lock:
            thread = self._thread
        if cancel_pending or thread is None:
            self._abandon(self._queue.drain())
        if wait and thread is not None and thread is not current_thread():
            thread.join()

    def _run(self) -> None:
        self._logger.debug("Scheduler started")
        try:
            while True:
                request = self._queue.get()
                if request is None:
                    break
                try:
                    self._process(request)
                except Exception as exc:
                    self._logger.exception("Scheduler failed while handling a request")
                    abandoned = RequestAbandonedError(f"Scheduler failed: {exc}")
                    abandoned.__cause__ = exc
                    self._deliver(request, error=abandoned)
        finally:
            self._queue.close()
            self._abandon(self._queue.drain())
            self._logger.debug("Scheduler stopped")

    def _process(self, request: ScheduledRequest) -> None:
        if not self._claim(request.future):
            self._logger.debug("Skipping cancelled request")
            return

        self._wait_for_slot()
        if self._aborted.is_set():
            self._abandon([request])
            return
        request.attempts += 1
        try:
            result = self._executor.search(request.query)
        except Exception as exc:
            self._rate_limit.record_dispatch()
            self._handle_failure(request, exc)
        else:
            self._rate_limit.record_dispatch()
            self._deliver(request, result=result)

    @staticmethod
    def _claim(future: Future[SearchResult]) -> bool:
        if future.running():
            return True
        try:
            return future.set_running_or_notify_cancel()
        except RuntimeError:
            # already resolved, or its cancellation was already reported
            return False

    def _wait_for_slot(self) -> None:
        not_before = self._rate_limit.next_allowed()
        if not_before is None:
            return
        while True:
            remaining = not_before - self._clock()
            if remaining <= 0:
                return
            self._sleep_fn(remaining)

    def _handle_failure(self, request: ScheduledRequest, exc: Exception) -> None:
        if isinstance(exc, RateLimitExceededError):
            if request.attempts > self._config.max_retries:
                self._logger.warning(
                    "Still rate limited after %d attempts, giving up", request.attempts
                )
                self._deliver(request, error=exc)
                return
            delay = self._config.backoff_for(request.attempts)
            self._logger.warning(
                "Rate limited on attempt %d, retrying in %.2fs", request.attempts, delay
            )
            self._rate_limit.penalize(delay)
            self._queue.put_front(request)
            return

        if isinstance(exc, ApiError):
            self._logger.debug("Search failed: %s", exc)
            self._deliver(request, error=exc)
            return

        self._logger.exception("Search executor raised an unexpected error")
        abandoned = RequestAbandonedError(f"Search executor failed: {exc}")
        abandoned.__cause__ = exc
        self._deliver(request, error=abandoned)

    def _abandon(self, requests: list[ScheduledRequest]) -> None:
        for request in requests:
            self._deliver(
                request,
                error=RequestAbandonedError("The scheduler stopped before sending the request."),
            )

    def _deliver(
        self,
        request: ScheduledRequest,
        *,
        result: SearchResult | None = None,
        error: BaseException | None = None,
    ) -> None:
        future = request.future
        if future.done():
            self._logger.debug("Caller abandoned the request, dropping its outcome")
            return
        try:
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)  # type: ignore[arg-type]
        except InvalidStateError:
            self._logger.debug("Caller abandoned the request, dropping its outcome")
