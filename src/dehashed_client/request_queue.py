"""Closable FIFO queue carrying scheduled requests to the scheduler thread."""

from __future__ import annotations

from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass, field
from threading import Condition, Lock

from .errors import SchedulerUnavailableError
from .models import SearchResult
from .query import Query


@dataclass
class ScheduledRequest:
    """A query paired with the future its result is delivered to.

    The scheduler writes exactly one outcome into ``future``. If the caller
    cancelled it first, the write is dropped.
    """

    query: Query
    future: Future[SearchResult] = field(default_factory=Future)
    attempts: int = 0


class RequestQueue:
    """Multi-producer, single-consumer queue with optional capacity.

    ``put`` blocks while a bounded queue is full. Once closed, ``put`` raises
    SchedulerUnavailableError and ``get`` returns None after the remaining
    items are consumed.
    """

    def __init__(self, capacity: int | None = None) -> None:
        self._capacity = capacity
        self._items: deque[ScheduledRequest] = deque()
        self._closed = False
        self._lock = Lock()
        self._not_empty = Condition(self._lock)
        self._not_full = Condition(self._lock)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def _full(self) -> bool:
        return self._capacity is not None and len(self._items) >= self._capacity

    def put(self, request: ScheduledRequest, bounded: bool = True) -> None:
        """Append a request, waiting for room in a bounded queue.

        With ``bounded`` unset the request is appended even when the queue
        is full.
        """
        with self._not_full:
            while bounded and self._full() and not self._closed:
                self._not_full.wait()
            if self._closed:
                raise SchedulerUnavailableError("The scheduler has been shut down.")
            self._items.append(request)
            self._not_empty.notify()

    def put_front(self, request: ScheduledRequest) -> None:
        """Re-insert a request ahead of everything else.

        Only the consumer calls this, for retries. It ignores capacity and
        also works after close so retries drain with the rest.
        """
        with self._lock:
            self._items.appendleft(request)
            self._not_empty.notify()

    def get(self) -> ScheduledRequest | None:
        """Block for the next request; None once closed and empty."""
        with self._not_empty:
            while not self._items and not self._closed:
                self._not_empty.wait()
            if not self._items:
                return None
            request = self._items.popleft()
            self._not_full.notify()
            return request

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._not_empty.notify_all()
            self._not_full.notify_all()

    def drain(self) -> list[ScheduledRequest]:
        """Remove and return every queued request."""
        with self._lock:
            items = list(self._items)
            self._items.clear()
            self._not_full.notify_all()
            return items
