"""Runtime configuration models."""

from __future__ import annotations

from dataclasses import dataclass, field

from .validation import validate_runtime_constraints, validate_scheduler_constraints

DEFAULT_USER_AGENT = "dehashed-client/0.5"
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_WORKERS = 4
# Dehashed bans accounts doing more than 5 requests per second
DEFAULT_MIN_REQUEST_INTERVAL = 0.2
DEFAULT_MAX_RETRIES = 3
DEFAULT_QUEUE_CAPACITY = 5
DEFAULT_RETRY_BACKOFF = 1.0
DEFAULT_MAX_BACKOFF = 30.0
MAX_BACKOFF_EXPONENT = 62
DEFAULT_PAGE_SIZE = 10_000


@dataclass(frozen=True)
class SchedulerConfig:
    """Validated settings of the rate-limited request scheduler."""

    min_request_interval: float = DEFAULT_MIN_REQUEST_INTERVAL
    max_retries: int = DEFAULT_MAX_RETRIES
    queue_capacity: int | None = DEFAULT_QUEUE_CAPACITY
    retry_backoff: float = DEFAULT_RETRY_BACKOFF
    max_backoff: float = DEFAULT_MAX_BACKOFF

    def __post_init__(self) -> None:
        validate_scheduler_constraints(
            min_request_interval=self.min_request_interval,
            max_retries=self.max_retries,
            queue_capacity=self.queue_capacity,
            retry_backoff=self.retry_backoff,
            max_backoff=self.max_backoff,
        )

    def backoff_for(self, attempt: int) -> float:
        """Delay added before retry number ``attempt`` (1-based)."""
        if attempt < 1:
            return 0.0
        # the exponent is clamped so huge retry budgets cannot overflow a float
        exponent = min(attempt - 1, MAX_BACKOFF_EXPONENT)
        return min(self.retry_backoff * 2**exponent, self.max_backoff)


@dataclass(frozen=True)
class SearchConfig:
    """Validated configuration used by the batch search pipeline."""

    queries: tuple[str, ...]
    email: str
    api_key: str
    output: str
    match: str = "simple"
    workers: int = DEFAULT_WORKERS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    page_size: int = DEFAULT_PAGE_SIZE
    user_agent: str = DEFAULT_USER_AGENT
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    show_progress: bool = True

    def __post_init__(self) -> None:
        validate_runtime_constraints(
            queries=self.queries,
            email=self.email,
            api_key=self.api_key,
            workers=self.workers,
            request_timeout=self.request_timeout,
            page_size=self.page_size,
        )
