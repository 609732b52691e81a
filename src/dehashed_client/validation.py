"""Validation and runtime guardrails."""

from __future__ import annotations

from pathlib import Path

from .errors import ConfigError


def load_lines_from_file(path: str) -> list[str]:
    """Load non-empty, non-comment lines from a UTF-8 text file."""
    content = Path(path).read_text(encoding="utf-8")
    return [
        line.strip()
        for line in content.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]


def validate_scheduler_constraints(
    *,
    min_request_interval: float,
    max_retries: int,
    queue_capacity: int | None,
    retry_backoff: float,
    max_backoff: float,
) -> None:
    """Validate scheduler settings and raise ConfigError on invalid values."""
    if min_request_interval < 0:
        raise ConfigError("--min-interval must be >= 0.")
    if max_retries < 0:
        raise ConfigError("--max-retries must be >= 0.")
    if queue_capacity is not None and queue_capacity < 1:
        raise ConfigError("--queue-capacity must be >= 1 when set.")
    if retry_backoff < 0 or max_backoff < 0:
        raise ConfigError("Retry backoff values must be >= 0.")
    if retry_backoff > max_backoff:
        raise ConfigError("Retry backoff cannot be greater than the maximum backoff.")


def validate_runtime_constraints(
    *,
    queries: tuple[str, ...],
    email: str,
    api_key: str,
    workers: int,
    request_timeout: float,
    page_size: int,
) -> None:
    """Validate CLI/runtime configuration and raise ConfigError on invalid values."""
    if not queries:
        raise ConfigError("Provide --query or --queries-file.")
    if not email or not api_key:
        raise ConfigError("Provide --email/--api-key or set DEHASHED_EMAIL and DEHASHED_API_KEY.")
    if workers < 1:
        raise ConfigError("--workers must be >= 1.")
    if request_timeout <= 0:
        raise ConfigError("--timeout must be > 0.")
    if not 1 <= page_size <= 10_000:
        raise ConfigError("Page size must be between 1 and 10000.")
