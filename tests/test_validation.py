from pathlib import Path

import pytest

from dehashed_client.config import SchedulerConfig, SearchConfig
from dehashed_client.errors import ConfigError
from dehashed_client.validation import (
    load_lines_from_file,
    validate_runtime_constraints,
    validate_scheduler_constraints,
)


def valid_runtime(**overrides: object) -> dict[str, object]:
    values: dict[str, object] = {
        "queries": ("email:a@example.com",),
        "email": "me@example.com",
        "api_key": "key",
        "workers": 1,
        "request_timeout": 10.0,
        "page_size": 100,
    }
    values.update(overrides)
    return values


@pytest.mark.parametrize(
    "overrides",
    [
        {"queries": tuple()},
        {"email": ""},
        {"api_key": ""},
        {"workers": 0},
        {"request_timeout": 0},
        {"page_size": 10_001},
    ],
)
def test_validate_runtime_constraints_rejects_invalid_values(overrides: dict[str, object]) -> None:
    with pytest.raises(ConfigError):
        validate_runtime_constraints(**valid_runtime(**overrides))  # type: ignore[arg-type]


def test_validate_runtime_constraints_accepts_valid_values() -> None:
    validate_runtime_constraints(**valid_runtime())  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "overrides",
    [
        {"min_request_interval": -0.1},
        {"max_retries": -1},
        {"queue_capacity": 0},
        {"retry_backoff": -1.0},
        {"retry_backoff": 5.0, "max_backoff": 1.0},
    ],
)
def test_scheduler_config_rejects_invalid_values(overrides: dict[str, object]) -> None:
    with pytest.raises(ConfigError):
        SchedulerConfig(**overrides)  # type: ignore[arg-type]


def test_validate_scheduler_constraints_allows_unbounded_queue() -> None:
    validate_scheduler_constraints(
        min_request_interval=0.2,
        max_retries=0,
        queue_capacity=None,
        retry_backoff=0,
        max_backoff=0,
    )


def test_backoff_doubles_up_to_the_cap() -> None:
    config = SchedulerConfig(retry_backoff=1.0, max_backoff=5.0)
    assert [config.backoff_for(attempt) for attempt in range(0, 6)] == [
        0.0,
        1.0,
        2.0,
        4.0,
        5.0,
        5.0,
    ]


def test_search_config_defaults() -> None:
    config = SearchConfig(queries=("x",), email="me@example.com", api_key="key", output="o.csv")
    assert config.scheduler == SchedulerConfig()
    assert config.scheduler.min_request_interval == 0.2


def test_load_lines_from_file_skips_blank_and_comment_lines(tmp_path: Path) -> None:
    sample = tmp_path / "sample.txt"
    sample.write_text("one\n\n # note\n two \n", encoding="utf-8")
    assert load_lines_from_file(str(sample)) == ["one", "two"]


def test_backoff_for_large_attempts_stays_at_the_cap() -> None:
    config = SchedulerConfig(retry_backoff=1.0, max_backoff=30.0)
    assert config.backoff_for(1025) == 30.0
    assert config.backoff_for(100_000) == 30.0
    assert SchedulerConfig(retry_backoff=0.0, max_backoff=0.0).backoff_for(5000) == 0.0
