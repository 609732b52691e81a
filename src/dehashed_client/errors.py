"""Custom exceptions for the Dehashed client."""


class DehashedClientError(Exception):
    """Base exception for this project."""


class ConfigError(DehashedClientError):
    """Raised when runtime configuration is invalid."""


class ApiError(DehashedClientError):
    """Raised when a Dehashed API call fails."""


class UnauthorizedError(ApiError):
    """Raised when the API rejects the account credentials."""


class RateLimitExceededError(ApiError):
    """Raised when the account got throttled by the API."""


class NetworkError(ApiError):
    """Raised when the request could not be sent or answered."""


class MalformedResponseError(ApiError):
    """Raised when the response body cannot be parsed."""


class InvalidInputError(ApiError):
    """Raised when a query is missing or invalid."""


class UnexpectedStatusError(ApiError):
    """Raised when the API answers with a status code we don't know."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"Unexpected HTTP status {status_code}")
        self.status_code = status_code


class SchedulerUnavailableError(DehashedClientError):
    """Raised when submitting to a scheduler that has been shut down."""


class RequestAbandonedError(DehashedClientError):
    """Raised when the scheduler dropped a request without answering it."""
