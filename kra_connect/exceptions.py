"""Exception hierarchy for the KRA Connect client.

Every error raised by the SDK derives from ``KraError`` so callers can catch
the whole family in one place:

    try:
        client.verify_pin("P051234567A")
    except ValidationError as exc:
        print(exc.field, exc.message)
    except KraError as exc:
        print(exc)
"""

from typing import Any


class KraError(Exception):
    """Base exception for all KRA Connect errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.status_code = status_code

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class ValidationError(KraError):
    """Raised when an input does not match the expected format."""

    def __init__(self, message: str, field: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details=details)
        self.field = field

    def __str__(self) -> str:
        return f"{self.message} (field: {self.field})"


class AuthenticationError(KraError):
    """Raised on HTTP 401/403: invalid, expired or unauthorised API key."""

    def __init__(
        self,
        message: str,
        status_code: int = 401,
        endpoint: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details, status_code=status_code)
        self.endpoint = endpoint


class RateLimitError(KraError):
    """Raised when the local token bucket is empty or the API answers 429."""

    def __init__(
        self,
        message: str,
        retry_after: float,
        limit: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details, status_code=429)
        self.retry_after = retry_after
        self.limit = limit

    def __str__(self) -> str:
        text = self.message
        if self.limit is not None:
            text += f" (limit: {self.limit} requests/s)"
        return f"{text}; retry after {self.retry_after:g}s"


class RequestTimeoutError(KraError):
    """Raised when a request times out (client side or HTTP 408)."""

    def __init__(
        self,
        message: str,
        endpoint: str,
        timeout: float,
        attempt: int = 1,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details, status_code=408)
        self.endpoint = endpoint
        self.timeout = timeout
        self.attempt = attempt

    def __str__(self) -> str:
        return (
            f"Request to {self.endpoint} timed out after {self.timeout:g}s "
            f"(attempt {self.attempt})"
        )


class ApiError(KraError):
    """Raised on any other non-2xx response, or a body that is not valid JSON."""

    def __init__(
        self,
        message: str,
        status_code: int,
        endpoint: str,
        response_body: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details, status_code=status_code)
        self.endpoint = endpoint
        self.response_body = response_body

    @property
    def is_client_error(self) -> bool:
        return self.status_code is not None and 400 <= self.status_code < 500

    @property
    def is_server_error(self) -> bool:
        return self.status_code is not None and 500 <= self.status_code < 600

    def __str__(self) -> str:
        text = f"({self.status_code}) {self.message}"
        if self.endpoint:
            text += f" [endpoint: {self.endpoint}]"
        return text


class NetworkError(KraError):
    """Raised on connection failures (DNS, refused connection, reset socket)."""

    def __init__(
        self,
        message: str,
        endpoint: str = "",
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.endpoint = endpoint
        self.cause = cause

    def __str__(self) -> str:
        text = self.message
        if self.endpoint:
            text += f" [endpoint: {self.endpoint}]"
        if self.cause is not None:
            text += f" [cause: {self.cause}]"
        return text


class CacheError(KraError):
    """Raised when a cache operation fails. Callers may proceed uncached."""

    def __init__(
        self,
        message: str,
        operation: str,
        key: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.operation = operation
        self.key = key

    def __str__(self) -> str:
        return f"{self.operation} failed for key '{self.key}': {self.message}"
