"""Headwind exceptions.

Provider errors are caught at the failover controller boundary, recorded,
and re-raised to the refresh loop, which retries after a fixed delay.
"""


class HeadwindError(Exception):
    """Base exception for all Headwind errors."""


class ProviderError(HeadwindError):
    """A weather provider request failed.

    ``status_code`` is the HTTP status, 500 for a timeout and 0 when no
    response was received at all.
    """

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{status_code}] {message}")


class TransportTimeout(ProviderError):
    """No response within the request timeout."""

    def __init__(self, message: str = "Timeout"):
        super().__init__(500, message)


class TransportError(ProviderError):
    """Connectivity failure (DNS, refused connection, TLS, ...)."""

    def __init__(self, message: str):
        super().__init__(0, message)


class HttpStatusError(ProviderError):
    """Non-2xx HTTP response."""


class AuthError(HttpStatusError):
    """401 / 403: the API key is invalid or expired."""


class ParseError(ProviderError):
    """The provider payload could not be decoded into weather contracts."""

    def __init__(self, message: str):
        super().__init__(0, message)


class InvalidInput(HeadwindError):
    """Estimator guard failure.

    Raised by the estimator's input validation and caught inside the public
    estimator functions, which return NaN / ``None`` instead.
    """
