"""Error types raised by the notes gateway.

Every failure of a single request maps to exactly one of these. ``str(err)``
is the message shown to the user.
"""

from __future__ import annotations

SESSION_EXPIRED_MESSAGE = "Session expired. Please log in again."
INVALID_RESPONSE_MESSAGE = "Received invalid response from server"


class QuillError(Exception):
    """Base class for all request failures."""


class TransportError(QuillError):
    """No response from the backend (connection refused, DNS, reset...)."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url
        super().__init__(
            "Network error. Please check your connection and make sure "
            f"the backend server is running at {base_url}"
        )


class SessionExpiredError(QuillError):
    """401/403 on an authenticated call: the bearer token is no longer valid."""

    def __init__(self, status: int) -> None:
        self.status = status
        super().__init__(SESSION_EXPIRED_MESSAGE)


class ApiError(QuillError):
    """Any other non-2xx response."""

    def __init__(self, status: int, message: str) -> None:
        self.status = status
        super().__init__(message)


class InvalidResponseError(QuillError):
    """A 2xx response whose body could not be understood."""

    def __init__(self, message: str = INVALID_RESPONSE_MESSAGE) -> None:
        super().__init__(message)
