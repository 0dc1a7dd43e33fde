"""Exception types raised by the classroom client."""

from typing import Any, Optional


class FluentXError(Exception):
    """Base class for all client errors."""


class ApiError(FluentXError):
    """A REST call failed: network error, HTTP error, or a `success: false` envelope."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class UnauthorizedError(ApiError):
    """The server answered 401; the cookie session is gone."""


class FormValidationError(FluentXError):
    """Client-side form check failed before anything was sent."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class MediaAccessError(FluentXError):
    """Camera/microphone could not be opened (permission denied or no device)."""


class SocketNotInitializedError(FluentXError):
    """The socket channel was used before init_socket() or after destroy()."""


class PayloadError(FluentXError):
    """An inbound socket payload did not match the expected shape for its event."""

    def __init__(self, event: str, detail: str):
        super().__init__(f"Invalid payload for {event}: {detail}")
        self.event = event
        self.detail = detail
