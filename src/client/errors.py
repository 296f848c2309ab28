"""
Client-side error taxonomy.

Every error raised by the client derives from FlowError so the flow can
catch them at one boundary and surface a single notice.
"""


class FlowError(Exception):
    """Base class for errors surfaced to the user as a notice."""

    retryable = True

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(FlowError):
    """Missing or malformed input, caught before any request is sent."""


class NetworkError(FlowError):
    """Transport failure: no response was received."""


class ServerError(FlowError):
    """The server answered with an error message."""

    def __init__(self, message: str, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(message)


class RateLimited(ServerError):
    """A resend was attempted before the cooldown elapsed."""

    def __init__(self, retry_after: int, message: str | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message or f"Please wait {retry_after} seconds before requesting another code", 429)
