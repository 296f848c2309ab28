"""
Domain exceptions - Semantic error types for registration and login.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Each exception carries the user-facing message and the HTTP status
the API layer renders it with.
"""


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(RegistrationError):
    """Missing or malformed identity fields."""

    default_message = "Invalid input"


class EmailAlreadyRegistered(RegistrationError):
    """Email belongs to a fully verified account."""

    status_code = 409
    default_message = "Email already registered"


class UsernameTaken(RegistrationError):
    """Username is held by a different account."""

    status_code = 409
    default_message = "Username already taken"


class UserNotFound(RegistrationError):
    """No registration matches the supplied identifiers."""

    status_code = 404
    default_message = "Registration not found"


class StepOutOfOrder(RegistrationError):
    """A step was attempted before the steps it depends on completed."""

    status_code = 409
    default_message = "Previous verification step not completed"


class VerificationFailed(RegistrationError):
    """Code mismatch or expiry."""

    status_code = 401
    default_message = "Verification failed"


class InvalidCode(VerificationFailed):
    """Wrong code, consumed code, or no code issued at all."""

    default_message = "Invalid verification code"


class CodeExpired(VerificationFailed):
    """The matching code is past its expiry."""

    default_message = "Verification code has expired"


class InvalidCredentials(RegistrationError):
    """Email/password mismatch."""

    status_code = 401
    default_message = "Invalid email or password"


class RateLimited(RegistrationError):
    """A code was requested before the resend cooldown elapsed."""

    status_code = 429
    default_message = "Please wait before requesting another code"

    def __init__(self, retry_after: int, message: str | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message or f"Please wait {retry_after} seconds before requesting another code")


class DeliveryFailed(RegistrationError):
    """The email or SMS provider rejected or never received the message."""

    status_code = 502
    default_message = "Failed to send verification code"
