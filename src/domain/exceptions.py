"""
Domain exceptions - Semantic error types for registration.

This module defines domain-specific exceptions that communicate
business rule violations and collaborator failures without leaking
infrastructure details. Only the outward layers (FastAPI routes and
the Lambda entry point) translate these into response shapes.
"""

PASSWORD_REQUIREMENTS = (
    "password must be at least 8 characters long and include at least one "
    "uppercase letter, one lowercase letter, one digit, and one special character"
)


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    kind = "RegistrationError"
    public_message = "registration failed"
    # When True the exception text itself is safe to return to callers
    expose_message = False

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)
        # Set by RegistrationService: last state reached before failing, and
        # every state visited ending in FAILED
        self.state = None
        self.states: list = []


class InputValidationError(RegistrationError):
    """Client input rejected before any remote or storage call."""

    kind = "ValidationError"
    public_message = "invalid request"
    expose_message = True


class MissingFields(InputValidationError):
    """Handle, email, or password is empty."""

    kind = "MissingFields"
    public_message = "handle, email, and password are required fields"


class HandleTooShort(InputValidationError):
    kind = "HandleTooShort"
    public_message = "handle must be at least 3 characters long"


class HandleTooLong(InputValidationError):
    kind = "HandleTooLong"
    public_message = "handle cannot exceed 18 characters"


class BlockedHandle(InputValidationError):
    kind = "BlockedHandle"
    public_message = "handle is not allowed"


class InvalidHandle(InputValidationError):
    kind = "InvalidHandle"
    public_message = "handle can only include letters and numbers"


class InvalidEmail(InputValidationError):
    kind = "InvalidEmail"
    public_message = "invalid email format"


class WeakPassword(InputValidationError):
    kind = "WeakPassword"
    public_message = PASSWORD_REQUIREMENTS


class EmailTaken(RegistrationError):
    """An account with this email is already stored locally."""

    kind = "EmailTaken"
    public_message = "email is already registered"
    expose_message = True


class HandleAlreadyExists(RegistrationError):
    """The identity-protocol server already knows this handle."""

    kind = "HandleAlreadyExists"
    public_message = "handle is already taken"
    expose_message = True


class StorageError(RegistrationError):
    """
    Duplicate check or persistence failed.

    When raised after the remote account was created, ``remote_account``
    holds the CreatedAccount so callers can report the partial failure.
    """

    kind = "StorageError"
    public_message = "internal error"
    # RegistrationService re-raises with a generic message before this escapes
    expose_message = True

    def __init__(self, message: str | None = None, remote_account=None) -> None:
        super().__init__(message)
        self.remote_account = remote_account


class CredentialRetrievalError(RegistrationError):
    """Secret store could not return the named secret."""

    kind = "CredentialRetrievalError"
    public_message = "internal error"


class CredentialFormatError(RegistrationError):
    """Secret was returned but does not decode into the expected shape."""

    kind = "CredentialFormatError"
    public_message = "internal error"


class OrchestrationError(RegistrationError):
    """An identity-protocol call failed (transport, status, or decode)."""

    kind = "OrchestrationError"
    public_message = "failed to register account with identity server"

    def __init__(self, step: str, detail: str) -> None:
        super().__init__(f"{step}: {detail}")
        self.step = step
        self.detail = detail


class ConfigurationError(RegistrationError):
    """Required configuration is missing."""

    kind = "ConfigurationError"
    public_message = "service is misconfigured"


class DeadlineExceeded(RegistrationError):
    """The request deadline passed or the caller cancelled the request."""

    kind = "DeadlineExceeded"
    public_message = "request timed out"
