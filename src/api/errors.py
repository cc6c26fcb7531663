"""
Error translation - Domain exceptions to outward status codes and bodies.

This is the only place a domain error becomes a response. Internal
details stay in the logs; callers get the kind and a generic message.
"""

from src.domain.exceptions import (
    ConfigurationError,
    CredentialFormatError,
    CredentialRetrievalError,
    DeadlineExceeded,
    EmailTaken,
    HandleAlreadyExists,
    InputValidationError,
    OrchestrationError,
    RegistrationError,
    StorageError,
)

# Checked in order; first matching class wins
_STATUS_BY_ERROR: tuple[tuple[type[RegistrationError], int], ...] = (
    (InputValidationError, 400),
    (EmailTaken, 409),
    (HandleAlreadyExists, 409),
    (StorageError, 500),
    (CredentialRetrievalError, 500),
    (CredentialFormatError, 500),
    (ConfigurationError, 500),
    (OrchestrationError, 502),
    (DeadlineExceeded, 504),
)


def status_for(exc: RegistrationError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def error_body(exc: RegistrationError) -> dict[str, str]:
    """Response body for a failed registration: ``{"detail", "kind"}``."""
    message = str(exc) if exc.expose_message else exc.public_message
    return {"detail": message, "kind": exc.kind}
