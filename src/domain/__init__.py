"""
Domain layer - Pure business logic with zero framework imports.

This package contains the validation-and-orchestration pipeline that
takes a raw registration request to either a created and persisted
account or a classified failure. It defines its own port interfaces
for infrastructure abstraction.
"""

from .context import RequestContext
from .credentials import CredentialGateway
from .exceptions import (
    BlockedHandle,
    ConfigurationError,
    CredentialFormatError,
    CredentialRetrievalError,
    DeadlineExceeded,
    EmailTaken,
    HandleAlreadyExists,
    HandleTooLong,
    HandleTooShort,
    InputValidationError,
    InvalidEmail,
    InvalidHandle,
    MissingFields,
    OrchestrationError,
    RegistrationError,
    StorageError,
    WeakPassword,
)
from .models import (
    AccountRecord,
    CreatedAccount,
    NormalizedRegistration,
    RegistrationRequest,
    RegistrationState,
)
from .orchestrator import IdentityOrchestrator
from .ports import AccountRepository, IdentityProvider, SecretStore, WelcomeEmailSender
from .registration import RegistrationOutcome, RegistrationService
from .validation import RegistrationValidator, load_blocked_handles

__all__ = [
    "AccountRecord",
    "AccountRepository",
    "BlockedHandle",
    "ConfigurationError",
    "CreatedAccount",
    "CredentialFormatError",
    "CredentialGateway",
    "CredentialRetrievalError",
    "DeadlineExceeded",
    "EmailTaken",
    "HandleAlreadyExists",
    "HandleTooLong",
    "HandleTooShort",
    "IdentityOrchestrator",
    "IdentityProvider",
    "InputValidationError",
    "InvalidEmail",
    "InvalidHandle",
    "MissingFields",
    "NormalizedRegistration",
    "OrchestrationError",
    "RegistrationError",
    "RegistrationOutcome",
    "RegistrationRequest",
    "RegistrationService",
    "RegistrationState",
    "RegistrationValidator",
    "SecretStore",
    "StorageError",
    "WeakPassword",
    "WelcomeEmailSender",
    "load_blocked_handles",
]
