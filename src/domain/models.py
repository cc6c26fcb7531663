"""
Domain models - Immutable values flowing through a registration.

All types are frozen dataclasses owned by a single request. None of
them are cached or shared across requests.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

DEFAULT_STATUS = "active"
DEFAULT_ROLE = "user"
DEFAULT_PRIMARY_COLOR = "#FFFFFF"
DEFAULT_SECONDARY_COLOR = "#000000"


class RegistrationState(str, Enum):
    """
    Registration state machine states.

    Transitions are strictly sequential; any failure moves to FAILED:

        RECEIVED -> VALIDATED -> DUPLICATE_CHECKED -> CREDENTIALS_LOADED
        -> INVITE_CODE_OBTAINED -> SESSION_ESTABLISHED
        -> REMOTE_EXISTENCE_CHECKED -> REMOTE_ACCOUNT_CREATED
        -> LOCALLY_PERSISTED -> COMPLETED
    """

    RECEIVED = "RECEIVED"
    VALIDATED = "VALIDATED"
    DUPLICATE_CHECKED = "DUPLICATE_CHECKED"
    CREDENTIALS_LOADED = "CREDENTIALS_LOADED"
    INVITE_CODE_OBTAINED = "INVITE_CODE_OBTAINED"
    SESSION_ESTABLISHED = "SESSION_ESTABLISHED"
    REMOTE_EXISTENCE_CHECKED = "REMOTE_EXISTENCE_CHECKED"
    REMOTE_ACCOUNT_CREATED = "REMOTE_ACCOUNT_CREATED"
    LOCALLY_PERSISTED = "LOCALLY_PERSISTED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class RegistrationRequest:
    """Raw registration input as received from the outward layer."""

    handle: str
    email: str
    password: str


@dataclass(frozen=True)
class NormalizedRegistration:
    """Validated request; ``handle`` carries the domain suffix exactly once."""

    handle: str
    email: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class AdminCredentials:
    username: str
    password: str = field(repr=False)
    jwt_secret: str = field(repr=False)


@dataclass(frozen=True)
class ServiceAccountCredentials:
    username: str
    password: str = field(repr=False)
    identity: str


@dataclass(frozen=True)
class InviteCode:
    code: str


@dataclass(frozen=True)
class Session:
    access_token: str = field(repr=False)
    identity: str
    handle: str


@dataclass(frozen=True)
class CreatedAccount:
    """Authoritative result of remote account creation."""

    identity: str
    handle: str
    email: str
    access_token: str = field(repr=False)
    refresh_token: str = field(repr=False)


@dataclass(frozen=True)
class AccountRecord:
    """Locally persisted copy of a remotely created account."""

    identity: str
    handle: str
    email: str
    created_at: datetime
    modified_at: datetime
    status: str = DEFAULT_STATUS
    verified: bool = False
    role: str = DEFAULT_ROLE
    display_name: str = ""
    profile_picture: str = ""
    profile_banner: str = ""
    theme: dict[str, Any] = field(default_factory=dict)
    primary_color: str = DEFAULT_PRIMARY_COLOR
    secondary_color: str = DEFAULT_SECONDARY_COLOR

    @classmethod
    def from_account(
        cls,
        account: CreatedAccount,
        registration: NormalizedRegistration,
        now: datetime,
    ) -> "AccountRecord":
        """
        Combine the remote identity with the locally known email.

        The display name defaults to the handle; every other profile
        attribute takes its default.
        """
        return cls(
            identity=account.identity,
            handle=account.handle,
            email=registration.email,
            created_at=now,
            modified_at=now,
            display_name=account.handle,
        )
