"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols through
structural subtyping.
"""

from typing import Protocol

from .context import RequestContext
from .models import (
    AccountRecord,
    AdminCredentials,
    CreatedAccount,
    InviteCode,
    ServiceAccountCredentials,
    Session,
)


class AccountRepository(Protocol):
    """Port interface for the local account store."""

    def email_exists(self, ctx: RequestContext, email: str) -> bool:
        """
        Check whether an account with this email is already stored.

        This is a best-effort pre-check; the store itself must enforce
        email uniqueness.

        Raises:
            StorageError: On any transport or storage failure
        """
        ...

    def store_account(self, ctx: RequestContext, record: AccountRecord) -> None:
        """
        Write the account record in a single insert.

        Raises:
            StorageError: On any failure, including a uniqueness violation
        """
        ...


class IdentityProvider(Protocol):
    """Port interface for the identity-protocol server."""

    def create_invite_code(self, ctx: RequestContext, admin: AdminCredentials) -> InviteCode:
        """Create a single-use invite code using admin Basic auth."""
        ...

    def create_session(
        self, ctx: RequestContext, credentials: ServiceAccountCredentials
    ) -> Session:
        """Authenticate the service account and return its session."""
        ...

    def check_user_exists(self, ctx: RequestContext, handle: str, access_token: str) -> bool:
        """
        Look up a profile by handle.

        Returns:
            True on 200, False on 404 or 400
        """
        ...

    def register_user(
        self,
        ctx: RequestContext,
        handle: str,
        email: str,
        password: str,
        invite_code: str,
    ) -> CreatedAccount:
        """Create the account on the identity-protocol server."""
        ...


class SecretStore(Protocol):
    """Port interface for opaque secret retrieval."""

    def get_secret(self, ctx: RequestContext, secret_name: str) -> str:
        """
        Return the secret string stored under ``secret_name``.

        Raises:
            CredentialRetrievalError: If the secret cannot be fetched
        """
        ...


class WelcomeEmailSender(Protocol):
    """Port interface for email delivery."""

    def send_welcome_email(self, email: str, handle: str) -> None:
        """Send the welcome message for a freshly created account."""
        ...
