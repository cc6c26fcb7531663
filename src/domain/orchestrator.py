"""
Identity-protocol orchestration - Ordered remote calls that create an account.

Sequence (strictly sequential, no retries):

1. Load admin and service-account credentials
2. create_invite_code (admin Basic auth)
3. create_session (service account)
4. check_user_exists (handle lookup with the session token)
5. register_user (consumes the invite code)

A failure at any step aborts the rest.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .context import RequestContext
from .credentials import CredentialGateway
from .exceptions import HandleAlreadyExists
from .models import CreatedAccount, NormalizedRegistration, RegistrationState
from .ports import IdentityProvider

logger = logging.getLogger(__name__)

StateCallback = Callable[[RegistrationState], None]


def _ignore_state(state: RegistrationState) -> None:
    return None


@dataclass
class IdentityOrchestrator:
    """Drives account creation on the identity-protocol server."""

    provider: IdentityProvider
    credentials: CredentialGateway

    def register(
        self,
        ctx: RequestContext,
        registration: NormalizedRegistration,
        on_state: StateCallback = _ignore_state,
    ) -> CreatedAccount:
        """
        Create the remote account for a validated registration.

        Args:
            ctx: Request context, checked before every remote call
            registration: Validated request with the normalized handle
            on_state: Called after each completed step

        Returns:
            The account as created by the identity-protocol server

        Raises:
            CredentialRetrievalError, CredentialFormatError: Secrets unusable
            OrchestrationError: A remote call failed; ``step`` names it
            HandleAlreadyExists: The handle is already registered remotely
            DeadlineExceeded: The request ran out of time between steps
        """
        admin = self.credentials.admin_credentials(ctx)
        service_account = self.credentials.service_account_credentials(ctx)
        on_state(RegistrationState.CREDENTIALS_LOADED)

        ctx.check("create_invite_code")
        invite = self.provider.create_invite_code(ctx, admin)
        on_state(RegistrationState.INVITE_CODE_OBTAINED)

        ctx.check("create_session")
        session = self.provider.create_session(ctx, service_account)
        on_state(RegistrationState.SESSION_ESTABLISHED)

        ctx.check("check_user_exists")
        exists = self.provider.check_user_exists(ctx, registration.handle, session.access_token)
        if exists:
            logger.warning("Handle %s already exists on identity server", registration.handle)
            raise HandleAlreadyExists()
        on_state(RegistrationState.REMOTE_EXISTENCE_CHECKED)

        ctx.check("register_user")
        account = self.provider.register_user(
            ctx,
            registration.handle,
            registration.email,
            registration.password,
            invite.code,
        )
        logger.info("Remote account created: handle=%s did=%s", account.handle, account.identity)
        return account
