"""
Registration domain service - Request handler state machine.

This module composes validation, the duplicate-email pre-check, remote
account creation, and local persistence into a single sequential run.

State Machine (forward-only, terminal on first failure)
=======================================================

    RECEIVED -> VALIDATED -> DUPLICATE_CHECKED -> CREDENTIALS_LOADED
    -> INVITE_CODE_OBTAINED -> SESSION_ESTABLISHED -> REMOTE_EXISTENCE_CHECKED
    -> REMOTE_ACCOUNT_CREATED -> LOCALLY_PERSISTED -> COMPLETED

Any failing transition ends the run in FAILED. Nothing is retried and
nothing is rolled back: when the local write fails after the remote
account exists, the StorageError carries the remote account so the
partial failure can be reported.

Note: The duplicate-email check is a pre-check only. Two concurrent
requests for the same email can both pass it; the store's uniqueness
constraint rejects the second write.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .context import RequestContext
from .exceptions import EmailTaken, RegistrationError, StorageError
from .models import (
    AccountRecord,
    CreatedAccount,
    NormalizedRegistration,
    RegistrationRequest,
    RegistrationState,
)
from .orchestrator import IdentityOrchestrator
from .ports import AccountRepository, WelcomeEmailSender
from .validation import RegistrationValidator

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RegistrationOutcome:
    """Successful registration and the states it passed through."""

    account: CreatedAccount
    registration: NormalizedRegistration
    states: list[RegistrationState]


@dataclass
class _Run:
    """Tracks the state of one registration attempt."""

    states: list[RegistrationState] = field(
        default_factory=lambda: [RegistrationState.RECEIVED]
    )

    @property
    def current(self) -> RegistrationState:
        return self.states[-1]

    def advance(self, state: RegistrationState) -> None:
        logger.debug("Registration state %s -> %s", self.current.value, state.value)
        self.states.append(state)


@dataclass
class RegistrationService:
    """
    Domain service for user registration.

    Orchestrates the registration flow: validation, duplicate-email
    check, remote account creation, and local persistence. Registers at
    most one account per call.
    """

    validator: RegistrationValidator
    repository: AccountRepository
    orchestrator: IdentityOrchestrator
    email_sender: WelcomeEmailSender
    clock: Callable[[], datetime] = _utcnow

    def register(self, ctx: RequestContext, request: RegistrationRequest) -> RegistrationOutcome:
        """
        Register a new account.

        Args:
            ctx: Request context carrying the deadline
            request: Raw registration request

        Returns:
            RegistrationOutcome with the created account

        Raises:
            RegistrationError: A taxonomy subclass; ``exc.state`` is the last
                state reached before the failure and ``exc.states`` the full
                trail ending in FAILED
        """
        run = _Run()
        logger.info("Processing registration request for handle %s", request.handle)
        try:
            outcome = self._run(ctx, request, run)
        except RegistrationError as exc:
            exc.state = run.current
            run.advance(RegistrationState.FAILED)
            exc.states = list(run.states)
            logger.warning(
                "Registration failed after %s: %s (%s)", exc.state.value, exc.kind, exc
            )
            raise
        self._send_welcome_email(outcome)
        return outcome

    def _run(
        self, ctx: RequestContext, request: RegistrationRequest, run: _Run
    ) -> RegistrationOutcome:
        registration = self.validator.validate(request)
        run.advance(RegistrationState.VALIDATED)

        if self._email_exists(ctx, registration.email):
            logger.warning("Email %s is already registered", registration.email)
            raise EmailTaken()
        run.advance(RegistrationState.DUPLICATE_CHECKED)

        account = self.orchestrator.register(ctx, registration, on_state=run.advance)
        run.advance(RegistrationState.REMOTE_ACCOUNT_CREATED)

        self._store(ctx, account, registration)
        run.advance(RegistrationState.LOCALLY_PERSISTED)

        run.advance(RegistrationState.COMPLETED)
        logger.info("Account created successfully: %s", account.identity)
        return RegistrationOutcome(account=account, registration=registration, states=run.states)

    def _email_exists(self, ctx: RequestContext, email: str) -> bool:
        ctx.check("email_exists")
        try:
            return self.repository.email_exists(ctx, email)
        except StorageError as exc:
            logger.error("Database error: failed to check email existence: %s", exc)
            raise StorageError("internal error: failed to check email") from exc

    def _store(
        self,
        ctx: RequestContext,
        account: CreatedAccount,
        registration: NormalizedRegistration,
    ) -> None:
        record = AccountRecord.from_account(account, registration, self.clock())
        try:
            ctx.check("store_account")
            self.repository.store_account(ctx, record)
        except RegistrationError as exc:
            logger.error(
                "Remote account %s exists but was not stored locally: %s",
                account.identity,
                exc,
            )
            raise StorageError(
                "internal error: failed to store account", remote_account=account
            ) from exc

    def _send_welcome_email(self, outcome: RegistrationOutcome) -> None:
        # Delivery failures never undo a completed registration
        try:
            self.email_sender.send_welcome_email(
                outcome.registration.email, outcome.account.handle
            )
        except Exception:
            logger.exception("Failed to send welcome email to %s", outcome.registration.email)
