"""
Adversarial tests for concurrent registrations.

Verifies that concurrent registrations for the same email leave exactly
one local record, even though the duplicate-email check is only a
pre-check:
- Requests that lose the race before the remote call fail with EmailTaken
- Requests that lose it at the insert fail with StorageError carrying the
  remote account, so the partial failure can be reported
"""

import itertools
import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresAccountRepository
from src.domain.context import RequestContext
from src.domain.credentials import CredentialGateway
from src.domain.exceptions import EmailTaken, StorageError
from src.domain.models import CreatedAccount, RegistrationRequest, RegistrationState
from src.domain.orchestrator import IdentityOrchestrator
from src.domain.registration import RegistrationService
from src.domain.validation import RegistrationValidator

# Apply adversarial marker to all tests in this module
pytestmark = pytest.mark.adversarial


@pytest.fixture
def racing_provider(provider: Mock) -> Mock:
    """Identity provider handing out a fresh DID per created account."""
    counter = itertools.count()
    lock = threading.Lock()

    def register_user(ctx, handle, email, password, invite_code):
        with lock:
            n = next(counter)
        return CreatedAccount(
            identity=f"did:plc:race{n}",
            handle=handle,
            email=email,
            access_token="a",
            refresh_token="r",
        )

    provider.register_user.side_effect = register_user
    return provider


class TestConcurrentRegistration:
    """Concurrent registrations racing for one email."""

    def test_exactly_one_record_persisted(
        self,
        pool: ConnectionPool,
        pg_repository: PostgresAccountRepository,
        validator: RegistrationValidator,
        racing_provider: Mock,
        secret_store: Mock,
        email_sender: Mock,
    ) -> None:
        gateway = CredentialGateway(secret_store, "admin-secret", "util-secret")
        service = RegistrationService(
            validator=validator,
            repository=pg_repository,
            orchestrator=IdentityOrchestrator(provider=racing_provider, credentials=gateway),
            email_sender=email_sender,
        )
        email = "race@example.com"

        def attempt(n: int) -> object:
            request = RegistrationRequest(handle=f"racer{n}", email=email, password="Valid@123")
            try:
                return service.register(RequestContext.with_timeout(30), request)
            except (EmailTaken, StorageError) as exc:
                return exc

        with ThreadPoolExecutor(max_workers=5) as executor:
            results = list(executor.map(attempt, range(5)))

        completed = [r for r in results if not isinstance(r, Exception)]
        storage_failures = [r for r in results if isinstance(r, StorageError)]

        assert len(completed) == 1
        assert completed[0].states[-1] == RegistrationState.COMPLETED
        for failure in storage_failures:
            assert failure.remote_account is not None
            assert failure.state == RegistrationState.REMOTE_ACCOUNT_CREATED

        with pool.connection() as conn:
            count = conn.execute("SELECT COUNT(*) FROM users WHERE email = %s", (email,)).fetchone()[0]
        assert count == 1
