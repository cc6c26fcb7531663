"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- Request contexts with a generous deadline
- Domain test doubles (repository, identity provider, secret store, email sender)
- Sample requests and created accounts
"""

import json
from unittest.mock import Mock

import pytest

from src.domain.context import RequestContext
from src.domain.credentials import CredentialGateway
from src.domain.models import (
    CreatedAccount,
    InviteCode,
    RegistrationRequest,
    Session,
)
from src.domain.orchestrator import IdentityOrchestrator
from src.domain.registration import RegistrationService
from src.domain.validation import RegistrationValidator, load_blocked_handles

SUFFIX = ".shareframe.social"

ADMIN_SECRET = json.dumps(
    {
        "PDS_ADMIN_USERNAME": "admin",
        "PDS_ADMIN_PASSWORD": "admin-pass",
        "PDS_JWT_SECRET": "jwt-secret",
    }
)
SERVICE_ACCOUNT_SECRET = json.dumps(
    {"username": "util.shareframe.social", "password": "util-pass", "did": "did:plc:util"}
)


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext.with_timeout(60)


@pytest.fixture
def validator() -> RegistrationValidator:
    return RegistrationValidator(blocked_handles=load_blocked_handles(), suffix=SUFFIX)


@pytest.fixture
def valid_request() -> RegistrationRequest:
    return RegistrationRequest(handle="validuser", email="user@example.com", password="Valid@123")


@pytest.fixture
def created_account() -> CreatedAccount:
    return CreatedAccount(
        identity="did:plc:abc123",
        handle="validuser" + SUFFIX,
        email="user@example.com",
        access_token="access-jwt",
        refresh_token="refresh-jwt",
    )


@pytest.fixture
def secret_store() -> Mock:
    """Secret store returning admin and service-account secrets by name."""
    store = Mock()
    secrets = {"admin-secret": ADMIN_SECRET, "util-secret": SERVICE_ACCOUNT_SECRET}
    store.get_secret.side_effect = lambda ctx, name: secrets[name]
    return store


@pytest.fixture
def provider(created_account: CreatedAccount) -> Mock:
    """Identity provider where every call succeeds and the handle is free."""
    provider = Mock()
    provider.create_invite_code.return_value = InviteCode(code="invite-123")
    provider.create_session.return_value = Session(
        access_token="session-jwt", identity="did:plc:util", handle="util" + SUFFIX
    )
    provider.check_user_exists.return_value = False
    provider.register_user.return_value = created_account
    return provider


@pytest.fixture
def repository() -> Mock:
    repo = Mock()
    repo.email_exists.return_value = False
    return repo


@pytest.fixture
def email_sender() -> Mock:
    return Mock()


@pytest.fixture
def orchestrator(provider: Mock, secret_store: Mock) -> IdentityOrchestrator:
    gateway = CredentialGateway(
        store=secret_store,
        admin_secret_name="admin-secret",
        service_account_secret_name="util-secret",
    )
    return IdentityOrchestrator(provider=provider, credentials=gateway)


@pytest.fixture
def service(
    validator: RegistrationValidator,
    repository: Mock,
    orchestrator: IdentityOrchestrator,
    email_sender: Mock,
) -> RegistrationService:
    return RegistrationService(
        validator=validator,
        repository=repository,
        orchestrator=orchestrator,
        email_sender=email_sender,
    )
