"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting domain services
and infrastructure adapters into routes, plus the plain builders the
Lambda entry point shares.
"""

from collections.abc import Iterator
from functools import lru_cache

from fastapi import Depends, Request

from src.adapters.atproto.client import AtprotoClient
from src.adapters.repository.dynamodb import DynamoDbAccountRepository
from src.adapters.repository.postgres import PostgresAccountRepository
from src.adapters.secrets.aws import SecretsManagerStore
from src.adapters.smtp.console import ConsoleEmailSender
from src.config.settings import Settings, get_settings
from src.domain.credentials import CredentialGateway
from src.domain.orchestrator import IdentityOrchestrator
from src.domain.ports import AccountRepository, SecretStore
from src.domain.registration import RegistrationService
from src.domain.validation import RegistrationValidator, load_blocked_handles

# Module-level singleton - ConsoleEmailSender is stateless
_email_sender = ConsoleEmailSender()


@lru_cache
def get_validator(suffix: str) -> RegistrationValidator:
    """Validator with the blocklist loaded once per process."""
    return RegistrationValidator(blocked_handles=load_blocked_handles(), suffix=suffix)


def build_registration_service(
    settings: Settings,
    repository: AccountRepository,
    secret_store: SecretStore,
    atproto_client: AtprotoClient,
) -> RegistrationService:
    """Wire the domain service from already-built adapters."""
    settings.require()
    credentials = CredentialGateway(
        store=secret_store,
        admin_secret_name=settings.pds_admin_secret_name,
        service_account_secret_name=settings.pds_util_account_secret_name,
    )
    return RegistrationService(
        validator=get_validator(settings.handle_suffix),
        repository=repository,
        orchestrator=IdentityOrchestrator(provider=atproto_client, credentials=credentials),
        email_sender=_email_sender,
    )


def build_dynamodb_repository(settings: Settings) -> DynamoDbAccountRepository:
    return DynamoDbAccountRepository.from_region(
        settings.aws_region,
        settings.storage_timeout_seconds,
        table_name=settings.users_table,
        email_index=settings.email_index,
    )


def get_repository(request: Request) -> AccountRepository:
    """
    Create the repository for the configured backend.

    Postgres uses the pool created during app lifespan startup; DynamoDB
    uses the client stored in app.state.
    """
    settings = get_settings()
    if settings.storage_backend == "dynamodb":
        return request.app.state.dynamodb_repository
    return PostgresAccountRepository(request.app.state.pool, settings.storage_timeout_seconds)


def get_secret_store(request: Request) -> SecretStore:
    return request.app.state.secret_store


def get_atproto_client() -> Iterator[AtprotoClient]:
    """Per-request HTTP client, closed when the request finishes."""
    settings = get_settings()
    settings.require()
    with AtprotoClient(settings.atproto_base_url, timeout=settings.http_timeout_seconds) as client:
        yield client


def get_registration_service(
    repository: AccountRepository = Depends(get_repository),
    secret_store: SecretStore = Depends(get_secret_store),
    atproto_client: AtprotoClient = Depends(get_atproto_client),
) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires together the validator, repository, credential gateway,
    identity-protocol client and email sender.
    """
    return build_registration_service(get_settings(), repository, secret_store, atproto_client)
