"""
Credential gateway - Fetch secrets by name and decode them into typed values.

Credentials are fetched fresh for every request and never persisted.
Secret contents are never logged.
"""

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from .context import RequestContext
from .exceptions import CredentialFormatError, CredentialRetrievalError
from .models import AdminCredentials, ServiceAccountCredentials
from .ports import SecretStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _required(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise CredentialFormatError(f"missing or empty credential field: {key}")
    return value


def parse_admin_credentials(data: Mapping[str, Any]) -> AdminCredentials:
    return AdminCredentials(
        username=_required(data, "PDS_ADMIN_USERNAME"),
        password=_required(data, "PDS_ADMIN_PASSWORD"),
        jwt_secret=_required(data, "PDS_JWT_SECRET"),
    )


def parse_service_account_credentials(data: Mapping[str, Any]) -> ServiceAccountCredentials:
    return ServiceAccountCredentials(
        username=_required(data, "username"),
        password=_required(data, "password"),
        identity=_required(data, "did"),
    )


def retrieve_credentials(
    ctx: RequestContext,
    store: SecretStore,
    secret_name: str,
    parse: Callable[[Mapping[str, Any]], T],
) -> T:
    """
    Fetch a JSON secret and decode it with ``parse``.

    Args:
        ctx: Request context (checked before the store is called)
        store: Secret store adapter
        secret_name: Logical name of the secret
        parse: Converts the decoded JSON object into the target type

    Returns:
        The decoded credentials

    Raises:
        CredentialRetrievalError: Store failed or returned nothing
        CredentialFormatError: Content is not a JSON object of the expected shape
    """
    ctx.check("retrieve_credentials")
    try:
        raw = store.get_secret(ctx, secret_name)
    except CredentialRetrievalError:
        logger.error("Failed to retrieve credentials from secret %s", secret_name)
        raise

    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        logger.error("Secret %s is not valid JSON", secret_name)
        raise CredentialFormatError(f"invalid credentials format in {secret_name}") from exc

    if not isinstance(data, dict):
        logger.error("Secret %s is not a JSON object", secret_name)
        raise CredentialFormatError(f"invalid credentials format in {secret_name}")

    credentials = parse(data)
    logger.info("Retrieved %s from %s", type(credentials).__name__, secret_name)
    return credentials


@dataclass
class CredentialGateway:
    """Typed access to the admin and service-account secrets."""

    store: SecretStore
    admin_secret_name: str
    service_account_secret_name: str

    def admin_credentials(self, ctx: RequestContext) -> AdminCredentials:
        return retrieve_credentials(
            ctx, self.store, self.admin_secret_name, parse_admin_credentials
        )

    def service_account_credentials(self, ctx: RequestContext) -> ServiceAccountCredentials:
        return retrieve_credentials(
            ctx, self.store, self.service_account_secret_name, parse_service_account_credentials
        )
