"""
AWS Lambda entry point - One registration per invocation.

Accepted event shapes:

- Direct invocation: the event is the request ``{"handle", "email", "password"}``
- API Gateway proxy: ``event["body"]`` is a JSON string holding either the
  plain request or a GraphQL envelope
  ``{"operationName": "CreateUser", "variables": {"input": {...}}}``

Bodies are validated against RegisterRequest before anything reaches the
domain; unknown fields and non-string values are rejected with 400.
"""

import base64
import json
import logging
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Any

from psycopg_pool import ConnectionPool
from pydantic import ValidationError

from src.adapters.atproto.client import AtprotoClient
from src.adapters.repository.postgres import PostgresAccountRepository
from src.adapters.secrets.aws import SecretsManagerStore
from src.api.dependencies import build_dynamodb_repository, build_registration_service
from src.api.errors import error_body, status_for
from src.api.models import RegisterRequest, RegisterResponse
from src.config.settings import Settings, configure_logging, get_settings
from src.domain.context import RequestContext
from src.domain.exceptions import RegistrationError
from src.domain.ports import AccountRepository
from src.domain.registration import RegistrationService

logger = logging.getLogger(__name__)

CREATE_USER_OPERATION = "CreateUser"
# Leave time to build and return the response after the last remote call
DEADLINE_MARGIN_SECONDS = 1.0

ServiceScope = Callable[[Settings], AbstractContextManager[RegistrationService]]


class BadRequest(Exception):
    """Event could not be turned into a RegisterRequest."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


# Reused across warm invocations of the same container
_repository: AccountRepository | None = None
_secret_store: SecretsManagerStore | None = None


def _shared_adapters(settings: Settings) -> tuple[AccountRepository, SecretsManagerStore]:
    global _repository, _secret_store
    if _repository is None:
        if settings.storage_backend == "dynamodb":
            _repository = build_dynamodb_repository(settings)
        else:
            pool = ConnectionPool(
                conninfo=settings.database_url,
                min_size=settings.pool_min_size,
                max_size=settings.pool_max_size,
            )
            _repository = PostgresAccountRepository(pool, settings.storage_timeout_seconds)
    if _secret_store is None:
        _secret_store = SecretsManagerStore.from_region(
            settings.aws_region, settings.storage_timeout_seconds
        )
    return _repository, _secret_store


@contextmanager
def service_scope(settings: Settings) -> Iterator[RegistrationService]:
    """Registration service whose HTTP client lives for one invocation."""
    settings.require()
    repository, secret_store = _shared_adapters(settings)
    with AtprotoClient(settings.atproto_base_url, timeout=settings.http_timeout_seconds) as client:
        yield build_registration_service(settings, repository, secret_store, client)


def _response(status_code: int, body: dict[str, Any]) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def _load_body(event: dict[str, Any]) -> Any:
    if "body" not in event:
        return event

    raw = event.get("body") or ""
    if not isinstance(raw, str):
        raise BadRequest(400, "Invalid request payload")
    try:
        if event.get("isBase64Encoded"):
            raw = base64.b64decode(raw, validate=True).decode("utf-8")
        return json.loads(raw)
    except (ValueError, TypeError) as exc:
        raise BadRequest(400, "Invalid request payload") from exc


def parse_event(event: dict[str, Any]) -> RegisterRequest:
    """
    Extract and strictly validate the registration request.

    Raises:
        BadRequest: 400 for malformed payloads, 501 for unsupported
            GraphQL operations
    """
    payload = _load_body(event)
    if not isinstance(payload, dict):
        raise BadRequest(400, "Invalid request payload")

    if "operationName" in payload or "query" in payload:
        operation = payload.get("operationName")
        if operation != CREATE_USER_OPERATION:
            logger.warning("Unsupported GraphQL operation: %s", operation)
            raise BadRequest(501, f"Unsupported operation: {operation}")
        variables = payload.get("variables") or {}
        payload = variables.get("input") if isinstance(variables, dict) else None
        if not isinstance(payload, dict):
            logger.error("Invalid GraphQL input format: expected an object")
            raise BadRequest(400, "Invalid input format")

    try:
        return RegisterRequest.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Rejected malformed registration payload: %s", exc.errors())
        raise BadRequest(400, "Invalid input data") from exc


def _request_context(context: Any, settings: Settings) -> RequestContext:
    remaining_ms = getattr(context, "get_remaining_time_in_millis", None)
    if remaining_ms is None:
        return RequestContext.with_timeout(settings.request_timeout_seconds)
    return RequestContext.with_timeout(max(0.0, remaining_ms() / 1000 - DEADLINE_MARGIN_SECONDS))


def handle_event(
    event: dict[str, Any],
    context: Any,
    scope: ServiceScope = service_scope,
) -> dict[str, Any]:
    """Process one registration event and return an API Gateway proxy response."""
    settings = get_settings()

    try:
        request = parse_event(event)
    except BadRequest as exc:
        return _response(exc.status_code, {"detail": str(exc), "kind": "BadRequest"})

    logger.info("Processing create account request for user: %s", request.handle)
    ctx = _request_context(context, settings)
    try:
        with scope(settings) as service:
            outcome = service.register(ctx, request.to_domain())
    except RegistrationError as exc:
        return _response(status_for(exc), error_body(exc))

    body = RegisterResponse.from_account(outcome.account).model_dump(by_alias=True)
    return _response(201, body)


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Lambda entry point."""
    configure_logging(get_settings().log_level)
    return handle_event(event, context)
