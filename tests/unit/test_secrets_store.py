"""
Unit tests for SecretsManagerStore adapter.

Uses a mocked boto3 client; verifies the request shape and error wrapping.
"""

import threading
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from src.adapters.secrets.aws import VERSION_STAGE, SecretsManagerStore
from src.domain.context import RequestContext
from src.domain.exceptions import CredentialRetrievalError, DeadlineExceeded


def client_error(code: str = "ResourceNotFoundException") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "nope"}}, "GetSecretValue")


class TestGetSecret:
    """Tests for get_secret."""

    def test_returns_secret_string(self, ctx: RequestContext) -> None:
        client = Mock()
        client.get_secret_value.return_value = {"SecretString": '{"a": "b"}'}

        assert SecretsManagerStore(client).get_secret(ctx, "pds-admin") == '{"a": "b"}'
        client.get_secret_value.assert_called_once_with(
            SecretId="pds-admin", VersionStage=VERSION_STAGE
        )

    def test_current_version_requested(self) -> None:
        assert VERSION_STAGE == "AWSCURRENT"

    def test_empty_name_rejected_without_call(self, ctx: RequestContext) -> None:
        client = Mock()

        with pytest.raises(CredentialRetrievalError):
            SecretsManagerStore(client).get_secret(ctx, "")
        client.get_secret_value.assert_not_called()

    @pytest.mark.parametrize(
        "error",
        [client_error(), client_error("AccessDeniedException"),
         EndpointConnectionError(endpoint_url="https://secretsmanager")],
    )
    def test_service_errors_wrapped(self, ctx: RequestContext, error: Exception) -> None:
        client = Mock()
        client.get_secret_value.side_effect = error

        with pytest.raises(CredentialRetrievalError) as exc_info:
            SecretsManagerStore(client).get_secret(ctx, "pds-admin")

        assert "pds-admin" in str(exc_info.value)
        assert exc_info.value.__cause__ is error

    def test_missing_secret_string_rejected(self, ctx: RequestContext) -> None:
        """Binary-only secrets are not supported."""
        client = Mock()
        client.get_secret_value.return_value = {"SecretBinary": b"xx"}

        with pytest.raises(CredentialRetrievalError):
            SecretsManagerStore(client).get_secret(ctx, "pds-admin")

    def test_expired_context_skips_call(self) -> None:
        client = Mock()

        with pytest.raises(DeadlineExceeded):
            SecretsManagerStore(client).get_secret(RequestContext.with_timeout(0), "pds-admin")
        client.get_secret_value.assert_not_called()

    def test_deadline_bounds_slow_call(self) -> None:
        release = threading.Event()
        client = Mock()
        client.get_secret_value.side_effect = lambda **kwargs: release.wait(5) or {}

        try:
            with pytest.raises(DeadlineExceeded, match="deadline exceeded during get_secret"):
                SecretsManagerStore(client).get_secret(RequestContext.with_timeout(0.1), "pds-admin")
        finally:
            release.set()
