"""
AWS Secrets Manager adapter - Implements SecretStore protocol via boto3.
"""

import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from src.domain.context import RequestContext
from src.domain.exceptions import CredentialRetrievalError

logger = logging.getLogger(__name__)

VERSION_STAGE = "AWSCURRENT"


class SecretsManagerStore:
    """
    Implements SecretStore protocol via the Secrets Manager API.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, client: Any) -> None:
        """
        Args:
            client: boto3 ``secretsmanager`` client
        """
        self._client = client

    @classmethod
    def from_region(cls, region: str | None, timeout: float) -> "SecretsManagerStore":
        config = Config(connect_timeout=timeout, read_timeout=timeout, retries={"max_attempts": 1})
        return cls(boto3.client("secretsmanager", region_name=region, config=config))

    def get_secret(self, ctx: RequestContext, secret_name: str) -> str:
        if not secret_name:
            raise CredentialRetrievalError("secret name is empty")

        try:
            result = ctx.run(
                "get_secret",
                lambda: self._client.get_secret_value(
                    SecretId=secret_name, VersionStage=VERSION_STAGE
                ),
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to retrieve secret %s: %s", secret_name, exc)
            raise CredentialRetrievalError(
                f"error retrieving credentials from Secrets Manager ({secret_name})"
            ) from exc

        secret = result.get("SecretString")
        if secret is None:
            logger.error("Secret %s has no SecretString", secret_name)
            raise CredentialRetrievalError(f"secret string is nil for {secret_name}")
        return secret
