"""
DynamoDB repository adapter - Implements AccountRepository protocol via boto3.

Records live in a single table keyed by ``UserId`` (the account DID),
with a global secondary index on ``Email`` for duplicate checks.
"""

import json
import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from src.domain.context import RequestContext
from src.domain.exceptions import StorageError
from src.domain.models import AccountRecord

logger = logging.getLogger(__name__)

DEFAULT_TABLE_NAME = "Users"
DEFAULT_EMAIL_INDEX = "Email-index"


class DynamoDbAccountRepository:
    """
    Implements AccountRepository protocol via the low-level DynamoDB client.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Each call is bounded by the client's botocore Config timeouts and by
    the request context: the caller stops waiting once the request is
    cancelled or its deadline passes.
    """

    def __init__(
        self,
        client: Any,
        table_name: str = DEFAULT_TABLE_NAME,
        email_index: str = DEFAULT_EMAIL_INDEX,
    ) -> None:
        """
        Args:
            client: boto3 ``dynamodb`` client
            table_name: Accounts table
            email_index: GSI with ``Email`` as partition key
        """
        self._client = client
        self._table_name = table_name
        self._email_index = email_index

    @classmethod
    def from_region(
        cls,
        region: str | None,
        timeout: float,
        table_name: str = DEFAULT_TABLE_NAME,
        email_index: str = DEFAULT_EMAIL_INDEX,
    ) -> "DynamoDbAccountRepository":
        config = Config(connect_timeout=timeout, read_timeout=timeout, retries={"max_attempts": 1})
        client = boto3.client("dynamodb", region_name=region, config=config)
        return cls(client, table_name=table_name, email_index=email_index)

    def email_exists(self, ctx: RequestContext, email: str) -> bool:
        try:
            result = ctx.run(
                "email_exists",
                lambda: self._client.query(
                    TableName=self._table_name,
                    IndexName=self._email_index,
                    KeyConditionExpression="Email = :email",
                    ExpressionAttributeValues={":email": {"S": email}},
                    Limit=1,
                ),
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Error checking email existence: %s", exc)
            raise StorageError(f"failed to check email existence: {exc}") from exc

        return len(result.get("Items", [])) > 0

    def store_account(self, ctx: RequestContext, record: AccountRecord) -> None:
        item = _to_item(record)
        try:
            ctx.run(
                "store_account",
                lambda: self._client.put_item(TableName=self._table_name, Item=item),
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error(
                "Failed to store user email=%s handle=%s: %s", record.email, record.handle, exc
            )
            raise StorageError(f"failed to store user in DynamoDB: {exc}") from exc

        logger.info("User %s successfully stored in DynamoDB", record.handle)


def _to_item(record: AccountRecord) -> dict[str, dict[str, Any]]:
    return {
        "UserId": {"S": record.identity},
        "Email": {"S": record.email},
        "Handle": {"S": record.handle},
        "CreatedAt": {"S": record.created_at.isoformat()},
        "ModifiedAt": {"S": record.modified_at.isoformat()},
        "Status": {"S": record.status},
        "Verified": {"BOOL": record.verified},
        "Role": {"S": record.role},
        "DisplayName": {"S": record.display_name},
        "ProfilePicture": {"S": record.profile_picture},
        "ProfileBanner": {"S": record.profile_banner},
        "Theme": {"S": json.dumps(record.theme)},
        "PrimaryColor": {"S": record.primary_color},
        "SecondaryColor": {"S": record.secondary_color},
    }
