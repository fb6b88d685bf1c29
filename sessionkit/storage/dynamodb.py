"""DynamoDB session storage backend.

This module provides the DynamoDBSessionStorage class for persisting session
records in a DynamoDB table with session_id as partition key. The expires_at
attribute holds epoch seconds and can be registered as the table's TTL
attribute so DynamoDB purges stale sessions on its own.
"""

import logging
import os
import time
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from sessionkit.exceptions import BackendFailure
from sessionkit.logger import fingerprint
from sessionkit.models.session import SessionRecord
from sessionkit.storage.base import SessionStorage

logger = logging.getLogger(__name__)


class DynamoDBSessionStorage(SessionStorage):
    """Session storage backed by a DynamoDB table.

    Attributes:
        table_name: Name of the DynamoDB table
        region: AWS region for DynamoDB
    """

    def __init__(
        self,
        table_name: Optional[str] = None,
        region: Optional[str] = None,
        max_lifetime: int = 1440,
        client: Optional[Any] = None,
    ):
        """Initialize the DynamoDB session storage.

        Args:
            table_name: DynamoDB table name (defaults to SESSION_TABLE_NAME env var)
            region: AWS region (defaults to AWS_REGION env var)
            max_lifetime: Seconds a record stays valid after its last write
            client: Preconfigured boto3 DynamoDB client (optional)
        """
        super().__init__(max_lifetime)
        self.table_name = table_name or os.environ.get(
            "SESSION_TABLE_NAME", "sessionkit-sessions"
        )
        self.region = region or os.environ.get("AWS_REGION", "us-east-1")

        if client is None:
            # Configure boto3 client with retry settings
            boto_config = Config(
                region_name=self.region,
                retries={"max_attempts": 3, "mode": "adaptive"},
            )
            client = boto3.client("dynamodb", config=boto_config)

        self._client = client

    def _key(self, session_id: str) -> Dict[str, Any]:
        return {"session_id": {"S": session_id}}

    def _fail(self, operation: str, session_id: str, error: Exception) -> BackendFailure:
        """Log a storage error and wrap it in BackendFailure."""
        if isinstance(error, ClientError):
            logger.error(
                f"Failed to {operation} session (DynamoDB error)",
                extra={
                    "session_id": fingerprint(session_id),
                    "table_name": self.table_name,
                    "error_code": error.response.get("Error", {}).get("Code"),
                    "error_message": str(error),
                },
            )
        else:
            logger.error(
                f"Failed to {operation} session (unexpected error)",
                extra={
                    "session_id": fingerprint(session_id),
                    "table_name": self.table_name,
                    "error": str(error),
                },
            )
        return BackendFailure(operation, str(error), session_id)

    def load(self, session_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self._client.get_item(
                TableName=self.table_name,
                Key=self._key(session_id),
                ConsistentRead=True,
            )
            item = response.get("Item")
            if not item:
                return None
            record = SessionRecord.from_dynamodb_item(item)
        except (ClientError, BotoCoreError, TypeError, ValueError) as e:
            raise self._fail("load", session_id, e)

        if record.is_expired():
            # TTL deletion in DynamoDB is lazy, so stale items can still be read
            return None
        return record.attributes

    def save(self, session_id: str, attributes: Dict[str, Any]) -> None:
        try:
            record = SessionRecord.create(session_id, attributes, self.max_lifetime)
            self._client.put_item(
                TableName=self.table_name,
                Item=record.to_dynamodb_item(),
            )
        except (ClientError, BotoCoreError) as e:
            raise self._fail("save", session_id, e)

        logger.debug(
            "Stored session record",
            extra={"session_id": fingerprint(session_id)},
        )

    def delete(self, session_id: str) -> None:
        try:
            self._client.delete_item(
                TableName=self.table_name,
                Key=self._key(session_id),
            )
        except (ClientError, BotoCoreError) as e:
            raise self._fail("delete", session_id, e)

    def regenerate(
        self, old_id: str, new_id: str, attributes: Dict[str, Any]
    ) -> None:
        """Write the new record and delete the old one in a single transaction."""
        try:
            record = SessionRecord.create(new_id, attributes, self.max_lifetime)
            self._client.transact_write_items(
                TransactItems=[
                    {
                        "Put": {
                            "TableName": self.table_name,
                            "Item": record.to_dynamodb_item(),
                        }
                    },
                    {
                        "Delete": {
                            "TableName": self.table_name,
                            "Key": self._key(old_id),
                        }
                    },
                ]
            )
        except (ClientError, BotoCoreError) as e:
            raise self._fail("regenerate", old_id, e)

    def gc(self, max_lifetime: int) -> int:
        now = time.time()
        cutoff = now - max_lifetime
        removed = 0
        try:
            paginator = self._client.get_paginator("scan")
            pages = paginator.paginate(
                TableName=self.table_name,
                ProjectionExpression="session_id",
                FilterExpression="expires_at < :now OR last_access < :cutoff",
                ExpressionAttributeValues={
                    ":now": {"N": str(int(now))},
                    ":cutoff": {"N": str(cutoff)},
                },
            )
            for page in pages:
                for item in page.get("Items", []):
                    self._client.delete_item(
                        TableName=self.table_name,
                        Key=self._key(item["session_id"]["S"]),
                    )
                    removed += 1
        except (ClientError, BotoCoreError) as e:
            raise self._fail("gc", "", e)

        logger.info(
            "Session garbage collection finished",
            extra={"removed": removed, "table_name": self.table_name},
        )
        return removed
