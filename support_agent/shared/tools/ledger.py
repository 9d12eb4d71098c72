"""
Processed-Message Ledger

Durable record of which inbound messages have reached a terminal action.
Keyed on (tenant, normalized Message-ID); writes are idempotent upserts
so a retried tick cannot create a second record for the same message.
"""

from datetime import datetime, timezone
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
import structlog

from support_agent.shared.actions import OutcomeAction
from support_agent.shared.config import Settings, get_settings
from support_agent.shared.exceptions import LedgerError
from support_agent.shared.models.ledger import ProcessedRecord, normalize_message_id

log = structlog.get_logger()


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Ledger:
    """DynamoDB-backed processed-message ledger."""

    def __init__(self, settings: Settings | None = None, table: Any = None):
        self._settings = settings or get_settings()
        self._table = table

    @property
    def table_name(self) -> str:
        return self._settings.ledger_table_name

    def _get_table(self):
        """Get DynamoDB table resource."""
        if self._table is None:
            dynamodb = boto3.resource("dynamodb", **self._settings.dynamodb_config)
            self._table = dynamodb.Table(self.table_name)
        return self._table

    def ensure_table(self) -> None:
        """
        Create the ledger table if it does not exist.

        Intended for local development against DynamoDB Local; production
        tables are provisioned outside the process.

        Raises:
            LedgerError: On DynamoDB operation failure
        """
        client = boto3.client("dynamodb", **self._settings.dynamodb_config)
        try:
            client.create_table(
                TableName=self.table_name,
                KeySchema=[
                    {"AttributeName": "PK", "KeyType": "HASH"},
                    {"AttributeName": "SK", "KeyType": "RANGE"},
                ],
                AttributeDefinitions=[
                    {"AttributeName": "PK", "AttributeType": "S"},
                    {"AttributeName": "SK", "AttributeType": "S"},
                ],
                BillingMode="PAY_PER_REQUEST",
            )
            client.get_waiter("table_exists").wait(TableName=self.table_name)
            log.info("ledger_table_created", table_name=self.table_name)
        except ClientError as e:
            if e.response["Error"]["Code"] == "ResourceInUseException":
                log.debug("ledger_table_exists", table_name=self.table_name)
                return
            raise LedgerError(
                operation="create_table",
                table_name=self.table_name,
                error_message=str(e),
            ) from e

    def has_processed(self, tenant_id: str, message_id: str | None) -> bool:
        """
        Check whether a message already reached a terminal action.

        Never raises. A storage error is logged and reported as "not
        processed": handling the message again is safer than dropping it.
        """
        normalized = normalize_message_id(message_id)
        if not tenant_id or not normalized:
            return False

        try:
            response = self._get_table().get_item(
                Key=ProcessedRecord.key_for(tenant_id, normalized),
                ProjectionExpression="PK",
                ConsistentRead=True,
            )
        except (ClientError, BotoCoreError) as e:
            log.error(
                "ledger_lookup_failed",
                tenant_id=tenant_id,
                message_id=normalized,
                error=str(e),
            )
            return False

        return "Item" in response

    def mark_processed(
        self,
        tenant_id: str,
        message_id: str | None,
        thread_id: str,
        action: OutcomeAction | str,
        reason: str | None = None,
        *,
        correlation_id: str | None = None,
        tags: list[str] | None = None,
    ) -> None:
        """
        Record the terminal action for a message.

        A repeated call for the same (tenant, message id) updates the record
        in place; ``first_processed_at`` keeps its original value.

        Raises:
            LedgerError: On DynamoDB operation failure
        """
        normalized = normalize_message_id(message_id)
        if not tenant_id or not normalized or not thread_id:
            log.warning(
                "ledger_write_skipped",
                tenant_id=tenant_id,
                message_id=normalized,
                thread_id=thread_id,
            )
            return

        if isinstance(action, str):
            action = OutcomeAction.from_string(action)

        now = _utc_now_iso()

        try:
            self._get_table().update_item(
                Key=ProcessedRecord.key_for(tenant_id, normalized),
                UpdateExpression=(
                    "SET tenant_id = :tenant_id, "
                    "message_id = :message_id, "
                    "thread_id = :thread_id, "
                    "#action = :action, "
                    "escalation_reason = :reason, "
                    "processed_at = :now, "
                    "first_processed_at = if_not_exists(first_processed_at, :now), "
                    "correlation_id = :correlation_id, "
                    "tags = :tags"
                ),
                ExpressionAttributeNames={"#action": "action"},
                ExpressionAttributeValues={
                    ":tenant_id": tenant_id,
                    ":message_id": normalized,
                    ":thread_id": thread_id,
                    ":action": action.value,
                    ":reason": reason,
                    ":now": now,
                    ":correlation_id": correlation_id,
                    ":tags": list(tags or []),
                },
            )
        except (ClientError, BotoCoreError) as e:
            log.error(
                "ledger_write_failed",
                tenant_id=tenant_id,
                message_id=normalized,
                thread_id=thread_id,
                error=str(e),
            )
            raise LedgerError(
                operation="upsert",
                table_name=self.table_name,
                error_message=str(e),
            ) from e

        log.info(
            "ledger_marked_processed",
            tenant_id=tenant_id,
            message_id=normalized,
            thread_id=thread_id,
            action=action.value,
            reason=reason,
            correlation_id=correlation_id,
        )

    def get_record(self, tenant_id: str, message_id: str | None) -> ProcessedRecord | None:
        """
        Load the stored record for a message.

        Raises:
            LedgerError: On DynamoDB operation failure
        """
        normalized = normalize_message_id(message_id)
        if not tenant_id or not normalized:
            return None

        try:
            response = self._get_table().get_item(
                Key=ProcessedRecord.key_for(tenant_id, normalized),
                ConsistentRead=True,
            )
        except (ClientError, BotoCoreError) as e:
            raise LedgerError(
                operation="get",
                table_name=self.table_name,
                error_message=str(e),
            ) from e

        item = response.get("Item")
        return ProcessedRecord.from_dynamodb(item) if item else None
