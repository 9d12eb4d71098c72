"""
Ledger Models

Pydantic model for processed-message records in the ledger table.

PK: TENANT#<tenant_id>
SK: MSG#<normalized message id>
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from support_agent.shared.actions import OutcomeAction


def normalize_message_id(message_id: str | None) -> str:
    """
    Canonical ledger form of a Message-ID.

    Trims whitespace and one pair of surrounding angle brackets, so
    ``<abc@x>`` and ``abc@x`` share a key.
    """
    if not message_id:
        return ""
    value = message_id.strip()
    if value.startswith("<") and value.endswith(">"):
        value = value[1:-1].strip()
    return value


class ProcessedRecord(BaseModel):
    """Terminal decision taken for one inbound message."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str = Field(..., description="Tenant partition (store hostname or 'default')")
    message_id: str = Field(..., description="Normalized Message-ID")
    thread_id: str = Field(..., description="Inbox thread id")
    action: OutcomeAction = Field(..., description="Terminal action")
    escalation_reason: str | None = Field(default=None, description="Why it escalated, if it did")
    processed_at: str = Field(..., description="ISO-8601 UTC time of the latest write")
    first_processed_at: str = Field(..., description="ISO-8601 UTC time of the first write")
    correlation_id: str | None = Field(default=None, description="Test correlation id, if any")
    tags: list[str] = Field(default_factory=list, description="Free-form tags")

    @staticmethod
    def key_for(tenant_id: str, message_id: str) -> dict[str, str]:
        """Primary key for a (tenant, message id) pair."""
        return {
            "PK": f"TENANT#{tenant_id}",
            "SK": f"MSG#{normalize_message_id(message_id)}",
        }

    @classmethod
    def from_dynamodb(cls, item: dict[str, Any]) -> "ProcessedRecord":
        """Parse from DynamoDB item."""
        return cls(
            tenant_id=item.get("tenant_id", ""),
            message_id=item.get("message_id", ""),
            thread_id=item.get("thread_id", ""),
            action=OutcomeAction(item.get("action", OutcomeAction.ESCALATED.value)),
            escalation_reason=item.get("escalation_reason"),
            processed_at=item.get("processed_at", ""),
            first_processed_at=item.get("first_processed_at", item.get("processed_at", "")),
            correlation_id=item.get("correlation_id"),
            tags=list(item.get("tags") or []),
        )
