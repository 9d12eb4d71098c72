"""
Custom Exceptions for the Support Agent

All exceptions follow the pattern of specific, actionable errors
with context needed for debugging and logging.
"""

from typing import Any


class SupportAgentError(Exception):
    """Base exception for the support agent."""

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class LedgerError(SupportAgentError):
    """Ledger (DynamoDB) operation failed."""

    def __init__(
        self,
        operation: str,
        table_name: str,
        error_message: str | None = None,
    ) -> None:
        self.operation = operation  # "get", "upsert", "create_table"
        self.table_name = table_name
        super().__init__(
            f"Ledger {operation} failed on table '{table_name}': {error_message or 'Unknown error'}",
            operation=operation,
            table_name=table_name,
            error_message=error_message,
        )


class InboxError(SupportAgentError):
    """Inbox provider call failed."""

    def __init__(
        self,
        operation: str,
        thread_id: str | None = None,
        error_message: str | None = None,
    ) -> None:
        self.operation = operation
        self.thread_id = thread_id
        super().__init__(
            f"Inbox {operation} failed{f' for thread {thread_id}' if thread_id else ''}: "
            f"{error_message or 'Unknown error'}",
            operation=operation,
            thread_id=thread_id,
            error_message=error_message,
        )


class AlertDeliveryError(SupportAgentError):
    """Transient alert-channel failure (rate limit, server error, network)."""

    def __init__(self, status_code: int | None, error_message: str | None = None) -> None:
        self.status_code = status_code
        super().__init__(
            f"Alert delivery failed: {error_message or 'Unknown error'}",
            status_code=status_code,
        )


class BrainAssetError(SupportAgentError):
    """A required brain asset (prompt or skill file) is missing."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Required brain asset not found: {path}", path=path)


class ConfigurationError(SupportAgentError):
    """Unrecoverable misconfiguration detected at startup."""


class TickCancelledError(SupportAgentError):
    """The tick deadline passed; in-flight work must stop before its next side effect."""

    def __init__(self, stage: str) -> None:
        self.stage = stage
        super().__init__(f"Tick cancelled at stage '{stage}'", stage=stage)
