# Shared Infrastructure for the Support Agent
"""
Shared infrastructure used by every stage of message processing.

This package provides:
- Action vocabulary (TriageAction, OutcomeAction)
- Pydantic models for threads and ledger records
- Adapters for DynamoDB, Gmail, Shopify, Telegram and the brain directory
- LLM infrastructure for Bedrock Claude integration
- Configuration management
- Custom exceptions
"""

from support_agent.shared.actions import OutcomeAction, TriageAction
from support_agent.shared.cancellation import CancelToken
from support_agent.shared.config import Settings, TenantConfig, get_settings
from support_agent.shared.exceptions import (
    AlertDeliveryError,
    BrainAssetError,
    ConfigurationError,
    InboxError,
    LedgerError,
    SupportAgentError,
    TickCancelledError,
)

__all__ = [
    "AlertDeliveryError",
    "BrainAssetError",
    "CancelToken",
    "ConfigurationError",
    "InboxError",
    "LedgerError",
    "OutcomeAction",
    "Settings",
    "SupportAgentError",
    "TenantConfig",
    "TickCancelledError",
    "TriageAction",
    "get_settings",
]
