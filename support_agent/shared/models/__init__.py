"""
Shared Pydantic models.
"""

from support_agent.shared.models.ledger import ProcessedRecord, normalize_message_id
from support_agent.shared.models.thread import SupportThread, ThreadMessage

__all__ = [
    "ProcessedRecord",
    "SupportThread",
    "ThreadMessage",
    "normalize_message_id",
]
