# Shared Tools
"""
Adapters for the systems the agent talks to: the ledger table, the
inbox, the store, the alert chat, and the local brain/memory files.
"""

from support_agent.shared.tools.brain import Brain
from support_agent.shared.tools.gmail import GmailInbox, build_gmail_service
from support_agent.shared.tools.ledger import Ledger
from support_agent.shared.tools.memory import MemoryLog
from support_agent.shared.tools.shopify import OrderLookupResult, ShopifyClient
from support_agent.shared.tools.telegram import TelegramAlerter, escape_markdown

__all__ = [
    "Brain",
    "GmailInbox",
    "Ledger",
    "MemoryLog",
    "OrderLookupResult",
    "ShopifyClient",
    "TelegramAlerter",
    "build_gmail_service",
    "escape_markdown",
]
