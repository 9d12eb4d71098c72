"""
Reply Package

Knowledge-base grounded reply generation.
"""

from support_agent.reply.models import ReplyDraft
from support_agent.reply.pipeline import ReplyPipeline, extract_reply_body

__all__ = [
    "ReplyDraft",
    "ReplyPipeline",
    "extract_reply_body",
]
