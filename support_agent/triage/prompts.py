"""
Triage Prompts

The system prompt lives in the brain (SOUL.md + support-triage skill);
this module only shapes the per-thread user prompt.
"""

from support_agent.shared.models.thread import SupportThread


def build_triage_prompt(thread: SupportThread, memory_summary: str) -> str:
    """User prompt: recent memory followed by the full thread."""
    return (
        f"## Memory summary (today / yesterday)\n{memory_summary}\n\n"
        f"## Thread (subject: {thread.subject})\n\n{thread.to_transcript()}"
    )
