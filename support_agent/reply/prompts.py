"""
Reply Generator Prompts

User prompt for drafting one customer reply. The system prompt comes
from the brain (SOUL.md + reply-generator skill).
"""

from support_agent.shared.models.thread import SupportThread
from support_agent.triage.models import ClassificationResult

REPLY_INSTRUCTIONS = (
    "You are generating a single customer reply. Output ONLY the raw email "
    "body (plain text), or state ESCALATE and do not send."
)

REPLY_CLOSING = (
    "Generate the reply body now. No explanations; just the email text the "
    "customer will see, or the word ESCALATE if you must escalate."
)


def build_reply_prompt(
    thread: SupportThread,
    classification: ClassificationResult,
    kb_content: str,
    order_context: str | None = None,
) -> str:
    """Assemble triage output, policy text, order data and the thread."""
    order_block = ""
    if order_context and order_context.strip():
        order_block = (
            "\n## Shopify order data (use for tracking, status, line items)\n"
            f"{order_context}\n"
        )

    return f"""{REPLY_INSTRUCTIONS}

## Triage JSON
{classification.to_prompt_json()}

## Knowledge base content (use exact policy quotes where relevant)
{kb_content}
{order_block}
## Full thread (subject: {thread.subject})
{thread.to_transcript()}

{REPLY_CLOSING}"""
