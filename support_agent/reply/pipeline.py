"""
Reply Pipeline

Generates a customer reply from triage output, knowledge-base text and
optional order data. The model may refuse by saying so; any refusal,
failure or empty answer becomes an escalation rather than a send.
"""

import re

import structlog

from support_agent.shared.exceptions import BrainAssetError
from support_agent.shared.llm import LLMClient, LLMInvocationError, strip_code_fence
from support_agent.shared.models.thread import SupportThread
from support_agent.shared.tools.brain import REPLY_SKILL, Brain
from support_agent.reply.models import ReplyDraft
from support_agent.reply.prompts import build_reply_prompt
from support_agent.triage.models import ClassificationResult

log = structlog.get_logger()

_THINKING_BLOCK = re.compile(r"<thinking>.*?</thinking>", re.IGNORECASE | re.DOTALL)

ESCALATION_PHRASES: tuple[re.Pattern[str], ...] = (
    re.compile(r"do not send", re.IGNORECASE),
    re.compile(r"trigger an escalation", re.IGNORECASE),
    re.compile(r"escalate instead", re.IGNORECASE),
    re.compile(r"\bescalate\b", re.IGNORECASE),
    re.compile(r"I am escalating", re.IGNORECASE),
)


def extract_reply_body(raw: str) -> ReplyDraft:
    """
    Turn raw generator output into a ReplyDraft.

    Drops ``<thinking>`` blocks, treats any escalation phrase as a refusal,
    and unwraps a single ``text``/``plain`` code fence.
    """
    text = _THINKING_BLOCK.sub("", raw.strip()).strip()

    for pattern in ESCALATION_PHRASES:
        if pattern.search(text):
            return ReplyDraft.escalation()

    text = strip_code_fence(text, languages=("text", "plain"))
    if not text:
        return ReplyDraft.escalation()
    return ReplyDraft(body=text, escalate=False)


class ReplyPipeline:
    """
    Model-backed reply generator.

    Args:
        llm: Client used for the model call
        brain: Source of the system prompt
    """

    def __init__(self, llm: LLMClient, brain: Brain):
        self._llm = llm
        self._brain = brain

    def generate(
        self,
        thread: SupportThread,
        classification: ClassificationResult,
        kb_content: str,
        order_context: str | None = None,
    ) -> ReplyDraft:
        """Draft a reply or ask to escalate. Never raises."""
        try:
            system_prompt = self._brain.system_prompt(REPLY_SKILL)
        except BrainAssetError as e:
            log.error("reply_skill_missing", thread_id=thread.id, error=str(e))
            return ReplyDraft.escalation()

        prompt = build_reply_prompt(thread, classification, kb_content, order_context)
        try:
            raw = self._llm.invoke_raw(prompt, system_prompt=system_prompt)
        except LLMInvocationError as e:
            log.error("reply_llm_failed", thread_id=thread.id, error=str(e))
            return ReplyDraft.escalation()

        draft = extract_reply_body(raw)
        log.info(
            "reply_generated",
            thread_id=thread.id,
            escalate=draft.escalate,
            body_chars=len(draft.body),
            with_order=bool(order_context),
        )
        return draft
