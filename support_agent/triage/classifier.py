"""
Triage Classifier

Asks the model to classify a thread and turns its JSON answer into a
ClassificationResult. Anything that goes wrong yields None, which the
switchboard treats exactly like an explicit "escalate".
"""

import json
import math
from typing import Any

import structlog

from support_agent.shared.actions import TriageAction
from support_agent.shared.exceptions import BrainAssetError
from support_agent.shared.llm import LLMClient, LLMInvocationError, strip_code_fence
from support_agent.shared.models.thread import SupportThread
from support_agent.shared.tools.brain import TRIAGE_SKILL, Brain
from support_agent.triage.models import ClassificationResult
from support_agent.triage.prompts import build_triage_prompt

log = structlog.get_logger()


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


def _str_list(value: Any) -> list[str]:
    return [str(v) for v in value] if isinstance(value, list) else []


def _confidence(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_classification(raw: str) -> ClassificationResult | None:
    """
    Parse model output into a ClassificationResult.

    Accepts a bare JSON object or one wrapped in a single ``json`` fence.
    Missing optional fields get defaults; an unknown action or malformed
    JSON returns None.
    """
    text = strip_code_fence(raw, languages=("json",))
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        log.warning("triage_json_parse_failed", error=str(e), raw_preview=raw[:300])
        return None

    if not isinstance(data, dict):
        log.warning("triage_json_not_object", raw_preview=raw[:300])
        return None

    action_value = data.get("action")
    try:
        action = TriageAction.from_string(str(action_value)) if action_value is not None else None
    except ValueError:
        action = None
    if action is None:
        log.warning("triage_invalid_action", action=action_value)
        return None

    category = data.get("category")
    sentiment = data.get("sentiment")
    reason = data.get("reason")

    return ClassificationResult(
        category="other" if category is None else str(category),
        action=action,
        target_files=_str_list(data.get("target_files")),
        extracted_order_number=_optional_str(data.get("extracted_order_number")),
        extracted_email=_optional_str(data.get("extracted_email")),
        requires_commerce_lookup=bool(data.get("requires_commerce_lookup")),
        confidence=_confidence(data.get("confidence")),
        sentiment="neutral" if sentiment is None else str(sentiment),
        reason="" if reason is None else str(reason),
        flags=_str_list(data.get("flags")),
        escalation_reason=_optional_str(data.get("escalation_reason")),
    )


class TriageClassifier:
    """
    Model-backed classifier.

    Args:
        llm: Client used for the model call
        brain: Source of the system prompt
    """

    def __init__(self, llm: LLMClient, brain: Brain):
        self._llm = llm
        self._brain = brain

    def classify(self, thread: SupportThread, memory_summary: str) -> ClassificationResult | None:
        """Classify the thread's latest message. Never raises."""
        try:
            system_prompt = self._brain.system_prompt(TRIAGE_SKILL)
        except BrainAssetError as e:
            log.error("triage_skill_missing", thread_id=thread.id, error=str(e))
            return None

        prompt = build_triage_prompt(thread, memory_summary)
        try:
            raw = self._llm.invoke_raw(prompt, system_prompt=system_prompt)
        except LLMInvocationError as e:
            log.error("triage_llm_failed", thread_id=thread.id, error=str(e))
            return None

        result = parse_classification(raw)
        if result is None:
            log.warning("triage_invalid_output_escalating", thread_id=thread.id)
            return None

        log.info(
            "triage_classified",
            thread_id=thread.id,
            action=result.action.value,
            category=result.category,
            confidence=result.confidence,
        )
        return result
