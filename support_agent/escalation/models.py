"""
Escalation Models

Two kinds of human hand-off share one terminal:

- system: the agent itself is misconfigured or broke (missing store URL,
  unexpected exception). The draft is an internal note.
- customer: the message needs human judgement. The draft is a suggested
  reply when one exists.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from support_agent.shared.models.thread import SupportThread

CONTEXT_SNIPPET_CHARS = 150


class EscalationPayload(BaseModel):
    """Customer context shown to the human picking up the thread."""

    model_config = ConfigDict(frozen=True)

    sentiment: str = Field(default="neutral")
    customer_address: str = Field(default="")
    context_summary: str = Field(default="", description="One line per message")
    suggested_reply: str | None = Field(default=None)


class SystemEscalation(BaseModel):
    """The agent could not do its job for operational reasons."""

    model_config = ConfigDict(frozen=True)

    scenario: Literal["system"] = "system"
    error_details: str = Field(..., description="What went wrong")
    remediation: str = Field(..., description="What the operator should do")


class CustomerEscalation(BaseModel):
    """The customer needs a human answer."""

    model_config = ConfigDict(frozen=True)

    scenario: Literal["customer"] = "customer"
    reason: str = Field(..., description="Why a human is needed")
    payload: EscalationPayload = Field(default_factory=EscalationPayload)


Escalation = Annotated[
    Union[SystemEscalation, CustomerEscalation],
    Field(discriminator="scenario"),
]


class EscalationReport(BaseModel):
    """Which best-effort steps of an escalation succeeded."""

    label_id: str | None = None
    draft_created: bool = False
    thread_marked: bool = False
    alert_sent: bool = False
    fallback_sent: bool = False


def summarize_thread(thread: SupportThread) -> str:
    """Short per-message context for alerts."""
    return "\n".join(
        f"{m.sender}: {m.body[:CONTEXT_SNIPPET_CHARS]}..." for m in thread.messages
    )


def customer_escalation(
    thread: SupportThread,
    reason: str,
    *,
    sentiment: str = "neutral",
    customer_address: str | None = None,
    suggested_reply: str | None = None,
) -> CustomerEscalation:
    """Build a CustomerEscalation with context taken from the thread."""
    return CustomerEscalation(
        reason=reason,
        payload=EscalationPayload(
            sentiment=sentiment,
            customer_address=customer_address or thread.customer_address,
            context_summary=summarize_thread(thread),
            suggested_reply=suggested_reply,
        ),
    )
