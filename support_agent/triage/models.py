"""
Triage Models

Pydantic model for the classifier's verdict on one thread.
"""

from pydantic import BaseModel, ConfigDict, Field

from support_agent.shared.actions import TriageAction


class ClassificationResult(BaseModel):
    """
    Classification of the latest message in a thread.

    ``action`` is always one of the closed TriageAction values; output
    naming anything else never becomes a ClassificationResult.
    """

    model_config = ConfigDict(frozen=True)

    category: str = Field(default="other", description="Free-form topic (shipping, refund, ...)")
    action: TriageAction = Field(..., description="Requested routing action")
    target_files: list[str] = Field(
        default_factory=list,
        description="Knowledge-base files the reply should draw on",
    )
    extracted_order_number: str | None = Field(default=None)
    extracted_email: str | None = Field(default=None)
    requires_commerce_lookup: bool = Field(default=False)
    confidence: float = Field(default=0.0, description="Model-reported confidence")
    sentiment: str = Field(default="neutral")
    reason: str = Field(default="", description="Why this action was chosen")
    flags: list[str] = Field(default_factory=list)
    escalation_reason: str | None = Field(default=None)

    def summary_reason(self) -> str:
        """Best reason to show a human: escalation reason, else reason."""
        return self.escalation_reason or self.reason

    def to_prompt_json(self) -> str:
        """Subset of fields shown to the reply generator."""
        return self.model_dump_json(
            include={
                "category",
                "action",
                "sentiment",
                "flags",
                "reason",
                "target_files",
                "extracted_order_number",
                "extracted_email",
            },
            indent=2,
        )
