"""
Reply Models
"""

from pydantic import BaseModel, ConfigDict, Field


class ReplyDraft(BaseModel):
    """Reply generator outcome: a body to send, or a request to escalate."""

    model_config = ConfigDict(frozen=True)

    body: str = Field(default="", description="Plain-text email body")
    escalate: bool = Field(default=False, description="Do not send; hand to a human")

    @classmethod
    def escalation(cls) -> "ReplyDraft":
        return cls(body="", escalate=True)

    @property
    def sendable(self) -> bool:
        return not self.escalate and bool(self.body.strip())
