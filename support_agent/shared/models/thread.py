"""
Support Thread Model

Pydantic models for an inbox thread as seen by one tick. Messages are
ordered by arrival; the last message is the one a tick routes.
"""

from email.utils import parseaddr

from pydantic import BaseModel, ConfigDict, Field


class ThreadMessage(BaseModel):
    """Single message in a support thread."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Provider message id")
    sender: str = Field(default="", description="Raw From header")
    subject: str = Field(default="", description="Subject header")
    date: str = Field(default="", description="Raw Date header")
    body: str = Field(default="", description="Plain text body")
    message_id: str | None = Field(
        default=None,
        description="RFC 5322 Message-ID header, used for threading and the ledger key",
    )
    internal_date: int = Field(default=0, description="Provider arrival time in epoch ms")

    @property
    def sender_address(self) -> str:
        """Bare lower-cased address from the From header."""
        return parseaddr(self.sender)[1].strip().lower()


class SupportThread(BaseModel):
    """
    A thread fetched from the inbox.

    Immutable; use ``with_last_body`` to derive a copy with a rewritten
    final message body.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable thread id")
    subject: str = Field(default="", description="Subject of the first message")
    messages: list[ThreadMessage] = Field(default_factory=list)

    @property
    def last_message(self) -> ThreadMessage | None:
        return self.messages[-1] if self.messages else None

    @property
    def customer_address(self) -> str:
        """Address of the last sender (the person a reply goes to)."""
        last = self.last_message
        return last.sender_address if last else ""

    def with_last_body(self, body: str) -> "SupportThread":
        """Return a copy whose last message has ``body``."""
        if not self.messages:
            return self
        last = self.messages[-1].model_copy(update={"body": body})
        return self.model_copy(update={"messages": [*self.messages[:-1], last]})

    def to_transcript(self) -> str:
        """Render the messages as plain text for the model, oldest first."""
        return "\n---\n".join(
            f"From: {m.sender}\nDate: {m.date}\nSubject: {m.subject}\n\n{m.body}"
            for m in self.messages
        )
