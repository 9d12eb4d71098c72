"""
Action Vocabulary

Closed sets of routing inputs (what triage asks for) and routing outcomes
(what actually happened to a message). Outcomes are what the ledger stores.
"""

from enum import Enum
from typing import Final


class TriageAction(str, Enum):
    """Action requested by the classifier."""

    AUTO_REPLY = "auto_reply"
    """Answer directly from the knowledge base."""

    COMMERCE_LOOKUP = "commerce_lookup"
    """Look up the customer's order before answering."""

    ESCALATE = "escalate"
    """Hand the thread to a human."""

    SUPPRESS = "suppress"
    """Spam, notifications or chatter. Archive without reply."""

    @classmethod
    def from_string(cls, value: str) -> "TriageAction":
        """Convert string to TriageAction enum."""
        try:
            return cls(value.strip().lower())
        except ValueError as e:
            raise ValueError(
                f"Invalid triage action: '{value}'. "
                f"Valid values are: {[a.value for a in cls]}"
            ) from e


class OutcomeAction(str, Enum):
    """Terminal action recorded for a processed message."""

    SUPPRESSED = "suppressed"
    AUTO_REPLY = "auto_reply"
    COMMERCE_LOOKUP = "commerce_lookup"
    ESCALATED = "escalated"

    @classmethod
    def from_string(cls, value: str) -> "OutcomeAction":
        """Convert string to OutcomeAction enum."""
        try:
            return cls(value.strip().lower())
        except ValueError as e:
            raise ValueError(
                f"Invalid outcome action: '{value}'. "
                f"Valid values are: {[a.value for a in cls]}"
            ) from e


# Outcome when the requested action completes without escalating
SUCCESS_OUTCOMES: Final[dict[TriageAction, OutcomeAction]] = {
    TriageAction.AUTO_REPLY: OutcomeAction.AUTO_REPLY,
    TriageAction.COMMERCE_LOOKUP: OutcomeAction.COMMERCE_LOOKUP,
    TriageAction.ESCALATE: OutcomeAction.ESCALATED,
    TriageAction.SUPPRESS: OutcomeAction.SUPPRESSED,
}
