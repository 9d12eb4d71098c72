"""
Escalation Package

Human hand-off: label, draft, mark handled, alert.
"""

from support_agent.escalation.models import (
    CustomerEscalation,
    Escalation,
    EscalationPayload,
    EscalationReport,
    SystemEscalation,
    customer_escalation,
)
from support_agent.escalation.terminal import EscalationTerminal

__all__ = [
    "CustomerEscalation",
    "Escalation",
    "EscalationPayload",
    "EscalationReport",
    "EscalationTerminal",
    "SystemEscalation",
    "customer_escalation",
]
