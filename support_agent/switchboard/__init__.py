"""
Switchboard Package

Routing of classified threads to their terminal action.
"""

from support_agent.switchboard.router import (
    Switchboard,
    SwitchboardOutcome,
    effective_action,
)

__all__ = [
    "Switchboard",
    "SwitchboardOutcome",
    "effective_action",
]
