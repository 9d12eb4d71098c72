"""
Heartbeat Package

Tick orchestration, the deadline-bounded loop and the health probe.
"""

from support_agent.heartbeat.models import HeartbeatResult, TickResult
from support_agent.heartbeat.runner import HeartbeatRunner, HeartbeatState
from support_agent.heartbeat.tick import TickOrchestrator, extract_test_marker

__all__ = [
    "HeartbeatResult",
    "HeartbeatRunner",
    "HeartbeatState",
    "TickOrchestrator",
    "TickResult",
    "extract_test_marker",
]
