"""
Heartbeat Models
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class TickResult(BaseModel):
    """Summary of one pass over the inbox."""

    model_config = ConfigDict(frozen=True)

    status: Literal["ok", "no_tick"] = Field(
        ...,
        description="ok when at least one message reached a terminal action",
    )
    listed: int = Field(default=0, description="Threads returned by the inbox listing")
    processed: int = Field(default=0, description="Messages recorded as processed")
    skipped: int = Field(default=0, description="Threads skipped (fetch error, own message, already processed)")


class HeartbeatResult(BaseModel):
    """Outcome of one deadline-bounded tick."""

    model_config = ConfigDict(frozen=True)

    status: Literal["ok", "no_tick", "failed", "timed_out"]
    duration_seconds: float = Field(default=0.0)
    tick: TickResult | None = Field(default=None)
    error: str | None = Field(default=None)
