"""
Heartbeat Runner

Runs ticks one at a time on a single worker thread, each bounded by a
wall-clock deadline. A tick that overruns is cancelled cooperatively and
the loop moves on; the next tick is always scheduled.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import datetime, timezone
from typing import Protocol

import structlog

from support_agent.shared.cancellation import CancelToken
from support_agent.heartbeat.models import HeartbeatResult, TickResult

log = structlog.get_logger()


class TickRunner(Protocol):
    def run_tick(self, cancel_token: CancelToken | None = None) -> TickResult: ...


class HeartbeatState:
    """Last clean tick completion, shared with the health probe."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last_successful_tick_at: datetime | None = None

    @property
    def last_successful_tick_at(self) -> datetime | None:
        with self._lock:
            return self._last_successful_tick_at

    def record_success(self, at: datetime | None = None) -> None:
        with self._lock:
            self._last_successful_tick_at = at or datetime.now(timezone.utc)


class HeartbeatRunner:
    """
    Deadline-bounded tick loop.

    Args:
        orchestrator: Object whose ``run_tick`` performs one tick
        state: Updated after each clean tick
        tick_timeout_seconds: Deadline for a single tick
        poll_interval_seconds: Pause between ticks
    """

    def __init__(
        self,
        orchestrator: TickRunner,
        state: HeartbeatState,
        tick_timeout_seconds: float,
        poll_interval_seconds: float,
    ):
        self._orchestrator = orchestrator
        self._state = state
        self._tick_timeout = tick_timeout_seconds
        self._poll_interval = poll_interval_seconds
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="heartbeat-tick")

    def run_once(self) -> HeartbeatResult:
        """
        Run a single tick under the deadline.

        A timed-out tick keeps running on the worker until its next cancel
        check; because the pool has one worker, the following tick waits
        for it and ticks never overlap.
        """
        token = CancelToken()
        started = time.monotonic()
        future = self._executor.submit(self._orchestrator.run_tick, token)

        try:
            tick = future.result(timeout=self._tick_timeout)
        except FuturesTimeoutError:
            token.cancel()
            duration = time.monotonic() - started
            log.error(
                "heartbeat_tick_timed_out",
                timeout_seconds=self._tick_timeout,
                duration_seconds=round(duration, 3),
            )
            return HeartbeatResult(status="timed_out", duration_seconds=duration)
        except Exception as e:
            duration = time.monotonic() - started
            log.exception("heartbeat_tick_failed", error=str(e))
            return HeartbeatResult(status="failed", duration_seconds=duration, error=str(e))

        duration = time.monotonic() - started
        self._state.record_success()
        if tick.status == "no_tick":
            log.info("heartbeat_ok_nothing_processed", listed=tick.listed, skipped=tick.skipped)
        log.info(
            "heartbeat_tick_finished",
            status=tick.status,
            processed=tick.processed,
            duration_seconds=round(duration, 3),
        )
        return HeartbeatResult(status=tick.status, duration_seconds=duration, tick=tick)

    def run_forever(self, stop_event: threading.Event) -> None:
        """Tick immediately, then every ``poll_interval_seconds`` until stopped."""
        log.info(
            "heartbeat_started",
            poll_interval_seconds=self._poll_interval,
            tick_timeout_seconds=self._tick_timeout,
        )
        while not stop_event.is_set():
            self.run_once()
            log.info("heartbeat_idle", next_poll_in_seconds=self._poll_interval)
            stop_event.wait(self._poll_interval)
        log.info("heartbeat_stopped")

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
