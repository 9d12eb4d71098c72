"""
Cooperative Cancellation

A tick runs on a worker thread that cannot be killed. The runner cancels
the tick's token when the deadline passes and the tick checks it at
well-defined boundaries before doing anything externally visible.
"""

import threading

import structlog

from support_agent.shared.exceptions import TickCancelledError

log = structlog.get_logger()


class CancelToken:
    """One-shot cancellation flag shared between the runner and a tick."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        """
        Raise TickCancelledError if the deadline has passed.

        Args:
            stage: Name of the boundary being crossed (for logs)
        """
        if self._event.is_set():
            log.warning("tick_cancelled", stage=stage)
            raise TickCancelledError(stage)
