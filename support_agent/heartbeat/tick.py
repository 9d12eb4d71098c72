"""
Tick Orchestrator

One pass over recent inbox threads:

    list -> fetch -> self/ledger checks -> classify -> route -> ledger -> memory

Only the latest message of each thread is considered, and only once:
the ledger keyed on its Message-ID decides what is new, not read state.
"""

import re
from typing import Protocol

import structlog

from support_agent.shared.actions import OutcomeAction
from support_agent.shared.cancellation import CancelToken
from support_agent.shared.exceptions import InboxError, LedgerError, TickCancelledError
from support_agent.shared.models.ledger import normalize_message_id
from support_agent.shared.models.thread import SupportThread
from support_agent.shared.tools.ledger import Ledger
from support_agent.shared.tools.memory import MemoryLog
from support_agent.escalation.models import SystemEscalation
from support_agent.escalation.terminal import EscalationTerminal
from support_agent.heartbeat.models import TickResult
from support_agent.switchboard.router import Switchboard
from support_agent.triage.classifier import TriageClassifier

log = structlog.get_logger()

TEST_MARKER = re.compile(r"\[TEST-ID:\s*([^\]\s]+)\s*\]")
TEST_TAG = "test"
HEARTBEAT_ERROR_REASON = "Heartbeat error"
HEARTBEAT_ERROR_REMEDIATION = "Check logs and reply manually."


class TickInbox(Protocol):
    def list_recent(self, since_days: int, max_count: int) -> list[str]: ...
    def get_thread(self, thread_id: str) -> SupportThread: ...
    def get_self_address(self) -> str: ...


def extract_test_marker(body: str) -> tuple[str, str | None]:
    """
    Split a ``[TEST-ID: <value>]`` marker out of a message body.

    Returns:
        (body without the marker, marker value or None)
    """
    match = TEST_MARKER.search(body)
    if not match:
        return body, None
    stripped = (body[: match.start()] + body[match.end():]).strip()
    return stripped, match.group(1)


def memory_entry(thread: SupportThread, action: OutcomeAction, reason: str | None) -> str:
    entry = f"- Thread {thread.id} ({thread.subject}): action={action.value}"
    if reason:
        entry += f"; escalation_reason={reason}"
    return entry


class TickOrchestrator:
    """
    Runs ticks against the configured collaborators.

    Args:
        inbox: Listing and fetching of threads
        ledger: Processed-message ledger
        classifier: Triage classifier
        switchboard: Action router
        escalations: Used for per-item failures
        memory: Daily memory log
        tenant_id: Ledger partition
        newer_than_days: Listing window
        max_threads: Listing cap
    """

    def __init__(
        self,
        inbox: TickInbox,
        ledger: Ledger,
        classifier: TriageClassifier,
        switchboard: Switchboard,
        escalations: EscalationTerminal,
        memory: MemoryLog,
        tenant_id: str,
        newer_than_days: int = 14,
        max_threads: int = 50,
    ):
        self._inbox = inbox
        self._ledger = ledger
        self._classifier = classifier
        self._switchboard = switchboard
        self._escalations = escalations
        self._memory = memory
        self._tenant_id = tenant_id
        self._newer_than_days = newer_than_days
        self._max_threads = max_threads

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    def run_tick(self, cancel_token: CancelToken | None = None) -> TickResult:
        """
        Process every new message in the listing window.

        Raises:
            TickCancelledError: If the deadline passed; the current item has
                then either finished or not started its side effects
        """
        cancel_token = cancel_token or CancelToken()
        cancel_token.raise_if_cancelled("tick_start")

        try:
            thread_ids = self._inbox.list_recent(self._newer_than_days, self._max_threads)
        except InboxError as e:
            log.error("tick_listing_failed", error=str(e))
            return TickResult(status="no_tick")

        if not thread_ids:
            log.info("tick_no_threads")
            return TickResult(status="no_tick")

        try:
            self_address = self._inbox.get_self_address()
        except InboxError as e:
            log.error("tick_self_address_failed", error=str(e))
            return TickResult(status="no_tick", listed=len(thread_ids))

        memory_summary = self._memory.summary()
        processed = 0
        skipped = 0

        for thread_id in thread_ids:
            cancel_token.raise_if_cancelled("before_fetch")
            if self._process_thread(thread_id, self_address, memory_summary, cancel_token):
                processed += 1
            else:
                skipped += 1

        log.info(
            "tick_completed",
            listed=len(thread_ids),
            processed=processed,
            skipped=skipped,
        )
        return TickResult(
            status="ok" if processed > 0 else "no_tick",
            listed=len(thread_ids),
            processed=processed,
            skipped=skipped,
        )

    def _process_thread(
        self,
        thread_id: str,
        self_address: str,
        memory_summary: str,
        cancel_token: CancelToken,
    ) -> bool:
        """Handle one thread. Returns True when a message was recorded as processed."""
        try:
            thread = self._inbox.get_thread(thread_id)
        except Exception as e:
            # A thread that cannot be fetched is retried on the next tick
            log.warning("tick_fetch_failed", thread_id=thread_id, error=str(e) or type(e).__name__)
            return False

        last = thread.last_message
        message_id = normalize_message_id(last.message_id if last else None)
        if last is None or not message_id:
            log.debug("tick_skip_no_message_id", thread_id=thread_id)
            return False

        body, correlation_id = extract_test_marker(last.body)
        if correlation_id:
            thread = thread.with_last_body(body)

        if self_address and last.sender_address == self_address and not correlation_id:
            log.info("tick_skip_own_message", thread_id=thread_id)
            return False

        if self._ledger.has_processed(self._tenant_id, message_id):
            log.debug("tick_skip_already_processed", thread_id=thread_id, message_id=message_id)
            return False

        bound_log = log.bind(thread_id=thread_id, message_id=message_id, correlation_id=correlation_id)

        try:
            cancel_token.raise_if_cancelled("before_classify")
            classification = self._classifier.classify(thread, memory_summary)
            cancel_token.raise_if_cancelled("after_classify")
            outcome = self._switchboard.route(self._tenant_id, thread, classification, cancel_token)
            action, reason = outcome.action, outcome.escalation_reason
        except TickCancelledError:
            raise
        except Exception as e:
            bound_log.exception("tick_item_failed", error=str(e))
            self._escalations.escalate(
                self._tenant_id,
                thread,
                SystemEscalation(
                    error_details=str(e) or type(e).__name__,
                    remediation=HEARTBEAT_ERROR_REMEDIATION,
                ),
            )
            action, reason = OutcomeAction.ESCALATED, HEARTBEAT_ERROR_REASON

        try:
            self._ledger.mark_processed(
                self._tenant_id,
                message_id,
                thread.id,
                action,
                reason,
                correlation_id=correlation_id,
                tags=[TEST_TAG] if correlation_id else None,
            )
        except LedgerError as e:
            # The side effect already happened; the next tick may repeat it
            bound_log.error("tick_ledger_write_failed", error=str(e))

        self._memory.append(memory_entry(thread, action, reason))
        bound_log.info("tick_item_processed", action=action.value, reason=reason)
        return True
