"""
Escalation Terminal

Every path that hands a thread to a human ends here. Each step is
best-effort: a failed draft must not stop the label, and a failed label
must not stop the alert.
"""

from typing import Protocol

import structlog

from support_agent.shared.models.thread import SupportThread
from support_agent.shared.tools.telegram import escape_markdown
from support_agent.escalation.models import (
    CustomerEscalation,
    Escalation,
    EscalationReport,
    SystemEscalation,
)

log = structlog.get_logger()

INTERNAL_NOTE_HEADER = "[INTERNAL ESCALATION NOTE - DO NOT SEND]"
ESCALATION_DRAFT_HEADER = "[ESCALATION DRAFT]"
OPEN_THREAD_BUTTON = "Open in Gmail"


class EscalationInbox(Protocol):
    def create_draft(self, thread: SupportThread, body: str) -> bool: ...
    def get_or_create_label(self, name: str) -> str | None: ...
    def mark_handled(self, thread_id: str, label_id: str) -> None: ...
    def thread_link(self, thread_id: str) -> str: ...


class Alerter(Protocol):
    def send_message(
        self,
        text: str,
        buttons: list[tuple[str, str]] | None = None,
        parse_mode: str | None = "Markdown",
    ) -> bool: ...


def draft_body(escalation: Escalation) -> str:
    """Body of the draft left on the thread for the human."""
    if isinstance(escalation, SystemEscalation):
        return (
            f"{INTERNAL_NOTE_HEADER}\n\n"
            f"Reason: {escalation.error_details}\n"
            f"Fix: {escalation.remediation}"
        )
    if escalation.payload.suggested_reply:
        return escalation.payload.suggested_reply
    return (
        f"{ESCALATION_DRAFT_HEADER}\n\n"
        f"Reason: {escalation.reason}\n\n"
        "Please review and customize before sending."
    )


def alert_text(thread: SupportThread, escalation: Escalation) -> str:
    """Markdown alert for the operator chat."""
    subject = escape_markdown(thread.subject or "(no subject)")
    if isinstance(escalation, SystemEscalation):
        return (
            "⚠️ *SYSTEM ESCALATION* ⚠️\n\n"
            f"*Error:* {escape_markdown(escalation.error_details)}\n"
            f"*Fix:* {escape_markdown(escalation.remediation)}\n"
            f"*Thread:* {subject}\n\n"
            "_Action: Fix the configuration, then reply manually._"
        )

    payload = escalation.payload
    lines = [
        "🚨 *ESCALATION REQUIRED* 🚨",
        "",
        f"*Reason:* {escape_markdown(escalation.reason)}",
        f"*Customer Sentiment:* {escape_markdown(payload.sentiment)}",
        f"*Customer:* {escape_markdown(payload.customer_address)}",
        f"*Thread:* {subject}",
    ]
    if payload.context_summary:
        lines += ["", "*Context Summary:*", escape_markdown(payload.context_summary)]
    if payload.suggested_reply:
        lines += ["", "_A suggested reply is waiting in Drafts._"]
    lines += ["", "_Action Needed: Review & reply manually._"]
    return "\n".join(lines)


def fallback_text(thread: SupportThread, escalation: Escalation, link: str) -> str:
    """Plain alert used when the formatted one could not be delivered."""
    if isinstance(escalation, SystemEscalation):
        detail = f"Error: {escalation.error_details}\nFix: {escalation.remediation}"
    else:
        detail = f"Reason: {escalation.reason}"
    return (
        "ESCALATION (formatted alert failed)\n"
        f"Thread: {thread.subject or '(no subject)'}\n"
        f"{detail}\n"
        f"Link: {link}"
    )


class EscalationTerminal:
    """
    Single entry point for human hand-off.

    Args:
        inbox: Inbox operations (draft, label, mark handled)
        alerter: Operator alert channel
        label_name: Name of the "needs human review" label
    """

    def __init__(self, inbox: EscalationInbox, alerter: Alerter, label_name: str):
        self._inbox = inbox
        self._alerter = alerter
        self._label_name = label_name
        # tenant id -> label id
        self._label_ids: dict[str, str] = {}

    def _label_for(self, tenant_id: str) -> str | None:
        cached = self._label_ids.get(tenant_id)
        if cached:
            return cached
        label_id = self._inbox.get_or_create_label(self._label_name)
        if label_id:
            self._label_ids[tenant_id] = label_id
        return label_id

    def escalate(
        self,
        tenant_id: str,
        thread: SupportThread,
        escalation: Escalation,
    ) -> EscalationReport:
        """Run every escalation step and report which succeeded. Never raises."""
        report = EscalationReport()
        bound_log = log.bind(
            tenant_id=tenant_id,
            thread_id=thread.id,
            scenario=escalation.scenario,
        )

        try:
            report.label_id = self._label_for(tenant_id)
        except Exception as e:
            bound_log.error("escalation_label_failed", error=str(e))

        try:
            report.draft_created = self._inbox.create_draft(thread, draft_body(escalation))
        except Exception as e:
            bound_log.error("escalation_draft_failed", error=str(e))

        if report.label_id:
            try:
                self._inbox.mark_handled(thread.id, report.label_id)
                report.thread_marked = True
            except Exception as e:
                bound_log.error("escalation_mark_failed", error=str(e))

        link = ""
        try:
            link = self._inbox.thread_link(thread.id)
        except Exception as e:
            bound_log.error("escalation_link_failed", error=str(e))

        try:
            report.alert_sent = self._alerter.send_message(
                alert_text(thread, escalation),
                buttons=[(OPEN_THREAD_BUTTON, link)] if link else None,
            )
        except Exception as e:
            bound_log.error("escalation_alert_failed", error=str(e))

        if not report.alert_sent:
            try:
                report.fallback_sent = self._alerter.send_message(
                    fallback_text(thread, escalation, link),
                    parse_mode=None,
                )
            except Exception as e:
                bound_log.error("escalation_fallback_failed", error=str(e))

        bound_log.info(
            "thread_escalated",
            reason=(
                escalation.reason
                if isinstance(escalation, CustomerEscalation)
                else escalation.error_details
            ),
            **report.model_dump(),
        )
        return report
