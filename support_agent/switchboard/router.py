"""
Switchboard

Routes a classified thread to exactly one terminal action:

    suppress          -> archive quietly                       -> suppressed
    escalate / None   -> escalation terminal                   -> escalated
    commerce_lookup   -> order lookup -> reply -> send         -> commerce_lookup | escalated
    auto_reply        -> reply -> send                         -> auto_reply | escalated

Nothing externally visible happens before the tick's cancel token has
been checked; once a side effect has happened the route runs to the end
so the caller can record it.
"""

from typing import Final, Protocol, assert_never

from pydantic import BaseModel, ConfigDict, Field
import structlog

from support_agent.shared.actions import SUCCESS_OUTCOMES, OutcomeAction, TriageAction
from support_agent.shared.cancellation import CancelToken
from support_agent.shared.config import TenantConfig
from support_agent.shared.models.thread import SupportThread
from support_agent.shared.tools.brain import Brain
from support_agent.shared.tools.shopify import OrderLookupResult
from support_agent.escalation.models import (
    Escalation,
    SystemEscalation,
    customer_escalation,
)
from support_agent.escalation.terminal import EscalationTerminal
from support_agent.reply.models import ReplyDraft
from support_agent.triage.models import ClassificationResult

log = structlog.get_logger()

INVALID_TRIAGE_REASON: Final = "Triage output invalid"
SEND_FAILED_REASON: Final = "send failed"
REPLY_ESCALATED_REASON: Final = "Reply generator chose to escalate or returned no body"
LOOKUP_FAILED_REASON: Final = "Shopify lookup failed."
CLARIFICATION_REASON: Final = "Order not found. Customer clarification needed."
STORE_URL_MISSING: Final = "Shopify store URL not configured"
STORE_URL_REMEDIATION: Final = (
    "Copy tenant.json.example to tenant.json in the brain directory or set "
    "SUPPORT_TENANT_OVERRIDE_STORE_URL."
)
TOKEN_MISSING: Final = "Shopify access token not set"
TOKEN_REMEDIATION: Final = "Inject SUPPORT_SHOPIFY_ACCESS_TOKEN at boot."


class SwitchboardOutcome(BaseModel):
    """What the switchboard did; persisted into the ledger."""

    model_config = ConfigDict(frozen=True)

    action: OutcomeAction = Field(..., description="Terminal action")
    escalation_reason: str | None = Field(default=None)


class SwitchboardInbox(Protocol):
    def send_reply(self, thread: SupportThread, body: str) -> bool: ...
    def archive_thread(self, thread_id: str) -> None: ...


class ReplyGenerator(Protocol):
    def generate(
        self,
        thread: SupportThread,
        classification: ClassificationResult,
        kb_content: str,
        order_context: str | None = None,
    ) -> ReplyDraft: ...


class OrderLookup(Protocol):
    def lookup_order(
        self,
        store_url: str,
        token: str,
        order_number: str | None,
        email: str | None,
    ) -> OrderLookupResult: ...


def effective_action(classification: ClassificationResult | None) -> TriageAction:
    """Requested action, with a missing classification meaning escalate."""
    if classification is None:
        return TriageAction.ESCALATE
    return classification.action


class Switchboard:
    """
    Action router for one classified thread.

    Args:
        inbox: Send and archive operations
        brain: Knowledge-base reader
        replies: Reply generator
        commerce: Order lookup client
        escalations: Escalation terminal
        tenant: Store configuration (None disables commerce lookups)
        commerce_token: Store access token
    """

    def __init__(
        self,
        inbox: SwitchboardInbox,
        brain: Brain,
        replies: ReplyGenerator,
        commerce: OrderLookup,
        escalations: EscalationTerminal,
        tenant: TenantConfig | None,
        commerce_token: str,
    ):
        self._inbox = inbox
        self._brain = brain
        self._replies = replies
        self._commerce = commerce
        self._escalations = escalations
        self._tenant = tenant
        self._commerce_token = commerce_token

    def route(
        self,
        tenant_id: str,
        thread: SupportThread,
        classification: ClassificationResult | None,
        cancel_token: CancelToken | None = None,
    ) -> SwitchboardOutcome:
        """
        Perform the terminal action for ``thread``.

        Raises:
            TickCancelledError: If the tick deadline passed before any side effect
        """
        self._checkpoint(cancel_token, "switchboard_start")
        action = effective_action(classification)
        bound_log = log.bind(tenant_id=tenant_id, thread_id=thread.id, action=action.value)

        if classification is None:
            outcome = self._escalate(
                tenant_id,
                thread,
                customer_escalation(thread, INVALID_TRIAGE_REASON),
            )
        else:
            outcome = self._dispatch(tenant_id, thread, classification, cancel_token)

        bound_log.info(
            "switchboard_routed",
            outcome=outcome.action.value,
            escalation_reason=outcome.escalation_reason,
        )
        return outcome

    @staticmethod
    def _checkpoint(cancel_token: CancelToken | None, stage: str) -> None:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled(stage)

    def _dispatch(
        self,
        tenant_id: str,
        thread: SupportThread,
        classification: ClassificationResult,
        cancel_token: CancelToken | None,
    ) -> SwitchboardOutcome:
        action = classification.action
        if action is TriageAction.SUPPRESS:
            return self._suppress(thread)
        if action is TriageAction.ESCALATE:
            return self._escalate(
                tenant_id,
                thread,
                customer_escalation(
                    thread,
                    classification.summary_reason() or "Triage requested escalation",
                    sentiment=classification.sentiment,
                    customer_address=classification.extracted_email,
                ),
            )
        if action is TriageAction.COMMERCE_LOOKUP:
            return self._commerce_lookup(tenant_id, thread, classification, cancel_token)
        if action is TriageAction.AUTO_REPLY:
            return self._reply_or_escalate(
                tenant_id, thread, classification, None, action, cancel_token
            )
        assert_never(action)

    def _suppress(self, thread: SupportThread) -> SwitchboardOutcome:
        try:
            self._inbox.archive_thread(thread.id)
        except Exception as e:
            # The message stays in the inbox; it is still recorded as suppressed
            log.warning("suppress_archive_failed", thread_id=thread.id, error=str(e))
        return SwitchboardOutcome(action=OutcomeAction.SUPPRESSED)

    def _escalate(
        self,
        tenant_id: str,
        thread: SupportThread,
        escalation: Escalation,
    ) -> SwitchboardOutcome:
        self._escalations.escalate(tenant_id, thread, escalation)
        reason = (
            escalation.error_details
            if isinstance(escalation, SystemEscalation)
            else escalation.reason
        )
        return SwitchboardOutcome(action=OutcomeAction.ESCALATED, escalation_reason=reason)

    def _commerce_lookup(
        self,
        tenant_id: str,
        thread: SupportThread,
        classification: ClassificationResult,
        cancel_token: CancelToken | None,
    ) -> SwitchboardOutcome:
        store_url = self._tenant.shopify_store_url if self._tenant else ""
        token = self._commerce_token.strip()

        if not store_url or not token:
            log.warning(
                "commerce_lookup_unconfigured",
                thread_id=thread.id,
                has_store_url=bool(store_url),
                has_token=bool(token),
            )
            escalation = (
                SystemEscalation(error_details=STORE_URL_MISSING, remediation=STORE_URL_REMEDIATION)
                if not store_url
                else SystemEscalation(error_details=TOKEN_MISSING, remediation=TOKEN_REMEDIATION)
            )
            return self._escalate(tenant_id, thread, escalation)

        first = thread.messages[0] if thread.messages else None
        lookup = self._commerce.lookup_order(
            store_url,
            token,
            classification.extracted_order_number,
            classification.extracted_email or (first.sender_address if first else None),
        )
        self._checkpoint(cancel_token, "after_commerce_lookup")

        if lookup.escalation_needed or not lookup.success:
            return self._escalate(
                tenant_id,
                thread,
                customer_escalation(
                    thread,
                    lookup.reason or LOOKUP_FAILED_REASON,
                    sentiment=classification.sentiment,
                    customer_address=classification.extracted_email,
                ),
            )

        if lookup.order is None:
            # Zero or ambiguous matches: a human asks the customer which order
            return self._escalate(
                tenant_id,
                thread,
                customer_escalation(
                    thread,
                    CLARIFICATION_REASON,
                    sentiment=classification.sentiment,
                    customer_address=classification.extracted_email,
                ),
            )

        return self._reply_or_escalate(
            tenant_id,
            thread,
            classification,
            lookup.to_context(),
            TriageAction.COMMERCE_LOOKUP,
            cancel_token,
        )

    def _reply_or_escalate(
        self,
        tenant_id: str,
        thread: SupportThread,
        classification: ClassificationResult,
        order_context: str | None,
        action: TriageAction,
        cancel_token: CancelToken | None,
    ) -> SwitchboardOutcome:
        """Generate a reply and send it, escalating on refusal or send failure."""
        kb_content = self._brain.read_knowledge_base(classification.target_files)
        draft = self._replies.generate(thread, classification, kb_content, order_context)
        self._checkpoint(cancel_token, "before_send")

        if not draft.sendable:
            return self._escalate(
                tenant_id,
                thread,
                customer_escalation(
                    thread,
                    classification.summary_reason() or REPLY_ESCALATED_REASON,
                    sentiment=classification.sentiment,
                    customer_address=classification.extracted_email,
                ),
            )

        try:
            sent = self._inbox.send_reply(thread, draft.body)
        except Exception as e:
            log.error("reply_send_raised", thread_id=thread.id, error=str(e))
            sent = False

        if not sent:
            # Not retried: the generated body is left as a draft for a human
            return self._escalate(
                tenant_id,
                thread,
                customer_escalation(
                    thread,
                    SEND_FAILED_REASON,
                    sentiment=classification.sentiment,
                    customer_address=classification.extracted_email,
                    suggested_reply=draft.body,
                ),
            )

        try:
            self._inbox.archive_thread(thread.id)
        except Exception as e:
            log.warning("replied_archive_failed", thread_id=thread.id, error=str(e))

        return SwitchboardOutcome(action=SUCCESS_OUTCOMES[action])
