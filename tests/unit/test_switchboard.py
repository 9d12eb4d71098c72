"""
Unit tests for the switchboard.

Tests cover:
- Each routing branch and its recorded outcome
- Missing classification treated as escalate
- Commerce lookup failures, disambiguation and missing configuration
- Send failures (escalated, never retried)
- Cancellation before the first side effect
"""

import pytest

from support_agent.shared.actions import OutcomeAction, TriageAction
from support_agent.shared.cancellation import CancelToken
from support_agent.shared.config import TenantConfig
from support_agent.shared.exceptions import TickCancelledError
from support_agent.shared.tools.shopify import AUTH_FAILED_REASON, OrderLookupResult
from support_agent.escalation import EscalationTerminal
from support_agent.reply import ReplyDraft, ReplyPipeline
from support_agent.switchboard import Switchboard, effective_action
from support_agent.switchboard.router import (
    CLARIFICATION_REASON,
    INVALID_TRIAGE_REASON,
    SEND_FAILED_REASON,
    STORE_URL_MISSING,
    TOKEN_MISSING,
)
from support_agent.triage.models import ClassificationResult
from tests.mocks.fakes import FakeAlerter, FakeCommerce, FakeInbox
from tests.mocks.mock_llm import MockLLMClient

TENANT = TenantConfig(shopify_store_url="https://shop.example.com")
ORDER = {"id": 1, "name": "#1001", "created_at": "2025-02-01T10:00:00Z"}


# --- Fixtures ---


@pytest.fixture
def inbox(thread):
    return FakeInbox([thread])


@pytest.fixture
def alerter():
    return FakeAlerter()


@pytest.fixture
def llm():
    return MockLLMClient()


@pytest.fixture
def commerce():
    return FakeCommerce(OrderLookupResult(success=True, order=ORDER, reason="Order found."))


@pytest.fixture
def make_switchboard(inbox, alerter, llm, brain, commerce):
    def _make(tenant: TenantConfig | None = TENANT, token: str = "shpat_test") -> Switchboard:
        return Switchboard(
            inbox=inbox,
            brain=brain,
            replies=ReplyPipeline(llm, brain),
            commerce=commerce,
            escalations=EscalationTerminal(inbox, alerter, "Escalation"),
            tenant=tenant,
            commerce_token=token,
        )

    return _make


def _classification(action: TriageAction, **kwargs) -> ClassificationResult:
    return ClassificationResult(action=action, **kwargs)


# =============================================================================
# Routing
# =============================================================================


class TestEffectiveAction:
    """Tests for effective_action."""

    def test_none_means_escalate(self):
        assert effective_action(None) is TriageAction.ESCALATE

    def test_passthrough(self):
        assert effective_action(_classification(TriageAction.SUPPRESS)) is TriageAction.SUPPRESS


class TestSuppress:
    """Tests for the suppress branch."""

    def test_archives_without_reply(self, make_switchboard, inbox, alerter, thread, llm):
        """Suppress archives and nothing else."""
        outcome = make_switchboard().route("default", thread, _classification(TriageAction.SUPPRESS))

        assert outcome.action == OutcomeAction.SUPPRESSED
        assert outcome.escalation_reason is None
        assert inbox.archived == [thread.id]
        assert inbox.sent == []
        assert alerter.messages == []
        assert llm.call_count == 0


class TestEscalate:
    """Tests for the escalate branch."""

    def test_explicit_escalate(self, make_switchboard, inbox, alerter, thread):
        """Escalation reason from triage is recorded."""
        classification = _classification(
            TriageAction.ESCALATE, reason="legal", escalation_reason="chargeback threat"
        )

        outcome = make_switchboard().route("default", thread, classification)

        assert outcome.action == OutcomeAction.ESCALATED
        assert outcome.escalation_reason == "chargeback threat"
        assert len(inbox.drafts) == 1
        assert len(alerter.messages) == 1
        assert inbox.sent == []

    def test_missing_classification_escalates(self, make_switchboard, inbox, thread):
        """Invalid triage output is routed as escalate."""
        outcome = make_switchboard().route("default", thread, None)

        assert outcome.action == OutcomeAction.ESCALATED
        assert outcome.escalation_reason == INVALID_TRIAGE_REASON
        assert inbox.sent == []

    def test_escalation_carries_triage_context(self, make_switchboard, alerter, thread):
        """Sentiment and customer address from triage reach the alert."""
        classification = _classification(
            TriageAction.ESCALATE,
            sentiment="angry",
            extracted_email="billing@customer.example",
        )

        make_switchboard().route("default", thread, classification)

        text = alerter.messages[0]["text"]
        assert "*Customer Sentiment:* angry" in text
        assert r"billing@customer\.example" in text

    def test_missing_classification_is_neutral(self, make_switchboard, alerter, thread):
        """Without triage output the alert falls back to neutral sentiment."""
        make_switchboard().route("default", thread, None)

        assert "*Customer Sentiment:* neutral" in alerter.messages[0]["text"]


class TestAutoReply:
    """Tests for the auto_reply branch."""

    def test_clean_send(self, make_switchboard, inbox, alerter, llm, thread):
        """A generated reply is sent and the thread archived."""
        llm.queue("Hi Jane, it ships tomorrow.")

        outcome = make_switchboard().route(
            "default",
            thread,
            _classification(TriageAction.AUTO_REPLY, target_files=["shipping-policy.md"]),
        )

        assert outcome.action == OutcomeAction.AUTO_REPLY
        assert inbox.sent == [(thread.id, "Hi Jane, it ships tomorrow.")]
        assert inbox.archived == [thread.id]
        assert alerter.messages == []
        assert "Orders ship within 2 business days." in llm.last_prompt

    def test_generator_refusal_escalates(self, make_switchboard, inbox, llm, thread):
        """A refusal never reaches the customer."""
        llm.queue("ESCALATE")

        outcome = make_switchboard().route(
            "default", thread, _classification(TriageAction.AUTO_REPLY, reason="unclear")
        )

        assert outcome.action == OutcomeAction.ESCALATED
        assert outcome.escalation_reason == "unclear"
        assert inbox.sent == []

    def test_send_failure_escalates_once(self, make_switchboard, inbox, alerter, llm, thread):
        """A failed send is escalated with the body left as a draft, not retried."""
        inbox.send_result = False
        llm.queue("Hi Jane, it ships tomorrow.")

        outcome = make_switchboard().route(
            "default", thread, _classification(TriageAction.AUTO_REPLY)
        )

        assert outcome.action == OutcomeAction.ESCALATED
        assert outcome.escalation_reason == SEND_FAILED_REASON
        assert inbox.drafts == [(thread.id, "Hi Jane, it ships tomorrow.")]
        assert inbox.archived == []
        assert len(alerter.messages) == 1
        assert llm.call_count == 1


class TestCommerceLookup:
    """Tests for the commerce_lookup branch."""

    def test_order_found_and_replied(self, make_switchboard, inbox, llm, commerce, thread):
        """Order data flows into the reply, outcome is commerce_lookup."""
        llm.queue("Your order #1001 has shipped.")

        outcome = make_switchboard().route(
            "default",
            thread,
            _classification(TriageAction.COMMERCE_LOOKUP, extracted_order_number="1001"),
        )

        assert outcome.action == OutcomeAction.COMMERCE_LOOKUP
        assert commerce.calls[0]["order_number"] == "1001"
        assert commerce.calls[0]["token"] == "shpat_test"
        assert '"#1001"' in llm.last_prompt
        assert inbox.sent == [(thread.id, "Your order #1001 has shipped.")]

    def test_email_falls_back_to_first_sender(self, make_switchboard, commerce, llm, make_thread):
        """Without an extracted email the original sender is used."""
        thread = make_thread(
            sender="support@shop.example.com",
            history=[("Jane <jane@customer.example>", "Where is my order?")],
        )
        llm.queue("Hi")

        make_switchboard().route("default", thread, _classification(TriageAction.COMMERCE_LOOKUP))

        assert commerce.calls[0]["email"] == "jane@customer.example"

    def test_no_match_requests_clarification(self, make_switchboard, inbox, commerce, llm, thread):
        """Zero matches escalate so a human can ask which order."""
        commerce.result = OrderLookupResult(
            success=True, reason="Order not found.", flags=["clarification_needed"]
        )

        outcome = make_switchboard().route(
            "default", thread, _classification(TriageAction.COMMERCE_LOOKUP)
        )

        assert outcome.action == OutcomeAction.ESCALATED
        assert outcome.escalation_reason == CLARIFICATION_REASON
        assert inbox.sent == []
        assert llm.call_count == 0

    def test_lookup_failure_escalates(self, make_switchboard, commerce, thread):
        """An auth failure is escalated with its reason."""
        commerce.result = OrderLookupResult(
            success=False, reason=AUTH_FAILED_REASON, escalation_needed=True
        )

        outcome = make_switchboard().route(
            "default", thread, _classification(TriageAction.COMMERCE_LOOKUP)
        )

        assert outcome.action == OutcomeAction.ESCALATED
        assert outcome.escalation_reason == AUTH_FAILED_REASON

    def test_missing_store_url_is_system_escalation(self, make_switchboard, inbox, commerce, thread):
        """No tenant config escalates as a system problem without calling the store."""
        outcome = make_switchboard(tenant=None).route(
            "default", thread, _classification(TriageAction.COMMERCE_LOOKUP)
        )

        assert outcome.escalation_reason == STORE_URL_MISSING
        assert commerce.calls == []
        assert inbox.drafts[0][1].startswith("[INTERNAL ESCALATION NOTE - DO NOT SEND]")

    def test_missing_token_is_system_escalation(self, make_switchboard, commerce, thread):
        outcome = make_switchboard(token="  ").route(
            "default", thread, _classification(TriageAction.COMMERCE_LOOKUP)
        )

        assert outcome.escalation_reason == TOKEN_MISSING
        assert commerce.calls == []


class TestCancellation:
    """Tests for cooperative cancellation inside routing."""

    def test_cancelled_before_start(self, make_switchboard, inbox, thread):
        """A cancelled token stops routing before any side effect."""
        token = CancelToken()
        token.cancel()

        with pytest.raises(TickCancelledError):
            make_switchboard().route(
                "default", thread, _classification(TriageAction.SUPPRESS), token
            )

        assert inbox.archived == []

    def test_cancelled_before_send(self, inbox, alerter, commerce, thread, brain):
        """A deadline passing during generation prevents the send."""
        token = CancelToken()

        class CancellingReplies:
            def generate(self, thread, classification, kb_content, order_context=None):
                token.cancel()
                return ReplyDraft(body="Hi")

        switchboard = Switchboard(
            inbox=inbox,
            brain=brain,
            replies=CancellingReplies(),
            commerce=commerce,
            escalations=EscalationTerminal(inbox, alerter, "Escalation"),
            tenant=TENANT,
            commerce_token="shpat_test",
        )

        with pytest.raises(TickCancelledError) as exc_info:
            switchboard.route("default", thread, _classification(TriageAction.AUTO_REPLY), token)

        assert exc_info.value.stage == "before_send"
        assert inbox.sent == []
