"""
Support Agent Entry Point

Validates the brain and mailbox, wires the collaborators, starts the
health probe and runs the heartbeat until SIGTERM/SIGINT.

Usage:
    support-agent
    python -m support_agent.heartbeat.main
"""

import signal
import sys
import threading

import structlog

from support_agent.shared.config import Settings, get_settings, load_tenant_config, tenant_id_for
from support_agent.shared.exceptions import ConfigurationError, InboxError, LedgerError
from support_agent.shared.llm import LLMClient, get_llm_client
from support_agent.shared.logging import configure_logging
from support_agent.shared.tools.brain import Brain
from support_agent.shared.tools.gmail import GmailInbox, build_gmail_service
from support_agent.shared.tools.ledger import Ledger
from support_agent.shared.tools.memory import MemoryLog
from support_agent.shared.tools.shopify import ShopifyClient
from support_agent.shared.tools.telegram import TelegramAlerter
from support_agent.escalation.terminal import EscalationTerminal
from support_agent.heartbeat.health import create_health_app, start_health_server
from support_agent.heartbeat.runner import HeartbeatRunner, HeartbeatState
from support_agent.heartbeat.tick import TickOrchestrator
from support_agent.reply.pipeline import ReplyPipeline
from support_agent.switchboard.router import Switchboard
from support_agent.triage.classifier import TriageClassifier

log = structlog.get_logger()


def build_orchestrator(
    settings: Settings,
    inbox: GmailInbox,
    llm: LLMClient,
    ledger: Ledger | None = None,
) -> TickOrchestrator:
    """Wire every collaborator of a tick from settings."""
    brain = Brain(settings.brain_path)
    tenant = load_tenant_config(settings)
    tenant_id = tenant_id_for(tenant)

    alerter = TelegramAlerter(
        settings.telegram_bot_token,
        settings.telegram_chat_id,
        timeout=settings.http_timeout_seconds,
    )
    escalations = EscalationTerminal(inbox, alerter, settings.escalation_label_name)
    switchboard = Switchboard(
        inbox=inbox,
        brain=brain,
        replies=ReplyPipeline(llm, brain),
        commerce=ShopifyClient(timeout=settings.http_timeout_seconds),
        escalations=escalations,
        tenant=tenant,
        commerce_token=settings.shopify_access_token,
    )

    log.info(
        "tenant_loaded",
        tenant_id=tenant_id,
        store_url=tenant.shopify_store_url if tenant else None,
        commerce_enabled=bool(tenant and settings.shopify_access_token),
        alerts_enabled=alerter.configured,
    )

    return TickOrchestrator(
        inbox=inbox,
        ledger=ledger or Ledger(settings),
        classifier=TriageClassifier(llm, brain),
        switchboard=switchboard,
        escalations=escalations,
        memory=MemoryLog(settings.memory_dir),
        tenant_id=tenant_id,
        newer_than_days=settings.newer_than_days,
        max_threads=settings.max_threads_per_poll,
    )


def run(settings: Settings) -> int:
    """Start the agent. Returns the process exit code."""
    brain = Brain(settings.brain_path)
    if not brain.has_triage_skill():
        log.error(
            "brain_triage_skill_missing",
            brain_path=str(settings.brain_path),
            expected="skills/support-triage/SKILL.md",
        )
        return 1

    try:
        service = build_gmail_service(settings)
        inbox = GmailInbox(service, footer=brain.email_footer())
        mailbox = inbox.get_self_address()
    except (ConfigurationError, InboxError) as e:
        log.error("gmail_unavailable", error=str(e))
        return 1
    log.info("gmail_connected", mailbox=mailbox)

    ledger = Ledger(settings)
    if settings.ledger_create_table:
        try:
            ledger.ensure_table()
        except LedgerError as e:
            log.error("ledger_unavailable", error=str(e))
            return 1

    orchestrator = build_orchestrator(settings, inbox, get_llm_client(), ledger=ledger)

    state = HeartbeatState()
    start_health_server(
        create_health_app(state, settings.health_stale_seconds),
        settings.health_host,
        settings.health_port,
    )

    runner = HeartbeatRunner(
        orchestrator,
        state,
        tick_timeout_seconds=settings.tick_timeout_seconds,
        poll_interval_seconds=settings.poll_interval_seconds,
    )

    stop_event = threading.Event()

    def _stop(signum, _frame) -> None:
        log.info("shutdown_requested", signal=signum)
        stop_event.set()

    signal.signal(signal.SIGTERM, _stop)
    signal.signal(signal.SIGINT, _stop)

    try:
        runner.run_forever(stop_event)
    finally:
        runner.shutdown()
    return 0


def main() -> int:
    settings = get_settings()
    configure_logging(settings.log_level, json_output=settings.environment != "development")
    log.info("support_agent_starting", environment=settings.environment)
    return run(settings)


if __name__ == "__main__":
    sys.exit(main())
