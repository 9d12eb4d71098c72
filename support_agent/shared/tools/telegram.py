"""
Telegram Alerts

Operator alerts via the Telegram Bot API. Rate limits, server errors and
network failures are retried with a fixed backoff schedule; any other
failure gives up immediately.
"""

import re
from typing import Sequence

import requests
import structlog
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_chain,
    wait_fixed,
)

from support_agent.shared.exceptions import AlertDeliveryError

log = structlog.get_logger()

TELEGRAM_API = "https://api.telegram.org"
MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_SECONDS: tuple[float, ...] = (1.0, 3.0, 8.0)

_MARKDOWN_SPECIAL = re.compile(r"([_*\[\]()~`>#+=|{}.!-])")


def escape_markdown(text: str) -> str:
    """Backslash-escape Telegram Markdown control characters."""
    return _MARKDOWN_SPECIAL.sub(r"\\\1", text)


class _PermanentAlertError(Exception):
    """Non-retryable Bot API rejection (bad request, forbidden, ...)."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Telegram {status_code}: {body}")
        self.status_code = status_code


class TelegramAlerter:
    """
    Send alerts to a single operator chat.

    Args:
        bot_token: Bot API token ("" disables sending)
        chat_id: Target chat ("" disables sending)
        session: HTTP session (injectable for tests)
        timeout: Per-request timeout in seconds
        backoff_seconds: Wait before each retry, in order (the last value repeats)
    """

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        session: requests.Session | None = None,
        timeout: float = 30.0,
        backoff_seconds: Sequence[float] = DEFAULT_BACKOFF_SECONDS,
    ):
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._session = session or requests.Session()
        self._timeout = timeout
        self._backoff_seconds = tuple(backoff_seconds)

    @property
    def configured(self) -> bool:
        return bool(self._bot_token and self._chat_id)

    def _post(self, payload: dict) -> None:
        url = f"{TELEGRAM_API}/bot{self._bot_token}/sendMessage"
        try:
            response = self._session.post(url, json=payload, timeout=self._timeout)
        except requests.RequestException as e:
            log.warning("telegram_network_error", error=str(e))
            raise AlertDeliveryError(status_code=None, error_message=str(e)) from e

        if response.ok:
            return
        if response.status_code == 429 or response.status_code >= 500:
            log.warning("telegram_retryable_status", status=response.status_code)
            raise AlertDeliveryError(
                status_code=response.status_code,
                error_message=response.text[:200],
            )

        log.error(
            "telegram_rejected",
            status=response.status_code,
            body=response.text[:200],
        )
        raise _PermanentAlertError(response.status_code, response.text[:200])

    def send_message(
        self,
        text: str,
        buttons: list[tuple[str, str]] | None = None,
        parse_mode: str | None = "Markdown",
    ) -> bool:
        """
        Deliver ``text`` to the operator chat.

        Args:
            text: Message text, already escaped for ``parse_mode``
            buttons: Optional (label, url) pairs rendered as an inline keyboard
            parse_mode: Telegram parse mode, None for plain text

        Returns:
            True once delivered, False when unconfigured or all attempts failed
        """
        if not self.configured:
            log.warning("telegram_not_configured")
            return False

        payload: dict = {"chat_id": self._chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if buttons:
            payload["reply_markup"] = {
                "inline_keyboard": [[{"text": label, "url": url} for label, url in buttons]],
            }

        waits = self._backoff_seconds or (0.0,)
        retrying = Retrying(
            stop=stop_after_attempt(MAX_ATTEMPTS),
            wait=wait_chain(*(wait_fixed(w) for w in waits)),
            retry=retry_if_exception_type(AlertDeliveryError),
            reraise=True,
        )

        try:
            retrying(self._post, payload)
        except (AlertDeliveryError, _PermanentAlertError, RetryError) as e:
            log.error("telegram_send_failed", error=str(e))
            return False

        log.info("telegram_alert_sent")
        return True
