"""
In-memory fakes for the inbox, alert channel and store.

Each fake records what was asked of it so tests can assert on side
effects without any network.
"""

from typing import Any

from support_agent.shared.exceptions import InboxError
from support_agent.shared.models.thread import SupportThread
from support_agent.shared.tools.shopify import OrderLookupResult


class FakeInbox:
    """Inbox backed by a dict of threads."""

    def __init__(
        self,
        threads: list[SupportThread] | None = None,
        self_address: str = "support@shop.example.com",
    ):
        self.threads: dict[str, SupportThread] = {t.id: t for t in threads or []}
        self.self_address = self_address
        self.send_result: bool = True
        self.fail_fetch: set[str] = set()
        self.fail_self_address = False
        self.label_id: str | None = "Label_42"

        self.sent: list[tuple[str, str]] = []
        self.drafts: list[tuple[str, str]] = []
        self.archived: list[str] = []
        self.marked: list[tuple[str, str]] = []
        self.label_requests: list[str] = []

    def add(self, thread: SupportThread) -> None:
        self.threads[thread.id] = thread

    def list_recent(self, since_days: int, max_count: int) -> list[str]:
        return list(self.threads)[:max_count]

    def get_thread(self, thread_id: str) -> SupportThread:
        if thread_id in self.fail_fetch:
            raise InboxError(operation="get_thread", thread_id=thread_id, error_message="boom")
        return self.threads[thread_id]

    def get_self_address(self) -> str:
        if self.fail_self_address:
            raise InboxError(operation="get_profile", error_message="unauthorized")
        return self.self_address

    def send_reply(self, thread: SupportThread, body: str) -> bool:
        if self.send_result:
            self.sent.append((thread.id, body))
        return self.send_result

    def create_draft(self, thread: SupportThread, body: str) -> bool:
        self.drafts.append((thread.id, body))
        return True

    def get_or_create_label(self, name: str) -> str | None:
        self.label_requests.append(name)
        return self.label_id

    def mark_handled(self, thread_id: str, label_id: str) -> None:
        self.marked.append((thread_id, label_id))

    def archive_thread(self, thread_id: str) -> None:
        self.archived.append(thread_id)

    def thread_link(self, thread_id: str) -> str:
        return f"https://mail.example.com/{thread_id}"


class FakeAlerter:
    """Alert channel that records messages and can be told to fail."""

    def __init__(self, results: list[bool] | None = None):
        self._results = list(results or [])
        self.messages: list[dict[str, Any]] = []

    def send_message(
        self,
        text: str,
        buttons: list[tuple[str, str]] | None = None,
        parse_mode: str | None = "Markdown",
    ) -> bool:
        self.messages.append({"text": text, "buttons": buttons, "parse_mode": parse_mode})
        return self._results.pop(0) if self._results else True


class FakeCommerce:
    """Order lookup returning a canned result."""

    def __init__(self, result: OrderLookupResult):
        self.result = result
        self.calls: list[dict[str, Any]] = []

    def lookup_order(
        self,
        store_url: str,
        token: str,
        order_number: str | None,
        email: str | None,
    ) -> OrderLookupResult:
        self.calls.append(
            {
                "store_url": store_url,
                "token": token,
                "order_number": order_number,
                "email": email,
            }
        )
        return self.result
