"""
Gmail Inbox

Thin adapter over the Gmail v1 API (google-api-python-client) exposing
only what the agent needs: list, fetch, reply, draft, label, archive.
Credentials come from an OAuth refresh token in settings.
"""

import base64
from email.message import EmailMessage
from typing import Any

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
import structlog

from support_agent.shared.config import Settings
from support_agent.shared.exceptions import ConfigurationError, InboxError
from support_agent.shared.models.thread import SupportThread, ThreadMessage

log = structlog.get_logger()

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.modify"]
TOKEN_URI = "https://oauth2.googleapis.com/token"
USER_ID = "me"

# HttpError covers API responses; the rest are transport and decoding failures
READ_ERRORS = (HttpError, GoogleAuthError, OSError, ValueError)


def _decode_body(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8", errors="replace")


def extract_text_body(payload: dict[str, Any] | None) -> str:
    """First text/plain body in a message payload, searching nested parts."""
    if not payload:
        return ""
    data = (payload.get("body") or {}).get("data")
    if payload.get("mimeType") == "text/plain" and data:
        return _decode_body(data)

    parts = payload.get("parts") or []
    for part in parts:
        part_data = (part.get("body") or {}).get("data")
        if part.get("mimeType") == "text/plain" and part_data:
            return _decode_body(part_data)
    for part in parts:
        text = extract_text_body(part)
        if text:
            return text
    return ""


def get_header(headers: list[dict[str, str]] | None, name: str) -> str:
    """Case-insensitive header lookup ("" when absent)."""
    for header in headers or []:
        if header.get("name", "").lower() == name.lower():
            return header.get("value", "") or ""
    return ""


def reply_subject(subject: str) -> str:
    return subject if subject.lower().startswith("re:") else f"Re: {subject}"


def _angle_bracketed(message_id: str) -> str:
    value = message_id.strip()
    return value if value.startswith("<") else f"<{value}>"


def _encode_raw(message: EmailMessage) -> str:
    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii").rstrip("=")


def _parse_thread(thread_id: str, data: dict[str, Any]) -> SupportThread:
    """Build a SupportThread from a ``threads.get(format="full")`` response."""
    raw_messages = sorted(
        data.get("messages", []),
        key=lambda m: int(m.get("internalDate") or 0),
    )

    subject = ""
    messages: list[ThreadMessage] = []
    for raw in raw_messages:
        payload = raw.get("payload") or {}
        headers = payload.get("headers") or []
        message_subject = get_header(headers, "Subject")
        if message_subject:
            subject = message_subject
        messages.append(
            ThreadMessage(
                id=raw.get("id", ""),
                sender=get_header(headers, "From"),
                subject=message_subject,
                date=get_header(headers, "Date"),
                body=extract_text_body(payload),
                message_id=get_header(headers, "Message-ID") or None,
                internal_date=int(raw.get("internalDate") or 0),
            )
        )

    if not subject and messages:
        subject = messages[0].subject or "(no subject)"

    return SupportThread(id=thread_id, subject=subject, messages=messages)


def build_gmail_service(settings: Settings):
    """
    Build an authenticated Gmail service from the refresh token.

    Raises:
        ConfigurationError: If credentials are missing or refresh fails
    """
    if not settings.has_gmail_credentials:
        raise ConfigurationError(
            "Gmail credentials missing",
            required=["SUPPORT_GMAIL_CLIENT_ID", "SUPPORT_GMAIL_CLIENT_SECRET", "SUPPORT_GMAIL_REFRESH_TOKEN"],
        )

    credentials = Credentials(
        token=None,
        refresh_token=settings.gmail_refresh_token,
        client_id=settings.gmail_client_id,
        client_secret=settings.gmail_client_secret,
        token_uri=TOKEN_URI,
        scopes=GMAIL_SCOPES,
    )
    try:
        credentials.refresh(Request())
    except GoogleAuthError as e:
        log.error("gmail_auth_failed", error=str(e))
        raise ConfigurationError("Gmail auth failed", error=str(e)) from e

    return build("gmail", "v1", credentials=credentials, cache_discovery=False)


class GmailInbox:
    """
    Inbox operations on the authenticated support mailbox.

    Args:
        service: A Gmail v1 ``Resource`` (see ``build_gmail_service``)
        footer: Plain-text footer appended to every sent reply
    """

    def __init__(self, service: Any, footer: str = ""):
        self._service = service
        self._footer = footer
        self._self_address: str | None = None

    def get_self_address(self) -> str:
        """
        Lower-cased address of the authenticated mailbox (cached).

        Raises:
            InboxError: If the profile cannot be read
        """
        if self._self_address is None:
            try:
                profile = self._service.users().getProfile(userId=USER_ID).execute()
            except READ_ERRORS as e:
                raise InboxError(operation="get_profile", error_message=str(e)) from e
            self._self_address = (profile.get("emailAddress") or "").strip().lower()
        return self._self_address

    def list_recent(self, since_days: int, max_count: int) -> list[str]:
        """
        Thread ids updated within ``since_days``, newest first.

        Read state is ignored on purpose: the ledger decides what is new.

        Raises:
            InboxError: If the listing fails
        """
        try:
            response = self._service.users().threads().list(
                userId=USER_ID,
                q=f"newer_than:{since_days}d",
                maxResults=max_count,
            ).execute()
        except READ_ERRORS as e:
            raise InboxError(operation="list_threads", error_message=str(e)) from e

        thread_ids = [t["id"] for t in response.get("threads", []) if t.get("id")]
        log.debug("gmail_threads_listed", count=len(thread_ids), since_days=since_days)
        return thread_ids[:max_count]

    def get_thread(self, thread_id: str) -> SupportThread:
        """
        Fetch a thread with messages sorted by arrival.

        Raises:
            InboxError: If the fetch fails
        """
        try:
            data = self._service.users().threads().get(
                userId=USER_ID,
                id=thread_id,
                format="full",
            ).execute()
            return _parse_thread(thread_id, data)
        except READ_ERRORS as e:
            raise InboxError(operation="get_thread", thread_id=thread_id, error_message=str(e)) from e

    def _build_reply(self, thread: SupportThread, body: str) -> EmailMessage | None:
        last = thread.last_message
        if last is None:
            log.warning("gmail_reply_without_messages", thread_id=thread.id)
            return None

        message = EmailMessage()
        message["To"] = last.sender
        message["From"] = self.get_self_address()
        message["Subject"] = reply_subject(thread.subject)
        if last.message_id:
            message["In-Reply-To"] = _angle_bracketed(last.message_id)
            message["References"] = _angle_bracketed(last.message_id)
        message.set_content(body)
        return message

    def send_reply(self, thread: SupportThread, body: str) -> bool:
        """Send a plain-text reply to the last sender, threaded. Returns success."""
        full_body = body.strip()
        if self._footer:
            full_body = f"{full_body}\n\n---\n{self._footer}"

        try:
            message = self._build_reply(thread, full_body)
            if message is None:
                return False
            self._service.users().messages().send(
                userId=USER_ID,
                body={"raw": _encode_raw(message), "threadId": thread.id},
            ).execute()
        except (HttpError, InboxError) as e:
            log.error("gmail_send_failed", thread_id=thread.id, error=str(e))
            return False

        log.info("gmail_reply_sent", thread_id=thread.id, to=thread.customer_address)
        return True

    def create_draft(self, thread: SupportThread, body: str) -> bool:
        """Create a threaded reply draft (never sent). Returns success."""
        try:
            message = self._build_reply(thread, body)
            if message is None:
                return False
            self._service.users().drafts().create(
                userId=USER_ID,
                body={"message": {"raw": _encode_raw(message), "threadId": thread.id}},
            ).execute()
        except (HttpError, InboxError) as e:
            log.error("gmail_draft_failed", thread_id=thread.id, error=str(e))
            return False

        log.info("gmail_draft_created", thread_id=thread.id)
        return True

    def get_or_create_label(self, name: str) -> str | None:
        """Id of the user label called ``name``, creating it if needed."""
        try:
            response = self._service.users().labels().list(userId=USER_ID).execute()
            for label in response.get("labels", []):
                if label.get("name") == name and label.get("id"):
                    return label["id"]

            created = self._service.users().labels().create(
                userId=USER_ID,
                body={
                    "name": name,
                    "labelListVisibility": "labelShow",
                    "messageListVisibility": "show",
                },
            ).execute()
        except HttpError as e:
            log.error("gmail_label_failed", label=name, error=str(e))
            return None

        log.info("gmail_label_created", label=name, label_id=created.get("id"))
        return created.get("id")

    def mark_handled(self, thread_id: str, label_id: str) -> None:
        """
        Star the thread and apply ``label_id``. Unread state is left alone.

        Raises:
            InboxError: If the modify call fails
        """
        try:
            self._service.users().threads().modify(
                userId=USER_ID,
                id=thread_id,
                body={"addLabelIds": ["STARRED", label_id]},
            ).execute()
        except HttpError as e:
            raise InboxError(operation="mark_handled", thread_id=thread_id, error_message=str(e)) from e
        log.info("gmail_thread_marked_handled", thread_id=thread_id, label_id=label_id)

    def archive_thread(self, thread_id: str) -> None:
        """
        Remove the thread from INBOX. Unread state is left alone.

        Raises:
            InboxError: If the modify call fails
        """
        try:
            self._service.users().threads().modify(
                userId=USER_ID,
                id=thread_id,
                body={"removeLabelIds": ["INBOX"]},
            ).execute()
        except HttpError as e:
            raise InboxError(operation="archive", thread_id=thread_id, error_message=str(e)) from e
        log.info("gmail_thread_archived", thread_id=thread_id)

    @staticmethod
    def thread_link(thread_id: str) -> str:
        return f"https://mail.google.com/mail/u/0/#all/{thread_id}"
