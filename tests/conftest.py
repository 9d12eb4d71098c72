"""
Pytest Configuration and Shared Fixtures

Provides moto DynamoDB mocking, a throwaway brain directory, thread
builders and test utilities.
"""

import os
from pathlib import Path
from typing import Callable

import boto3
import pytest
from moto import mock_aws

# Set test environment before importing application modules
os.environ["SUPPORT_LEDGER_TABLE_NAME"] = "TestSupportLedger"
os.environ["SUPPORT_AWS_REGION"] = "us-west-2"
os.environ["SUPPORT_ENVIRONMENT"] = "development"
os.environ["AWS_DEFAULT_REGION"] = "us-west-2"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"

from support_agent.shared.config import Settings
from support_agent.shared.models.thread import SupportThread, ThreadMessage
from support_agent.shared.tools.brain import Brain
from support_agent.shared.tools.ledger import Ledger

TABLE_NAME = "TestSupportLedger"
SUPPORT_ADDRESS = "support@shop.example.com"
CUSTOMER_ADDRESS = "jane@customer.example"


# --- Settings / Filesystem Fixtures ---


@pytest.fixture
def brain_dir(tmp_path: Path) -> Path:
    """Minimal brain: persona, both skills and two policy documents."""
    root = tmp_path / "brain"
    (root / "skills" / "support-triage").mkdir(parents=True)
    (root / "skills" / "reply-generator").mkdir(parents=True)
    (root / "knowledge-base").mkdir(parents=True)

    (root / "SOUL.md").write_text("You are the support voice of Example Shop.", encoding="utf-8")
    (root / "skills" / "support-triage" / "SKILL.md").write_text(
        "Classify the email. Respond with JSON.", encoding="utf-8"
    )
    (root / "skills" / "reply-generator" / "SKILL.md").write_text(
        "Write a friendly reply.", encoding="utf-8"
    )
    (root / "knowledge-base" / "shipping-policy.md").write_text(
        "Orders ship within 2 business days.", encoding="utf-8"
    )
    (root / "knowledge-base" / "refund-policy.md").write_text(
        "Refunds within 30 days. Final sale items are not refundable.", encoding="utf-8"
    )
    return root


@pytest.fixture
def brain(brain_dir: Path) -> Brain:
    return Brain(brain_dir)


@pytest.fixture
def settings(tmp_path: Path, brain_dir: Path) -> Settings:
    """Settings pointing at temporary brain and data directories."""
    return Settings(
        brain_path=brain_dir,
        data_dir=tmp_path / "data",
        ledger_table_name=TABLE_NAME,
        aws_region="us-west-2",
    )


# --- AWS Mocking Fixtures ---


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    return {
        "aws_access_key_id": "testing",
        "aws_secret_access_key": "testing",
        "region_name": "us-west-2",
    }


@pytest.fixture
def mock_dynamodb(aws_credentials):
    """Create the mocked ledger table."""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", **aws_credentials)
        table = dynamodb.create_table(
            TableName=TABLE_NAME,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        table.meta.client.get_waiter("table_exists").wait(TableName=TABLE_NAME)
        yield dynamodb


@pytest.fixture
def ledger(mock_dynamodb, settings: Settings) -> Ledger:
    """Ledger bound to the mocked table."""
    return Ledger(settings)


# --- Thread Fixtures ---


@pytest.fixture
def make_thread() -> Callable[..., SupportThread]:
    """
    Factory for single- or multi-message threads.

    The last message gets ``message_id`` and ``sender``; earlier messages
    come from ``history`` as (sender, body) pairs.
    """

    def _make(
        thread_id: str = "thread-1",
        body: str = "Where is my order #1001?",
        sender: str = f"Jane Doe <{CUSTOMER_ADDRESS}>",
        message_id: str | None = "<msg-1@customer.example>",
        subject: str = "Order status",
        history: list[tuple[str, str]] | None = None,
    ) -> SupportThread:
        messages = [
            ThreadMessage(
                id=f"{thread_id}-h{index}",
                sender=h_sender,
                subject=subject,
                date="Mon, 3 Feb 2025 10:00:00 +0000",
                body=h_body,
                message_id=f"<{thread_id}-h{index}@example>",
                internal_date=1738576800000 + index,
            )
            for index, (h_sender, h_body) in enumerate(history or [])
        ]
        messages.append(
            ThreadMessage(
                id=f"{thread_id}-last",
                sender=sender,
                subject=subject,
                date="Tue, 4 Feb 2025 10:00:00 +0000",
                body=body,
                message_id=message_id,
                internal_date=1738663200000,
            )
        )
        return SupportThread(id=thread_id, subject=subject, messages=messages)

    return _make


@pytest.fixture
def thread(make_thread) -> SupportThread:
    return make_thread()
