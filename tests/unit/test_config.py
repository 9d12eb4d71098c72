"""
Unit tests for configuration, tenant loading and the memory log.
"""

import json
from datetime import datetime, timezone

import pytest

from support_agent.shared.config import (
    Settings,
    TenantConfig,
    load_tenant_config,
    normalize_store_url,
    tenant_id_for,
)
from support_agent.shared.tools.memory import EMPTY_MEMORY_SUMMARY, MemoryLog


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.poll_interval_seconds == 600
        assert settings.newer_than_days == 14
        assert settings.escalation_label_name == "Support Agent: Escalation"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("SUPPORT_POLL_INTERVAL_SECONDS", "15")
        monkeypatch.setenv("SUPPORT_TELEGRAM_CHAT_ID", "42")

        settings = Settings(_env_file=None)

        assert settings.poll_interval_seconds == 15
        assert settings.telegram_chat_id == "42"

    def test_memory_dir_under_data_dir(self, settings):
        assert settings.memory_dir == settings.data_dir / "memory"

    def test_dynamodb_endpoint(self):
        settings = Settings(_env_file=None, dynamodb_endpoint_url="http://localhost:8000")
        assert settings.dynamodb_config["endpoint_url"] == "http://localhost:8000"


class TestTenantConfig:
    """Tests for tenant loading."""

    def test_normalize_store_url(self):
        assert normalize_store_url("shop.example.com/admin") == "https://shop.example.com"
        assert normalize_store_url("http://shop.example.com/") == "http://shop.example.com"
        assert normalize_store_url("  ") == ""

    def test_override_wins(self, settings, brain_dir):
        (brain_dir / "tenant.json").write_text(
            json.dumps({"shopify_store_url": "https://other.example.com"}), encoding="utf-8"
        )
        settings = settings.model_copy(update={"tenant_override_store_url": "override.example.com"})

        tenant = load_tenant_config(settings)

        assert tenant.shopify_store_url == "https://override.example.com"

    def test_reads_tenant_json(self, settings, brain_dir):
        (brain_dir / "tenant.json").write_text(
            json.dumps(
                {
                    "shopify_store_url": "shop.example.com",
                    "brand_name": "Example Shop",
                    "support_email": "support@shop.example.com",
                }
            ),
            encoding="utf-8",
        )

        tenant = load_tenant_config(settings)

        assert tenant.shopify_store_url == "https://shop.example.com"
        assert tenant.brand_name == "Example Shop"

    @pytest.mark.parametrize("content", [None, "{not json", json.dumps({"brand_name": "x"})])
    def test_missing_or_invalid_is_none(self, settings, brain_dir, content):
        if content is not None:
            (brain_dir / "tenant.json").write_text(content, encoding="utf-8")

        assert load_tenant_config(settings) is None

    def test_tenant_id(self):
        assert tenant_id_for(TenantConfig(shopify_store_url="https://shop.example.com")) == "shop.example.com"
        assert tenant_id_for(None) == "default"


class TestMemoryLog:
    """Tests for MemoryLog."""

    NOW = datetime(2025, 2, 4, 12, 0, tzinfo=timezone.utc)

    def test_empty_summary(self, tmp_path):
        assert MemoryLog(tmp_path / "memory").summary(self.NOW) == EMPTY_MEMORY_SUMMARY

    def test_append_creates_dated_file(self, tmp_path):
        memory = MemoryLog(tmp_path / "memory")

        memory.append("- Thread t1 (Hi): action=suppressed", now=self.NOW)

        path = tmp_path / "memory" / "2025-02-04.md"
        assert path.read_text(encoding="utf-8") == "\n- Thread t1 (Hi): action=suppressed\n"

    def test_summary_covers_yesterday_and_today(self, tmp_path):
        memory = MemoryLog(tmp_path / "memory")
        memory.append("old", now=datetime(2025, 2, 2, tzinfo=timezone.utc))
        memory.append("yesterday", now=datetime(2025, 2, 3, tzinfo=timezone.utc))
        memory.append("today", now=self.NOW)

        summary = memory.summary(self.NOW)

        assert "old" not in summary
        assert summary.index("## 2025-02-03\nyesterday") < summary.index("## 2025-02-04\ntoday")

    def test_undecodable_day_skipped(self, tmp_path):
        memory = MemoryLog(tmp_path / "memory")
        memory.append("today", now=self.NOW)
        (tmp_path / "memory" / "2025-02-03.md").write_bytes(b"caf\xe9")

        assert memory.summary(self.NOW) == "## 2025-02-04\ntoday"
