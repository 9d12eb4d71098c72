"""
Configuration Management

Pydantic-settings based configuration for the support agent.
All settings can be overridden via environment variables.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Literal
from urllib.parse import urlparse

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import structlog

log = structlog.get_logger()


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables are prefixed with SUPPORT_ and are case-insensitive.
    Example: SUPPORT_POLL_INTERVAL_SECONDS=15
    """

    model_config = SettingsConfigDict(
        env_prefix="SUPPORT_",
        env_file=[".env.local", ".env"],  # Try .env.local first
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Filesystem layout
    brain_path: Path = Field(
        default=Path("brain"),
        description="Read-only brain directory (SOUL.md, skills/, knowledge-base/, tenant.json)",
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Writable data directory; memory logs go under data/memory/",
    )

    # Heartbeat
    poll_interval_seconds: float = Field(
        default=600.0,
        gt=0,
        description="Delay between the end of one tick and the start of the next",
    )
    newer_than_days: int = Field(
        default=14,
        ge=1,
        description="Only threads updated within this many days are listed",
    )
    max_threads_per_poll: int = Field(
        default=50,
        gt=0,
        description="Maximum number of threads considered per tick",
    )
    tick_timeout_seconds: float = Field(
        default=480.0,
        gt=0,
        description="Wall-clock deadline for a single tick",
    )

    # Health probe
    health_host: str = Field(default="0.0.0.0", description="Health server bind address")
    health_port: int = Field(default=8080, description="Health server port")
    health_stale_seconds: float = Field(
        default=900.0,
        gt=0,
        description="Report unhealthy once the last successful tick is older than this",
    )

    # Ledger (DynamoDB)
    ledger_table_name: str = Field(
        default="SupportLedger",
        description="DynamoDB table holding processed-message records",
    )
    ledger_create_table: bool = Field(
        default=False,
        description="Create the ledger table at startup (local development)",
    )
    dynamodb_endpoint_url: str | None = Field(
        default=None,
        description="DynamoDB endpoint URL (for DynamoDB Local)",
    )
    aws_region: str = Field(default="us-west-2", description="AWS region")

    # Gmail
    gmail_client_id: str = Field(default="", description="Gmail OAuth client id")
    gmail_client_secret: str = Field(default="", description="Gmail OAuth client secret")
    gmail_refresh_token: str = Field(default="", description="Gmail OAuth refresh token")
    escalation_label_name: str = Field(
        default="Support Agent: Escalation",
        description="Label applied to threads handed to a human",
    )

    # Telegram alerts
    telegram_bot_token: str = Field(default="", description="Telegram bot token")
    telegram_chat_id: str = Field(default="", description="Telegram chat receiving alerts")

    # Shopify
    shopify_access_token: str = Field(
        default="",
        description="Offline Admin API token injected at boot",
    )
    tenant_override_store_url: str = Field(
        default="",
        description="Store URL override for local testing (skips tenant.json)",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for commerce and alert HTTP calls",
    )

    # Application
    environment: Literal["development", "staging", "production"] = Field(
        default="production",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    @property
    def memory_dir(self) -> Path:
        """Directory of per-day memory logs."""
        return self.data_dir / "memory"

    @property
    def dynamodb_config(self) -> dict:
        """DynamoDB client configuration."""
        config = {"region_name": self.aws_region}
        if self.dynamodb_endpoint_url:
            config["endpoint_url"] = self.dynamodb_endpoint_url
        return config

    @property
    def has_gmail_credentials(self) -> bool:
        return bool(
            self.gmail_client_id
            and self.gmail_client_secret
            and self.gmail_refresh_token
        )


class TenantConfig(BaseModel):
    """Per-store tenant configuration (brain/tenant.json)."""

    shopify_store_url: str
    brand_name: str | None = None
    support_email: str | None = None


def normalize_store_url(url: str) -> str:
    """Reduce a store URL to its https origin (``shop.example.com`` -> ``https://shop.example.com``)."""
    trimmed = url.strip()
    if not trimmed:
        return trimmed
    parsed = urlparse(trimmed if trimmed.startswith("http") else f"https://{trimmed}")
    if not parsed.netloc:
        return trimmed
    return f"{parsed.scheme}://{parsed.netloc}"


def load_tenant_config(settings: Settings | None = None) -> TenantConfig | None:
    """
    Load tenant config.

    The SUPPORT_TENANT_OVERRIDE_STORE_URL override wins; otherwise
    brain/tenant.json is read. Returns None (commerce lookups disabled)
    when no store URL is available.
    """
    settings = settings or get_settings()

    override = settings.tenant_override_store_url.strip()
    if override:
        return TenantConfig(shopify_store_url=normalize_store_url(override))

    tenant_path = settings.brain_path / "tenant.json"
    if not tenant_path.exists():
        log.warning(
            "tenant_config_missing",
            path=str(tenant_path),
            hint="copy tenant.json.example to tenant.json and set shopify_store_url",
        )
        return None

    try:
        data = json.loads(tenant_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        log.warning("tenant_config_unreadable", path=str(tenant_path), error=str(e))
        return None

    url = data.get("shopify_store_url") if isinstance(data, dict) else None
    if not isinstance(url, str) or not url.strip():
        log.warning("tenant_config_missing_store_url", path=str(tenant_path))
        return None

    return TenantConfig(
        shopify_store_url=normalize_store_url(url),
        brand_name=data.get("brand_name") if isinstance(data.get("brand_name"), str) else None,
        support_email=data.get("support_email") if isinstance(data.get("support_email"), str) else None,
    )


def tenant_id_for(tenant: TenantConfig | None) -> str:
    """Stable ledger partition key: the store hostname, or ``default``."""
    if tenant is None or not tenant.shopify_store_url:
        return "default"
    hostname = urlparse(normalize_store_url(tenant.shopify_store_url)).hostname
    return hostname or "default"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are loaded only once.
    Call Settings.model_validate({}) in tests to override.
    """
    return Settings()
