"""
LLM Configuration Settings

Pydantic-settings based configuration for the Bedrock model used by
triage and reply generation. Overridable via SUPPORT_ environment variables.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    """
    LLM-specific settings for AWS Bedrock integration.

    Environment variables are prefixed with SUPPORT_ and are case-insensitive.
    Example: SUPPORT_LLM_ENABLED=false
    """

    model_config = SettingsConfigDict(
        env_prefix="SUPPORT_",
        env_file=[".env.local", ".env"],  # Try .env.local first
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    llm_enabled: bool = Field(
        default=True,
        description="Global toggle. When false every model call fails and items escalate.",
    )

    # AWS Bedrock Configuration
    bedrock_model_id: str = Field(
        default="anthropic.claude-3-5-sonnet-20240620-v1:0",
        description="AWS Bedrock model ID",
    )
    bedrock_region: str = Field(
        default="us-west-2",
        description="AWS region for Bedrock service",
    )
    bedrock_endpoint_url: str | None = Field(
        default=None,
        description="Custom Bedrock endpoint URL (for local testing or VPC endpoints)",
    )

    # LLM Parameters
    llm_temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="LLM sampling temperature (lower = more deterministic)",
    )
    llm_max_tokens: int = Field(
        default=2048,
        gt=0,
        le=100000,
        description="Maximum tokens for LLM response",
    )

    # Timeout Configuration
    llm_timeout_seconds: float = Field(
        default=120.0,
        gt=0.0,
        description="Read timeout for a single model call in seconds",
    )


@lru_cache(maxsize=1)
def get_llm_settings() -> LLMSettings:
    """
    Get cached LLM settings instance.

    For testing, use LLMSettings() directly with overrides.
    """
    return LLMSettings()
