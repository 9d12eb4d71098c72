"""
Bedrock LLM Client

Text-in, text-out access to Claude via AWS Bedrock using the Strands
Agents SDK. Transport retries are disabled and the read timeout is bounded
so a hung call cannot outlive the tick deadline by much.
"""

from functools import lru_cache
from typing import Protocol

import structlog
from botocore.config import Config as BotocoreConfig
from strands import Agent
from strands.models import BedrockModel

from support_agent.shared.llm.config import LLMSettings, get_llm_settings


log = structlog.get_logger()


class LLMInvocationError(Exception):
    """Raised when the model call fails (network, throttling, timeout, disabled)."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class LLMClient(Protocol):
    """Anything that can turn a prompt into text."""

    def invoke_raw(self, prompt: str, system_prompt: str | None = None) -> str: ...


def strip_code_fence(text: str, languages: tuple[str, ...] = ("json",)) -> str:
    """
    Remove one surrounding markdown code fence.

    ``languages`` lists the info strings accepted after the opening backticks;
    a bare fence is always accepted.
    """
    cleaned = text.strip()
    if not cleaned.startswith("```"):
        return cleaned

    first_newline = cleaned.find("\n")
    if first_newline == -1:
        return cleaned
    info = cleaned[3:first_newline].strip().lower()
    if info and info not in languages:
        return cleaned

    body = cleaned[first_newline + 1:]
    if body.rstrip().endswith("```"):
        body = body.rstrip()[:-3]
    return body.strip()


class BedrockLLMClient:
    """
    Wrapper for AWS Bedrock Claude invocation.

    Usage:
        client = BedrockLLMClient()
        text = client.invoke_raw(
            prompt="Classify this email...",
            system_prompt="You are a support triage assistant...",
        )
    """

    def __init__(self, settings: LLMSettings | None = None):
        self._settings = settings or get_llm_settings()
        self._model: BedrockModel | None = None

    @property
    def settings(self) -> LLMSettings:
        return self._settings

    def _get_model(self) -> BedrockModel:
        """Get or create the Bedrock model instance."""
        if self._model is None:
            model_kwargs = {
                "model_id": self._settings.bedrock_model_id,
                "region_name": self._settings.bedrock_region,
                "temperature": self._settings.llm_temperature,
                "max_tokens": self._settings.llm_max_tokens,
                "boto_client_config": BotocoreConfig(
                    read_timeout=self._settings.llm_timeout_seconds,
                    connect_timeout=10,
                    retries={"max_attempts": 1, "mode": "standard"},
                ),
            }

            if self._settings.bedrock_endpoint_url:
                model_kwargs["endpoint_url"] = self._settings.bedrock_endpoint_url

            self._model = BedrockModel(**model_kwargs)

            log.debug(
                "bedrock_model_initialized",
                model_id=self._settings.bedrock_model_id,
                region=self._settings.bedrock_region,
                read_timeout=self._settings.llm_timeout_seconds,
            )

        return self._model

    def _get_agent(self, system_prompt: str | None = None) -> Agent:
        """
        Create a fresh Strands Agent.

        A new agent per call keeps conversation history from leaking
        between unrelated threads.
        """
        agent_kwargs = {
            "model": self._get_model(),
            "callback_handler": None,
        }

        if system_prompt:
            agent_kwargs["system_prompt"] = system_prompt

        return Agent(**agent_kwargs)

    def invoke_raw(
        self,
        prompt: str,
        system_prompt: str | None = None,
    ) -> str:
        """
        Invoke Claude and return the raw text response.

        Raises:
            LLMInvocationError: If the LLM call fails
        """
        if not self._settings.llm_enabled:
            raise LLMInvocationError("LLM is disabled via settings")

        log.debug("llm_invoke_start", prompt_chars=len(prompt))

        try:
            agent = self._get_agent(system_prompt)
            response = agent(prompt)
            response_text = str(response)
        except Exception as e:
            log.error(
                "llm_raw_invoke_error",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise LLMInvocationError(
                f"Failed to invoke LLM: {e}",
                original_error=e,
            ) from e

        log.debug(
            "llm_raw_response",
            response_preview=response_text[:500],
        )
        return response_text


@lru_cache(maxsize=1)
def get_llm_client() -> BedrockLLMClient:
    """
    Get cached Bedrock LLM client instance.

    For testing, pass a mock client to the components directly.
    """
    return BedrockLLMClient()
