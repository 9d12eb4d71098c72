"""
LLM Integration Module

Bedrock model access shared by triage and reply generation.
"""

from support_agent.shared.llm.bedrock_client import (
    BedrockLLMClient,
    LLMClient,
    LLMInvocationError,
    get_llm_client,
    strip_code_fence,
)
from support_agent.shared.llm.config import LLMSettings, get_llm_settings

__all__ = [
    "BedrockLLMClient",
    "LLMClient",
    "LLMInvocationError",
    "LLMSettings",
    "get_llm_client",
    "get_llm_settings",
    "strip_code_fence",
]
