# ============================================================================
# src/health_vault/llm/__init__.py
# ============================================================================
"""
LLM module - chat completion clients and prompts
"""

from .base import BaseLLMClient, BackendType
from .chat_completions_client import ChatCompletionsClient
from .client import create_client
from .prompts import EXTRACTION_SYSTEM_PROMPT, CHAT_SYSTEM_PROMPT

__all__ = [
    "BaseLLMClient",
    "BackendType",
    "ChatCompletionsClient",
    "create_client",
    "EXTRACTION_SYSTEM_PROMPT",
    "CHAT_SYSTEM_PROMPT",
]
