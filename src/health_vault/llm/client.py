# ============================================================================
# src/health_vault/llm/client.py
# ============================================================================
"""
LLM Client Factory

Provides a unified interface for creating language model clients.

Usage:
    from health_vault.llm.client import create_client

    client = create_client()                       # from .env / environment
    client = create_client({'llm_api_key': '...'})  # explicit override

    reply = await client.complete(system_prompt, [{"role": "user", "content": "Hi"}])
"""

from typing import Dict, Any, Optional
import logging

from .base import BaseLLMClient
from .chat_completions_client import ChatCompletionsClient
from ..core.config import get_config


DEFAULT_BACKEND = "chat_completions"

_logger = logging.getLogger(__name__)


def create_client(config: Optional[Dict[str, Any]] = None) -> BaseLLMClient:
    """
    Factory function to create an LLM client.

    Configuration is loaded from the environment and merged with any passed
    config. Passed config values take precedence.

    Args:
        config: Configuration dict; "backend" selects the implementation
            (only "chat_completions" today)

    Raises:
        ValueError: If backend type is not supported
    """
    config = {**get_config(), **(config or {})}
    backend = config.get('backend', DEFAULT_BACKEND).lower()

    if backend == "chat_completions":
        client = ChatCompletionsClient(config)
    else:
        raise ValueError(
            f"Unknown backend: {backend}. "
            f"Supported backends: chat_completions"
        )

    _logger.debug(f"Created {backend} client for {client.model_name}")
    return client
