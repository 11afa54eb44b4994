# ============================================================================
# src/health_vault/llm/base.py
# ============================================================================
"""
Base LLM Client Interface

Defines the abstract interface that all language model backends must implement.
Supported backends:
- chat_completions: any OpenAI-compatible /chat/completions endpoint (Groq by default)
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional
from enum import Enum
import logging


class BackendType(Enum):
    """Supported inference backends."""
    CHAT_COMPLETIONS = "chat_completions"


class BaseLLMClient(ABC):
    """
    Abstract base class for LLM clients.

    All backends must implement:
    - complete(): one chat completion, returns the reply text
    - is_configured(): whether a credential is available
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logging.getLogger(self.__class__.__name__)

        self._request_count = 0
        self._failure_count = 0
        self._total_request_time = 0.0

    @property
    @abstractmethod
    def backend_type(self) -> BackendType:
        """Return the backend type."""
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model identifier."""
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """True when the backend has what it needs to make a call."""
        pass

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Run one chat completion.

        Args:
            system_prompt: Instructions sent as the system message
            messages: Conversation turns, each {"role": ..., "content": ...}
            temperature: Sampling temperature (0.0 = deterministic)
            max_tokens: Maximum tokens to generate

        Returns:
            The assistant reply text ("" when the backend returned no choices)

        Raises:
            ModelHTTPError: the request failed; .status carries the HTTP
                status, or None when no response was received
        """
        pass

    async def close(self):
        """Release network resources. Backends without any can ignore this."""
        pass

    def get_statistics(self) -> Dict[str, Any]:
        """Get request statistics."""
        avg_time = (
            self._total_request_time / self._request_count
            if self._request_count > 0
            else 0.0
        )

        return {
            "backend": self.backend_type.value,
            "model": self.model_name,
            "request_count": self._request_count,
            "failure_count": self._failure_count,
            "total_request_time": self._total_request_time,
            "average_request_time": avg_time,
        }
