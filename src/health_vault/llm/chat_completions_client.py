# ============================================================================
# src/health_vault/llm/chat_completions_client.py
# ============================================================================
"""
Chat Completions Client

Talks to any OpenAI-compatible /chat/completions endpoint. The default
deployment points at Groq (llama-3.3-70b-versatile).

This client makes exactly one HTTP request per call. Retry policy lives
with the caller (ExtractionClient) because extraction and chat want
different behaviour on failure.
"""

import aiohttp
import asyncio
from typing import Dict, Any, List, Optional
from datetime import datetime

from .base import BaseLLMClient, BackendType
from ..utils.exceptions import ConfigurationError, ModelHTTPError


DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_MODEL = "llama-3.3-70b-versatile"


class ChatCompletionsClient(BaseLLMClient):
    """
    OpenAI-compatible chat completions client.

    Config options:
        llm_api_key: Bearer token (no key = not configured)
        llm_base_url: API root (default: https://api.groq.com/openai/v1)
        llm_model: Model name (default: llama-3.3-70b-versatile)
        request_timeout: Socket read timeout in seconds (default: 120)
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)

        self.api_key = self.config.get('llm_api_key', '')
        self.base_url = self.config.get('llm_base_url', DEFAULT_BASE_URL).rstrip('/')
        self._model_name = self.config.get('llm_model', DEFAULT_MODEL)
        self.timeout = self.config.get('request_timeout', 120)

        # HTTP session (created lazily, tied to event loop)
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_loop: Optional[asyncio.AbstractEventLoop] = None

        self.logger.info(
            f"Initialized chat completions client: {self.base_url} / {self._model_name} "
            f"(configured={self.is_configured()})"
        )

    @property
    def backend_type(self) -> BackendType:
        return BackendType.CHAT_COMPLETIONS

    @property
    def model_name(self) -> str:
        return self._model_name

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session for current event loop."""
        try:
            current_loop = asyncio.get_running_loop()
        except RuntimeError:
            current_loop = None

        needs_new_session = (
            self._session is None
            or self._session.closed
            or self._session_loop is None
            or self._session_loop != current_loop
            or self._session_loop.is_closed()
        )

        if needs_new_session:
            if self._session is not None and not self._session.closed:
                try:
                    await self._session.close()
                except RuntimeError as e:
                    # Session bound to a loop that no longer runs
                    self.logger.debug(f"Could not close stale session: {e}")

            timeout = aiohttp.ClientTimeout(
                total=None,
                sock_connect=30,
                sock_read=self.timeout,
            )
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._session_loop = current_loop

        return self._session

    async def close(self):
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self._session_loop = None

    async def complete(
        self,
        system_prompt: str,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Send one chat completion request.

        Returns:
            choices[0].message.content, or "" if the reply has no content
        """
        if not self.is_configured():
            raise ConfigurationError("No model API key configured (set GROQ_API_KEY)")

        start_time = datetime.now()

        payload: Dict[str, Any] = {
            "model": self._model_name,
            "messages": [{"role": "system", "content": system_prompt}, *messages],
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            session = await self._get_session()
            async with session.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=headers,
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    self._failure_count += 1
                    raise ModelHTTPError(
                        f"Model API error ({response.status}): {error_text[:200]}",
                        status=response.status,
                    )
                data = await response.json()

        except aiohttp.ClientConnectorError as e:
            self._failure_count += 1
            raise ModelHTTPError(f"Cannot connect to {self.base_url}: {e}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._failure_count += 1
            raise ModelHTTPError(f"Model request failed: {type(e).__name__}: {e}") from e

        request_time = (datetime.now() - start_time).total_seconds()
        self._request_count += 1
        self._total_request_time += request_time

        usage = data.get('usage') or {}
        self.logger.info(
            f"Completion from {self._model_name} in {request_time:.2f}s "
            f"(prompt_tokens={usage.get('prompt_tokens', 0)}, "
            f"completion_tokens={usage.get('completion_tokens', 0)})"
        )

        choices = data.get('choices') or []
        if not choices:
            return ""
        message = choices[0].get('message') or {}
        return message.get('content') or ""

    def get_statistics(self) -> Dict[str, Any]:
        stats = super().get_statistics()
        stats["base_url"] = self.base_url
        return stats
