# ============================================================================
# src/health_vault/extractors/extraction_client.py
# ============================================================================
"""
Extraction Client

Sends OCR text to the language model under the strict extraction prompt and
returns the raw reply text. Parsing is left to response_parser.

Retry policy:
- At most max_attempts calls (3 by default)
- Only 5xx, 429 and transport failures (no status) are retried
- Any other 4xx fails on the spot
- Linear backoff: 1s after the first failure, 2s after the second
- Exhaustion raises ServiceUnavailableError carrying the last status,
  or RateLimitedError when that status was 429
"""

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Dict, Optional

from ..llm.base import BaseLLMClient
from ..llm.prompts import EXTRACTION_SYSTEM_PROMPT, build_extraction_user_prompt
from ..utils.exceptions import ModelHTTPError, RateLimitedError, ServiceUnavailableError

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 10000

_UNSAFE_CHARS = re.compile(r"[<>{}\\]")


def sanitize_text(text: str, max_length: int = MAX_TEXT_LENGTH) -> str:
    """Strip angle/curly brackets and backslashes, then cap the length."""
    return _UNSAFE_CHARS.sub("", text or "")[:max_length]


class ExtractionClient:
    """
    Strict-mode extraction over any BaseLLMClient.

    sleep is injectable so the backoff schedule can be observed in tests.
    """

    def __init__(
        self,
        llm_client: BaseLLMClient,
        config: Optional[Dict[str, Any]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        config = config or {}
        self.llm_client = llm_client
        self.max_attempts = max(1, int(config.get('max_attempts', 3)))
        self.max_text_length = int(config.get('max_text_length', MAX_TEXT_LENGTH))
        self.temperature = float(config.get('extraction_temperature', 0.0))
        self.max_tokens = int(config.get('extraction_max_tokens', 3000))
        self._sleep = sleep

    async def extract(self, raw_text: str) -> str:
        """
        Run the extraction prompt over raw_text.

        Returns:
            The model's reply text, unparsed

        Raises:
            RateLimitedError: last attempt was rejected with 429
            ServiceUnavailableError: retries exhausted, a non-retryable 4xx, or
                a transport failure with no status
        """
        sanitized = sanitize_text(raw_text, self.max_text_length)
        messages = [{"role": "user", "content": build_extraction_user_prompt(sanitized)}]

        last_error: Optional[ModelHTTPError] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self.llm_client.complete(
                    EXTRACTION_SYSTEM_PROMPT,
                    messages,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                )
            except ModelHTTPError as e:
                last_error = e
                logger.error(
                    f"Model error (attempt {attempt}/{self.max_attempts}): "
                    f"status {e.status}: {e}"
                )

                if not e.retryable:
                    break

                if attempt < self.max_attempts:
                    await self._sleep(float(attempt))

        status = last_error.status if last_error else None
        if status == 429:
            raise RateLimitedError(
                "AI model rate limit reached. Please wait a minute and try again."
            ) from last_error
        raise ServiceUnavailableError(
            "AI service temporarily unavailable. Please try again.",
            status=status,
        ) from last_error
