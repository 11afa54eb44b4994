# ============================================================================
# src/health_vault/chat/assistant.py
# ============================================================================
"""
Health Chat Assistant

Answers questions over the user's profile and health snapshot. The snapshot
is rendered into the system prompt with [Source: file, date] tags so the
model can cite the documents each value came from.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from ..core.records import HealthSnapshot, Profile
from ..llm.base import BaseLLMClient
from ..llm.prompts import build_chat_system_prompt, build_health_context
from ..utils.exceptions import ModelHTTPError, ServiceUnavailableError, ValidationError

logger = logging.getLogger(__name__)

MAX_QUESTION_LENGTH = 5000
MAX_HISTORY_MESSAGES = 20

NOT_CONFIGURED_REPLY = (
    "The health assistant is not configured yet. Please set the GROQ_API_KEY "
    "environment variable to enable AI chat."
)
RATE_LIMITED_REPLY = "⏳ The AI model is rate-limited right now. Please wait a moment and try again."
EMPTY_REPLY = "I could not generate a response. Please try again."

_UNSAFE_CHARS = re.compile(r"[<>{}\\]")


def sanitize_input(text: str, max_length: int = MAX_QUESTION_LENGTH) -> str:
    return _UNSAFE_CHARS.sub("", text or "")[:max_length]


class ChatAssistant:

    def __init__(self, llm_client: BaseLLMClient, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.llm_client = llm_client
        self.temperature = float(config.get('chat_temperature', 0.7))
        self.max_tokens = int(config.get('chat_max_tokens', 2048))
        self.max_question_length = int(config.get('max_question_length', MAX_QUESTION_LENGTH))
        self.max_history_messages = int(config.get('max_history_messages', MAX_HISTORY_MESSAGES))

    def build_messages(
        self,
        question: str,
        history: Optional[Iterable[Dict[str, str]]] = None,
    ) -> List[Dict[str, str]]:
        """
        Recent history plus the question, all sanitized.

        Only the last max_history_messages entries are kept, and entries
        whose role is not user/assistant are dropped.
        """
        recent = list(history or [])[-self.max_history_messages:] if self.max_history_messages > 0 else []
        messages = [
            {
                "role": entry.get("role"),
                "content": sanitize_input(str(entry.get("content") or ""), self.max_question_length),
            }
            for entry in recent
            if isinstance(entry, dict) and entry.get("role") in ("user", "assistant")
        ]
        messages.append({"role": "user", "content": question})
        return messages

    async def reply(
        self,
        question: str,
        profile: Optional[Profile] = None,
        snapshot: Optional[HealthSnapshot] = None,
        history: Optional[Iterable[Dict[str, str]]] = None,
    ) -> str:
        """
        Answer one question.

        Raises:
            ValidationError: the question is blank after sanitizing
            ServiceUnavailableError: the model call failed (other than 429)
        """
        question = sanitize_input(question, self.max_question_length)
        if not question.strip():
            raise ValidationError("No question provided")

        if not self.llm_client.is_configured():
            return NOT_CONFIGURED_REPLY

        system_prompt = build_chat_system_prompt(build_health_context(profile, snapshot))
        messages = self.build_messages(question, history)

        try:
            reply = await self.llm_client.complete(
                system_prompt,
                messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except ModelHTTPError as e:
            logger.error(f"Chat model error: status {e.status}: {e}")
            if e.status == 429:
                return RATE_LIMITED_REPLY
            raise ServiceUnavailableError(
                "AI service temporarily unavailable", status=e.status
            ) from e

        return reply or EMPTY_REPLY
