# ============================================================================
# src/health_vault/core/config.py
# ============================================================================
"""
Centralized Configuration Management

Loads configuration from environment variables (.env file) with sensible defaults.
All model and pipeline config values flow from this single source of truth.

Usage:
    from health_vault.core.config import get_config, Config

    # Get full config dict
    config = get_config()

    # Or use Config class for attribute access
    cfg = Config()
    print(cfg.llm_model)
"""

import os
from pathlib import Path
from typing import Dict, Any
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv


def _load_dotenv():
    """Load .env file if it exists."""
    # Look for .env in project root
    env_path = Path(__file__).parent.parent.parent.parent / '.env'
    if env_path.exists():
        load_dotenv(env_path)
        return True

    # Also check current working directory
    cwd_env = Path.cwd() / '.env'
    if cwd_env.exists():
        load_dotenv(cwd_env)
        return True

    return False


def _get_int(key: str, default: int = 0) -> int:
    """Get integer from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(key: str, default: float = 0.0) -> float:
    """Get float from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class Config:
    """
    Configuration container with attribute access.

    All values are loaded from environment variables with defaults.
    """

    # LLM backend (OpenAI-compatible chat completions, Groq by default)
    backend: str = field(default_factory=lambda: os.getenv('BACKEND', 'chat_completions'))
    llm_api_key: str = field(default_factory=lambda: os.getenv('GROQ_API_KEY', ''))
    llm_base_url: str = field(default_factory=lambda: os.getenv('LLM_BASE_URL', 'https://api.groq.com/openai/v1'))
    llm_model: str = field(default_factory=lambda: os.getenv('LLM_MODEL', 'llama-3.3-70b-versatile'))
    request_timeout: int = field(default_factory=lambda: _get_int('REQUEST_TIMEOUT', 120))

    # Extraction (strict mode: deterministic, bounded output)
    extraction_max_tokens: int = field(default_factory=lambda: _get_int('EXTRACTION_MAX_TOKENS', 3000))
    extraction_temperature: float = field(default_factory=lambda: _get_float('EXTRACTION_TEMPERATURE', 0.0))
    max_text_length: int = field(default_factory=lambda: _get_int('MAX_TEXT_LENGTH', 10000))
    max_attempts: int = field(default_factory=lambda: _get_int('MAX_ATTEMPTS', 3))

    # Chat
    chat_max_tokens: int = field(default_factory=lambda: _get_int('CHAT_MAX_TOKENS', 2048))
    chat_temperature: float = field(default_factory=lambda: _get_float('CHAT_TEMPERATURE', 0.7))
    max_question_length: int = field(default_factory=lambda: _get_int('MAX_QUESTION_LENGTH', 5000))
    max_history_messages: int = field(default_factory=lambda: _get_int('MAX_HISTORY_MESSAGES', 20))

    # Upload flow: pause after a skipped file so the message can be read
    skip_delay: float = field(default_factory=lambda: _get_float('SKIP_DELAY', 1.5))

    def __post_init__(self):
        """Ensure .env is loaded before accessing values."""
        _load_dotenv()

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for passing to components."""
        return {
            # LLM backend
            'backend': self.backend,
            'llm_api_key': self.llm_api_key,
            'llm_base_url': self.llm_base_url,
            'llm_model': self.llm_model,
            'request_timeout': self.request_timeout,

            # Extraction
            'extraction_max_tokens': self.extraction_max_tokens,
            'extraction_temperature': self.extraction_temperature,
            'max_text_length': self.max_text_length,
            'max_attempts': self.max_attempts,

            # Chat
            'chat_max_tokens': self.chat_max_tokens,
            'chat_temperature': self.chat_temperature,
            'max_question_length': self.max_question_length,
            'max_history_messages': self.max_history_messages,

            # Upload flow
            'skip_delay': self.skip_delay,
        }


@lru_cache(maxsize=1)
def get_config() -> Dict[str, Any]:
    """
    Get configuration dictionary.

    Cached for performance - call once and pass to components.
    """
    _load_dotenv()
    return Config().to_dict()


def get_config_instance() -> Config:
    """Get Config instance for attribute access."""
    _load_dotenv()
    return Config()


def reload_config() -> Dict[str, Any]:
    """Reload configuration from environment."""
    get_config.cache_clear()
    return get_config()
