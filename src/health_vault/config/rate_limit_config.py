# ============================================================================
# src/health_vault/config/rate_limit_config.py
# ============================================================================
"""
Rate Limit Settings
- Window length and tracked client cap
- Per-route request budgets (requests per window per client)
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class RateLimitSettings(BaseSettings):
    RATE_LIMIT_INTERVAL: float = Field(
        default=60.0,
        gt=0,
        description="Length of the sliding window in seconds"
    )
    RATE_LIMIT_MAX_KEYS: int = Field(
        default=500,
        gt=0,
        description="Distinct clients tracked per route before LRU eviction"
    )
    EXTRACT_RATE_LIMIT: int = Field(
        default=30,
        ge=1,
        description="Extraction requests allowed per client per window"
    )
    CHAT_RATE_LIMIT: int = Field(
        default=5,
        ge=1,
        description="Chat requests allowed per client per window"
    )


rate_limit_settings = RateLimitSettings()
