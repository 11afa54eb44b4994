# ============================================================================
# src/health_vault/config/base_config.py
# ============================================================================
"""
Base Configuration
- Local vault database
"""

from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings


class BaseSettingsConfig(BaseSettings):
    DB_PATH: Path = Field(
        default=Path("data/vault.db"),
        description="SQLite database holding documents, profile and conversations"
    )


# Global instance
base_settings = BaseSettingsConfig()
