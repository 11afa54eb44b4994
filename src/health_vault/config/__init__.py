# ============================================================================
# src/health_vault/config/__init__.py
# ============================================================================
"""
Convenient imports for all settings
"""

from .base_config import base_settings
from .logging_config import logging_settings
from .rate_limit_config import rate_limit_settings
