# ============================================================================
# src/health_vault/core/__init__.py
# ============================================================================
"""
Core components for the health vault.
"""

from .config import get_config, get_config_instance, reload_config, Config
from .document_store import DocumentStore
from .health_snapshot import build_snapshot, build_health_snapshot, normalize_name

__all__ = [
    "get_config",
    "get_config_instance",
    "reload_config",
    "Config",
    "DocumentStore",
    "build_snapshot",
    "build_health_snapshot",
    "normalize_name",
]
