# ============================================================================
# src/health_vault/__init__.py
# ============================================================================
"""
Health Vault - personal medical document extraction and reconciliation.
"""

__version__ = "1.0.0"
