# src/health_vault/api/__init__.py
