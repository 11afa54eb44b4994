# src/health_vault/chat/__init__.py

from .assistant import ChatAssistant, sanitize_input

__all__ = ["ChatAssistant", "sanitize_input"]
