# src/health_vault/extractors/__init__.py
"""
Extractors - upload → text → structured record
"""

from .extraction_client import ExtractionClient, sanitize_text
from .extraction_service import ExtractionService
from .response_parser import parse_extraction_response, find_json_object
from .text_extractor import TextExtractor

__all__ = [
    "ExtractionClient",
    "sanitize_text",
    "ExtractionService",
    "parse_extraction_response",
    "find_json_object",
    "TextExtractor",
]
