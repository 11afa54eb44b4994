# ============================================================================
# src/health_vault/extractors/extraction_service.py
# ============================================================================
"""
Extraction Service

The extraction request as the upload flow and the HTTP API see it:
text in, ExtractedRecord out.

- Blank text (after sanitizing) is a ValidationError
- Without a model credential the result is UnknownDocument and no call is made
- Model failures propagate as ServiceUnavailableError / RateLimitedError
- Unparseable replies are UnknownDocument
"""

import logging
from typing import Any, Dict, Optional

from .extraction_client import ExtractionClient, sanitize_text
from .response_parser import parse_extraction_response
from ..core.records import ExtractedRecord, UnknownDocument
from ..llm.base import BaseLLMClient
from ..utils.exceptions import ValidationError

logger = logging.getLogger(__name__)


class ExtractionService:

    def __init__(
        self,
        llm_client: BaseLLMClient,
        config: Optional[Dict[str, Any]] = None,
        extraction_client: Optional[ExtractionClient] = None,
    ):
        self.llm_client = llm_client
        self.config = config or {}
        self.client = extraction_client or ExtractionClient(llm_client, self.config)

    async def extract_document(self, text: str) -> ExtractedRecord:
        sanitized = sanitize_text(text or "", self.client.max_text_length)
        if not sanitized.strip():
            raise ValidationError("No text provided")

        if not self.llm_client.is_configured():
            logger.warning("No model API key configured, returning unknown document")
            return UnknownDocument()

        reply = await self.client.extract(sanitized)
        record = parse_extraction_response(reply)
        logger.info(f"Extracted {record.document_type.value} record ({len(sanitized)} chars in)")
        return record
