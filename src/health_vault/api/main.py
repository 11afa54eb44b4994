# ============================================================================
# src/health_vault/api/main.py
# ============================================================================
"""
FastAPI Backend for the Health Vault

Runs on port 8000.
Provides the extraction and chat endpoints plus document, snapshot and
profile access for the local vault.

Both model-backed routes are rate limited per client (x-forwarded-for, or
"anonymous"): /api/extract 30/min and /api/chat 5/min by default.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..chat.assistant import ChatAssistant
from ..config import rate_limit_settings
from ..core.config import get_config
from ..core.document_store import DocumentStore
from ..core.health_snapshot import build_health_snapshot
from ..core.records import HealthSnapshot, Profile, record_from_dict
from ..extractors.extraction_service import ExtractionService
from ..llm.base import BaseLLMClient
from ..llm.client import create_client
from ..pipeline.reconciliation import apply_reconciliation
from ..utils.exceptions import (
    DocumentNotFoundError,
    RateLimitedError,
    ServiceUnavailableError,
    ValidationError,
)
from ..utils.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again in a minute."


# ============================================================================
# Models
# ============================================================================

class ExtractRequest(BaseModel):
    text: str = ""


class HistoryMessage(BaseModel):
    role: str
    content: str = ""


class ChatRequest(BaseModel):
    question: str = ""
    profile: Optional[Dict[str, Any]] = None
    snapshot: Optional[Dict[str, Any]] = None
    history: List[HistoryMessage] = Field(default_factory=list)


class DocumentUpdateRequest(BaseModel):
    extracted: Dict[str, Any]
    document_date: str = ""


class ProfileRequest(BaseModel):
    name: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    known_conditions: List[str] = Field(default_factory=list)


# ============================================================================
# Helpers
# ============================================================================

def client_key(request: Request) -> str:
    return request.headers.get("x-forwarded-for") or "anonymous"


def _enforce_rate_limit(limiter: RateLimiter, limit: int, request: Request):
    result = limiter.check(limit, client_key(request))
    if not result.allowed:
        raise HTTPException(
            status_code=429,
            detail=RATE_LIMIT_MESSAGE,
            headers={"Retry-After": str(max(1, int(result.retry_after + 0.999)))},
        )


def _model_error_to_http(e: ServiceUnavailableError) -> HTTPException:
    if isinstance(e, RateLimitedError):
        return HTTPException(
            status_code=429,
            detail="AI model rate limit reached. Please wait a minute and try again.",
        )
    logger.error(f"Model backend unavailable (status {e.status}): {e}")
    return HTTPException(
        status_code=502,
        detail="AI service temporarily unavailable. Please try again.",
    )


# ============================================================================
# App factory
# ============================================================================

def create_app(
    store: Optional[DocumentStore] = None,
    llm_client: Optional[BaseLLMClient] = None,
    extraction_service: Optional[ExtractionService] = None,
    assistant: Optional[ChatAssistant] = None,
    extract_limiter: Optional[RateLimiter] = None,
    chat_limiter: Optional[RateLimiter] = None,
    config: Optional[Dict[str, Any]] = None,
) -> FastAPI:
    """
    Build the API. Anything not passed in is created at startup from the
    environment.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state = app.state
        owns_client = state.llm_client is None
        if state.store is None:
            state.store = DocumentStore()
        if state.llm_client is None:
            state.llm_client = create_client(state.config)
        if state.extraction_service is None:
            state.extraction_service = ExtractionService(state.llm_client, state.config)
        if state.assistant is None:
            state.assistant = ChatAssistant(state.llm_client, state.config)
        logger.info(f"Health vault API ready (model configured={state.llm_client.is_configured()})")
        yield
        if owns_client:
            await state.llm_client.close()

    app = FastAPI(
        title="Health Vault API",
        description="Structured extraction and chat over personal medical documents",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config if config is not None else get_config()
    app.state.store = store
    app.state.llm_client = llm_client
    app.state.extraction_service = extraction_service
    app.state.assistant = assistant
    app.state.extract_limiter = extract_limiter or RateLimiter(
        interval=rate_limit_settings.RATE_LIMIT_INTERVAL,
        max_keys=rate_limit_settings.RATE_LIMIT_MAX_KEYS,
    )
    app.state.chat_limiter = chat_limiter or RateLimiter(
        interval=rate_limit_settings.RATE_LIMIT_INTERVAL,
        max_keys=rate_limit_settings.RATE_LIMIT_MAX_KEYS,
    )

    _register_routes(app)
    return app


def _register_routes(app: FastAPI):

    @app.get("/api/health")
    async def health():
        """Health check for monitoring."""
        client = app.state.llm_client
        return {
            "status": "healthy",
            "model_configured": bool(client and client.is_configured()),
        }

    # ------------------------------------------------------------------
    # Model-backed routes
    # ------------------------------------------------------------------
    @app.post("/api/extract")
    async def extract(body: ExtractRequest, request: Request):
        _enforce_rate_limit(
            app.state.extract_limiter, rate_limit_settings.EXTRACT_RATE_LIMIT, request
        )
        try:
            record = await app.state.extraction_service.extract_document(body.text)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except ServiceUnavailableError as e:
            raise _model_error_to_http(e)
        return {"extracted": record.to_dict()}

    @app.post("/api/chat")
    async def chat(body: ChatRequest, request: Request):
        _enforce_rate_limit(
            app.state.chat_limiter, rate_limit_settings.CHAT_RATE_LIMIT, request
        )
        profile = Profile.from_dict(body.profile) if body.profile else None
        snapshot = HealthSnapshot.from_dict(body.snapshot) if body.snapshot else None
        try:
            reply = await app.state.assistant.reply(
                body.question,
                profile=profile,
                snapshot=snapshot,
                history=[m.model_dump() for m in body.history],
            )
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except ServiceUnavailableError as e:
            raise _model_error_to_http(e)
        return {"reply": reply}

    # ------------------------------------------------------------------
    # Vault
    # ------------------------------------------------------------------
    @app.get("/api/documents")
    def list_documents(document_type: Optional[str] = None):
        docs = app.state.store.get_all(document_type)
        return {"documents": [d.to_dict() for d in docs]}

    @app.get("/api/documents/{document_id}")
    def get_document(document_id: str):
        doc = app.state.store.get(document_id)
        if doc is None:
            raise HTTPException(status_code=404, detail="Document not found")
        return doc.to_dict(include_file_data=True)

    @app.put("/api/documents/{document_id}")
    def update_document(document_id: str, body: DocumentUpdateRequest):
        """Save a re-edited record; the date stays mandatory."""
        try:
            reviewed = apply_reconciliation(record_from_dict(body.extracted), body.document_date)
            doc = app.state.store.update_extracted(
                document_id, reviewed, body.document_date.strip()
            )
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except DocumentNotFoundError:
            raise HTTPException(status_code=404, detail="Document not found")
        return doc.to_dict()

    @app.delete("/api/documents/{document_id}")
    def delete_document(document_id: str):
        if not app.state.store.delete(document_id):
            raise HTTPException(status_code=404, detail="Document not found")
        return {"deleted": True, "id": document_id}

    @app.get("/api/snapshot")
    def snapshot():
        return build_health_snapshot(app.state.store).to_dict()

    @app.get("/api/profile")
    def get_profile():
        profile = app.state.store.get_profile()
        return {"profile": profile.to_dict() if profile else None}

    @app.put("/api/profile")
    def save_profile(body: ProfileRequest):
        profile = Profile.from_dict(body.model_dump())
        app.state.store.save_profile(profile)
        return {"profile": profile.to_dict()}


app = create_app()


if __name__ == "__main__":
    import uvicorn
    from ..utils.logging import setup_logging_from_settings

    setup_logging_from_settings()
    uvicorn.run(app, host="0.0.0.0", port=8000)
