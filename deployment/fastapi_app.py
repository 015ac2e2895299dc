"""
FastAPI application for budgeted context assembly.

Endpoints:
- Candidate retrieval across direct, project and search channels
- Prompt building under a token budget
- Conversation compression and context window statistics
- Token estimation and whole-context truncation helpers
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from context.context_budgeting import truncate_context
from context.token_estimator import describe_tokens, get_estimator
from deployment.circuit_breaker import CircuitOpenError, get_llm_breaker, get_search_breaker
from deployment.service import ContextService
from generation.llm_client import get_llm_client
from generation.provider_router import DefaultProviderSelector
from retrieval.context_retriever import CandidateChunk
from retrieval.lexical_retriever import KeywordSearchBackend
from shared.config import settings
from shared.errors import ContextValidationError
from shared.interfaces import HistoryMessage
from shared.schemas import (
    CandidateInfo,
    CitationInfo,
    CompressRequest,
    CompressResponse,
    ContextStatsResponse,
    EstimateRequest,
    EstimateResponse,
    HealthResponse,
    PromptRequest,
    PromptResponse,
    RetrieveRequest,
    RetrieveResponse,
    TruncateRequest,
    TruncateResponse,
)
from stores.in_memory import InMemoryConversationStore, InMemoryDocumentStore
from stores.seed import load_seed

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

__version__ = "1.0.0"

_service: Optional[ContextService] = None


def get_service() -> ContextService:
    """
    Get or create the global context service.

    Collaborators are in-memory; set SEED_FILE to load documents and
    conversations at startup.
    """
    global _service
    if _service is None:
        document_store = InMemoryDocumentStore()
        conversation_store = InMemoryConversationStore()
        search_backend = KeywordSearchBackend()
        if settings.SEED_FILE:
            load_seed(settings.SEED_FILE, document_store, conversation_store, search_backend)

        _service = ContextService(
            document_store=document_store,
            conversation_store=conversation_store,
            search_backend=search_backend,
            generator=get_llm_client(),
            provider_selector=DefaultProviderSelector(),
            estimator=get_estimator(),
        )
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting context service v{__version__}")
    get_service()
    yield
    logger.info("Shutting down context service")


app = FastAPI(
    title="Context Assembly Service",
    description="Budgeted, ranked context assembly for LLM chat",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID for tracing."""
    request_id = str(uuid.uuid4())[:8]
    request.state.request_id = request_id

    start_time = time.time()
    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        f"[{request_id}] {request.method} {request.url.path} "
        f"- {response.status_code} - {duration_ms:.1f}ms"
    )

    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(ContextValidationError)
async def validation_error_handler(request: Request, exc: ContextValidationError):
    """Malformed parameters are caller bugs."""
    return JSONResponse(status_code=422, content={"error": "Invalid parameters", "detail": str(exc)})


@app.exception_handler(CircuitOpenError)
async def circuit_open_handler(request: Request, exc: CircuitOpenError):
    """Handle circuit breaker open."""
    return JSONResponse(
        status_code=503,
        content={
            "error": "Service temporarily unavailable",
            "detail": str(exc),
            "retry_after": 30,
        },
        headers={"Retry-After": "30"},
    )


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    search_state = get_search_breaker().state.value
    llm_state = get_llm_breaker().state.value
    degraded = "open" in (search_state, llm_state)

    return HealthResponse(
        status="degraded" if degraded else "healthy",
        version=__version__,
        search_circuit=search_state,
        llm_circuit=llm_state,
    )


@app.post("/context/retrieve", response_model=RetrieveResponse)
def retrieve_endpoint(body: RetrieveRequest, service: ContextService = Depends(get_service)):
    """Ranked, deduplicated candidates for a query."""
    candidates = service.retrieve_context(
        body.user_id,
        body.query,
        document_ids=body.document_ids,
        scope_id=body.scope_id,
        limit=body.limit,
        min_score=body.min_score,
    )
    return RetrieveResponse(
        candidates=[CandidateInfo(**asdict(c)) for c in candidates],
        total_found=len(candidates),
    )


@app.post("/context/prompt", response_model=PromptResponse)
def prompt_endpoint(body: PromptRequest, service: ContextService = Depends(get_service)):
    """
    Build a prompt from candidates and history.

    History comes from the request, or is loaded (and compressed when
    long) from conversation_id.
    """
    if body.history is not None:
        history = [HistoryMessage(**m.model_dump()) for m in body.history]
    elif body.conversation_id:
        history = service.load_history(body.conversation_id, body.user_id)
    else:
        history = None

    built = service.build_prompt(
        body.user_id,
        body.query,
        [CandidateChunk(**c.model_dump()) for c in body.candidates],
        history=history,
        max_tokens=body.max_tokens,
    )
    return PromptResponse(
        prompt_text=built.prompt_text,
        citations=[CitationInfo(**asdict(c)) for c in built.citations],
        token_estimate=built.token_estimate,
        truncated=built.truncated,
    )


@app.post("/conversations/{conversation_id}/compress", response_model=CompressResponse)
def compress_endpoint(
    conversation_id: str,
    body: CompressRequest,
    service: ContextService = Depends(get_service),
):
    """Summarize older messages when the conversation exceeds the window."""
    result = service.compress_history_if_needed(conversation_id, body.user_id, body.window)
    if result is None:
        return CompressResponse(compressed=False)
    return CompressResponse(
        compressed=True,
        summary=result.summary,
        summarized_count=result.summarized_count,
        remaining_count=result.remaining_count,
    )


@app.get("/conversations/{conversation_id}/stats", response_model=ContextStatsResponse)
def stats_endpoint(conversation_id: str, service: ContextService = Depends(get_service)):
    """Context window statistics for a conversation."""
    stats = service.get_context_stats(conversation_id)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"Conversation {conversation_id} not found")

    payload = asdict(stats)
    payload["document_count"] = stats.document_count
    return ContextStatsResponse(**payload)


@app.post("/context/estimate", response_model=EstimateResponse)
def estimate_endpoint(body: EstimateRequest, service: ContextService = Depends(get_service)):
    """Token and character counts for a text."""
    return EstimateResponse(**describe_tokens(body.text, service.estimator))


@app.post("/context/truncate", response_model=TruncateResponse)
def truncate_endpoint(body: TruncateRequest, service: ContextService = Depends(get_service)):
    """Truncate a whole context string to a token limit."""
    result = truncate_context(body.context, body.max_tokens, service.estimator)
    return TruncateResponse(**asdict(result))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
