"""
Pydantic schemas for API request/response models.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class RetrieveRequest(BaseModel):
    """Request model for context retrieval."""

    user_id: str = Field(..., description="Requester identity")
    query: str = Field(..., description="The user's question")
    document_ids: Optional[List[str]] = Field(
        default=None, description="Documents attached explicitly by the user"
    )
    scope_id: Optional[str] = Field(default=None, description="Project/collection scope")
    limit: int = Field(default=10, ge=1, le=100, description="Number of candidates to return")
    min_score: float = Field(
        default=0.4, ge=0.0, le=1.0, description="Minimum search score"
    )


class CandidateInfo(BaseModel):
    """A retrieved candidate chunk."""

    document_id: str
    document_title: str
    content: str
    snippet: str
    relevance_score: float = Field(..., ge=0.0, le=1.0)
    source_type: Literal["direct", "project", "semantic", "keyword"]


class RetrieveResponse(BaseModel):
    candidates: List[CandidateInfo]
    total_found: int


class HistoryMessageInfo(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    is_summary: bool = False


class PromptRequest(BaseModel):
    """Request model for prompt building."""

    user_id: str
    query: str
    candidates: List[CandidateInfo] = Field(default_factory=list)
    history: Optional[List[HistoryMessageInfo]] = None
    conversation_id: Optional[str] = Field(
        default=None,
        description="Load (and compress if needed) history from this conversation",
    )
    max_tokens: int = Field(default=100000, ge=0)


class CitationInfo(BaseModel):
    """Source reference for an included chunk."""

    document_id: str
    document_title: str
    snippet: str
    relevance_score: float


class PromptResponse(BaseModel):
    prompt_text: str
    citations: List[CitationInfo]
    token_estimate: int
    truncated: bool


class CompressRequest(BaseModel):
    user_id: str
    window: int = Field(default=10, ge=1)


class CompressResponse(BaseModel):
    compressed: bool
    summary: Optional[str] = None
    summarized_count: int = 0
    remaining_count: int = 0


class DocumentTokensInfo(BaseModel):
    id: str
    title: str
    tokens: int


class TokenBreakdownInfo(BaseModel):
    documents: int
    messages: int
    total: int


class ContextStatsResponse(BaseModel):
    """Context window statistics for a conversation."""

    documents: List[DocumentTokensInfo]
    document_count: int
    message_count: int
    token_breakdown: TokenBreakdownInfo
    context_limit: int
    utilization_percent: int
    remaining_tokens: int
    can_add_more: bool


class EstimateRequest(BaseModel):
    text: str


class EstimateResponse(BaseModel):
    tokens: int
    characters: int


class TruncateRequest(BaseModel):
    context: str
    max_tokens: int = Field(..., ge=0)


class TruncateResponse(BaseModel):
    text: str
    truncated: bool
    original_tokens: int
    new_tokens: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    search_circuit: str
    llm_circuit: str
