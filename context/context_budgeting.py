"""
Context token budget management.

Treat prompt context as a resource with a budget.

Considerations:
- Model context window limits
- Tokens reserved for the query, the response and prior conversation
- Whole, highly ranked chunks beat many small fragments
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import List

from shared.config import settings
from shared.errors import ContextValidationError

from .token_estimator import TokenEstimator, estimate_tokens

logger = logging.getLogger(__name__)


@dataclass
class Citation:
    """Source reference for a chunk the model was actually shown."""

    document_id: str
    document_title: str
    snippet: str
    relevance_score: float


@dataclass
class ContextBudget:
    """Token budget allocation."""

    total_tokens: int
    query_tokens: int
    response_tokens: int
    history_tokens: int

    @property
    def available_for_context(self) -> int:
        """Tokens available for retrieved context (may be negative)."""
        return (
            self.total_tokens -
            self.query_tokens -
            self.response_tokens -
            self.history_tokens
        )


@dataclass
class PackedContext:
    """Chunks selected to fit the budget, in rank order."""

    chunks: List = field(default_factory=list)
    citations: List[Citation] = field(default_factory=list)
    token_count: int = 0
    truncated: bool = False


@dataclass
class TruncationResult:
    """Result of truncating a whole context string."""

    text: str
    truncated: bool
    original_tokens: int
    new_tokens: int


def citation_for(chunk) -> Citation:
    return Citation(
        document_id=chunk.document_id,
        document_title=chunk.document_title,
        snippet=chunk.snippet,
        relevance_score=chunk.relevance_score,
    )


def allocate_token_budget(
    budget: int,
    query_tokens: int = 0,
    history_tokens: int = 0,
    response_buffer: int = None,
) -> ContextBudget:
    """
    Allocate a token budget for a prompt.

    Args:
        budget: Overall token ceiling for the request
        query_tokens: Estimated tokens of the current query
        history_tokens: Estimated tokens of the conversation history
        response_buffer: Tokens reserved for the model response

    Returns:
        ContextBudget allocation

    Raises:
        ContextValidationError: If any figure is negative
    """
    if response_buffer is None:
        response_buffer = settings.context.response_buffer_tokens

    for name, value in (
        ("budget", budget),
        ("query_tokens", query_tokens),
        ("history_tokens", history_tokens),
        ("response_buffer", response_buffer),
    ):
        if value < 0:
            raise ContextValidationError(f"{name} must be non-negative, got {value}")

    return ContextBudget(
        total_tokens=budget,
        query_tokens=query_tokens,
        response_tokens=response_buffer,
        history_tokens=history_tokens,
    )


def _truncate_chunk(chunk, remaining_tokens: int, estimator: TokenEstimator):
    """
    Cut a chunk's content to fit remaining_tokens and append the marker.

    The character cut assumes the same chars-per-token ratio as the
    default estimator; the headroom factor leaves space for the marker.
    A different estimator may disagree, so the cut is shortened until the
    estimate fits.
    """
    cfg = settings.context
    marker = cfg.truncation_marker
    max_chars = int(remaining_tokens * cfg.chars_per_token * cfg.truncation_headroom)

    content = chunk.content[:max_chars] + marker
    while estimator(content) > remaining_tokens and max_chars > 0:
        max_chars = int(max_chars * cfg.truncation_headroom)
        content = chunk.content[:max_chars] + marker

    return dataclasses.replace(chunk, content=content)


def pack_candidates(
    candidates: List,
    budget: int,
    query_tokens: int = 0,
    history_tokens: int = 0,
    response_buffer: int = None,
    estimator: TokenEstimator = estimate_tokens,
) -> PackedContext:
    """
    Greedily pack ranked candidates into the token budget.

    Candidates are taken whole in rank order. The first one that does not
    fit is included truncated if at least min_fragment_tokens remain,
    after which packing stops; otherwise packing stops without it.

    Args:
        candidates: Ranked candidate chunks (highest relevance first)
        budget: Overall token ceiling
        query_tokens: Tokens reserved for the query
        history_tokens: Tokens consumed by conversation history
        response_buffer: Tokens reserved for the response
        estimator: Token estimator for chunk content

    Returns:
        PackedContext with included chunks and citations
    """
    allocation = allocate_token_budget(budget, query_tokens, history_tokens, response_buffer)
    available = allocation.available_for_context

    if not candidates:
        return PackedContext()

    if available < 0:
        logger.debug(f"No context budget left ({available} tokens), dropping {len(candidates)} candidates")
        return PackedContext(truncated=True)

    min_fragment = settings.context.min_fragment_tokens
    included = []
    used = 0
    truncated = False

    for chunk in candidates:
        chunk_tokens = estimator(chunk.content)

        if used + chunk_tokens <= available:
            included.append(chunk)
            used += chunk_tokens
            continue

        truncated = True
        if used + min_fragment <= available:
            logger.debug(f"Truncating {chunk.document_id} to fit {available - used} remaining tokens")
            partial = _truncate_chunk(chunk, available - used, estimator)
            included.append(partial)
            used += estimator(partial.content)
        break

    return PackedContext(
        chunks=included,
        citations=[citation_for(c) for c in included],
        token_count=used,
        truncated=truncated,
    )


def truncate_context(
    text: str,
    max_tokens: int,
    estimator: TokenEstimator = estimate_tokens,
) -> TruncationResult:
    """
    Truncate a whole context string to fit a token limit.

    Keeps a 5% buffer and cuts at the last paragraph break when that
    break lies in the final 30% of the kept text.

    Args:
        text: Context text to truncate
        max_tokens: Maximum tokens
        estimator: Token estimator

    Returns:
        TruncationResult
    """
    if max_tokens < 0:
        raise ContextValidationError(f"max_tokens must be non-negative, got {max_tokens}")

    current_tokens = estimator(text)
    if current_tokens <= max_tokens:
        return TruncationResult(text, False, current_tokens, current_tokens)

    ratio = max_tokens / current_tokens
    target_chars = int(len(text) * ratio * 0.95)

    truncated_text = text[:target_chars]
    last_break = truncated_text.rfind("\n\n")
    if last_break > target_chars * 0.7:
        truncated_text = truncated_text[:last_break]

    truncated_text += settings.context.context_truncation_marker

    return TruncationResult(
        text=truncated_text,
        truncated=True,
        original_tokens=current_tokens,
        new_tokens=estimator(truncated_text),
    )
