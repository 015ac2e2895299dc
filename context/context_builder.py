"""
Context assembly and prompt construction.

Treat prompt context as a resource with a budget.

Best practices:
- Title each chunk with a numbered source marker the model can cite
- Keep citations 1:1 with the chunks the model was actually shown
- Omit empty sections instead of emitting bare headers
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from shared.config import settings
from shared.interfaces import HistoryMessage

from .context_budgeting import Citation, pack_candidates
from .token_estimator import TokenEstimator, estimate_tokens

logger = logging.getLogger(__name__)

SECTION_RULE = "\n\n---\n\n"


@dataclass
class BuiltPrompt:
    """Prompt ready to send to the LLM, with its citations."""

    prompt_text: str
    citations: List[Citation] = field(default_factory=list)
    token_estimate: int = 0
    truncated: bool = False


def format_chunk_header(chunk, index: int) -> str:
    """
    Format a chunk header for LLM context.

    Example:
    ### [Source 1] Payment Terms
    """
    return f"### [Source {index + 1}] {chunk.document_title}"


def format_message(message: HistoryMessage) -> str:
    if message.is_summary:
        return f"**Summary of earlier conversation:** {message.content}"
    label = "User" if message.role == "user" else "Assistant"
    return f"**{label}:** {message.content}"


def format_prompt(
    chunks: Sequence,
    query: str,
    history: Optional[Sequence[HistoryMessage]] = None,
) -> str:
    """
    Render packed chunks, history and the query into one prompt.

    Sections, in order and only when non-empty:
    "Relevant Documentation", "Conversation History", "Current Question".

    Args:
        chunks: Packed chunks (already trimmed to the budget)
        query: Current user question, included verbatim
        history: Conversation messages, oldest first

    Returns:
        Prompt text
    """
    text = ""

    if chunks:
        text = "## Relevant Documentation\n\n"
        text += SECTION_RULE.join(
            f"{format_chunk_header(chunk, i)}\n\n{chunk.content}"
            for i, chunk in enumerate(chunks)
        )
        text += SECTION_RULE

    if history:
        text += "## Conversation History\n\n"
        text += "\n\n".join(format_message(m) for m in history)
        text += SECTION_RULE

    text += f"## Current Question\n\n{query}"
    return text


def history_tokens(
    history: Optional[Sequence[HistoryMessage]],
    estimator: TokenEstimator = estimate_tokens,
) -> int:
    """Estimated tokens consumed by conversation history content."""
    return sum(estimator(m.content) for m in history or [])


def build_prompt(
    requester: str,
    query: str,
    candidates: Sequence,
    history: Optional[Sequence[HistoryMessage]] = None,
    max_tokens: int = None,
    estimator: TokenEstimator = estimate_tokens,
) -> BuiltPrompt:
    """
    Pack candidates under the budget and build the final prompt.

    Args:
        requester: Identity the prompt is built for
        query: Current user question
        candidates: Ranked, deduplicated candidate chunks
        history: Raw or compressed conversation history
        max_tokens: Overall token ceiling (defaults to the context limit)
        estimator: Token estimator

    Returns:
        BuiltPrompt with text, citations, token estimate and truncation flag
    """
    if max_tokens is None:
        max_tokens = settings.context.max_context_tokens

    query_tokens = estimator(query)
    used_by_history = history_tokens(history, estimator)

    packed = pack_candidates(
        list(candidates),
        budget=max_tokens,
        query_tokens=query_tokens,
        history_tokens=used_by_history,
        estimator=estimator,
    )

    if packed.truncated:
        logger.info(
            f"Context for {requester} truncated: {len(packed.chunks)}/{len(candidates)} chunks included"
        )

    return BuiltPrompt(
        prompt_text=format_prompt(packed.chunks, query, history),
        citations=packed.citations,
        token_estimate=packed.token_count + query_tokens + used_by_history,
        truncated=packed.truncated,
    )
