"""
Context window statistics for a conversation.

Read-only aggregation over the conversation's attached documents and
messages, for UI meters and observability.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

from shared.config import settings
from shared.errors import ContextValidationError
from shared.interfaces import ConversationStore, DocumentStore

from .token_estimator import TokenEstimator, estimate_tokens

logger = logging.getLogger(__name__)


@dataclass
class DocumentTokens:
    """Token estimate for one attached document."""

    id: str
    title: str
    tokens: int


@dataclass
class TokenBreakdown:
    documents: int = 0
    messages: int = 0
    total: int = 0


@dataclass
class ContextWindowStats:
    """Aggregate context window usage."""

    documents: List[DocumentTokens] = field(default_factory=list)
    message_count: int = 0
    token_breakdown: TokenBreakdown = field(default_factory=TokenBreakdown)
    context_limit: int = 0
    utilization_percent: int = 0
    remaining_tokens: int = 0
    can_add_more: bool = True

    @property
    def document_count(self) -> int:
        return len(self.documents)


def compute_stats(
    documents: List[DocumentTokens],
    message_tokens: List[int],
    context_limit: int = None,
) -> ContextWindowStats:
    """
    Aggregate per-document and per-message token estimates.

    Args:
        documents: Token estimates for attached documents
        message_tokens: Token estimate per message
        context_limit: Context ceiling (defaults to the configured maximum)

    Returns:
        ContextWindowStats
    """
    if context_limit is None:
        context_limit = settings.context.max_context_tokens
    if context_limit <= 0:
        raise ContextValidationError(f"context_limit must be positive, got {context_limit}")

    doc_total = sum(d.tokens for d in documents)
    msg_total = sum(message_tokens)
    total = doc_total + msg_total

    return ContextWindowStats(
        documents=documents,
        message_count=len(message_tokens),
        token_breakdown=TokenBreakdown(documents=doc_total, messages=msg_total, total=total),
        context_limit=context_limit,
        utilization_percent=math.floor(total / context_limit * 100 + 0.5),
        remaining_tokens=max(0, context_limit - total),
        can_add_more=total < context_limit * settings.context.can_add_more_ratio,
    )


class ContextStatsReporter:
    """
    Compute context window statistics for stored conversations.

    Usage:
        reporter = ContextStatsReporter(conversations, documents)
        stats = reporter.get_context_stats("conv-1")
    """

    def __init__(
        self,
        conversation_store: ConversationStore,
        document_store: DocumentStore,
        estimator: TokenEstimator = estimate_tokens,
        context_limit: int = None,
    ):
        self.conversation_store = conversation_store
        self.document_store = document_store
        self.estimator = estimator
        self.context_limit = context_limit

    def get_context_stats(self, conversation_id: str) -> Optional[ContextWindowStats]:
        """Statistics for a conversation, or None if it does not exist."""
        conversation = self.conversation_store.get_conversation(conversation_id)
        if conversation is None:
            return None

        messages = self.conversation_store.get_messages(conversation_id) or []

        documents = []
        for doc_id in conversation.document_ids:
            doc = self.document_store.get_document(doc_id, conversation.user_id)
            if doc is None:
                logger.debug(f"Attached document {doc_id} no longer exists")
                continue
            documents.append(DocumentTokens(id=doc.id, title=doc.title, tokens=self.estimator(doc.content)))

        return compute_stats(
            documents,
            [self.estimator(m.content) for m in messages],
            self.context_limit,
        )
