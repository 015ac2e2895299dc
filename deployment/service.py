"""
Context service facade.

Wires the retriever, prompt builder, compressor and stats reporter to a
set of collaborators and exposes the four operations request handlers
call. Requester and scope are always explicit arguments.
"""

import logging
from typing import List, Optional, Sequence

from context.context_builder import BuiltPrompt, build_prompt
from context.context_stats import ContextStatsReporter, ContextWindowStats
from context.token_estimator import TokenEstimator, estimate_tokens
from conversation.compressor import CompressionResult, ConversationCompressor
from retrieval.context_retriever import CandidateChunk, ContextRetriever
from shared.config import settings
from shared.interfaces import (
    ConversationStore,
    DocumentStore,
    HistoryMessage,
    ProviderSelector,
    SearchBackend,
    TextGenerator,
)

logger = logging.getLogger(__name__)


class ContextService:
    """
    Budgeted context assembly for chat queries.

    Usage:
        service = ContextService(documents, conversations, search, LLMClient(), DefaultProviderSelector())
        candidates = service.retrieve_context("user-1", query, scope_id="proj-1")
        built = service.build_prompt("user-1", query, candidates, history)
    """

    def __init__(
        self,
        document_store: DocumentStore,
        conversation_store: ConversationStore,
        search_backend: Optional[SearchBackend],
        generator: TextGenerator,
        provider_selector: ProviderSelector,
        estimator: TokenEstimator = estimate_tokens,
    ):
        self.document_store = document_store
        self.conversation_store = conversation_store
        self.estimator = estimator
        self.retriever = ContextRetriever(document_store, search_backend)
        self.compressor = ConversationCompressor(conversation_store, generator, provider_selector)
        self.reporter = ContextStatsReporter(conversation_store, document_store, estimator)

    def retrieve_context(
        self,
        requester: str,
        query: str,
        document_ids: Optional[Sequence[str]] = None,
        scope_id: Optional[str] = None,
        limit: int = None,
        min_score: float = None,
    ) -> List[CandidateChunk]:
        return self.retriever.retrieve(requester, query, document_ids, scope_id, limit, min_score)

    def build_prompt(
        self,
        requester: str,
        query: str,
        candidates: Sequence[CandidateChunk],
        history: Optional[Sequence[HistoryMessage]] = None,
        max_tokens: int = None,
    ) -> BuiltPrompt:
        return build_prompt(requester, query, candidates, history, max_tokens, self.estimator)

    def compress_history_if_needed(
        self,
        conversation_id: str,
        requester: str,
        window: int = None,
    ) -> Optional[CompressionResult]:
        return self.compressor.compress_if_needed(conversation_id, requester, window)

    def get_context_stats(self, conversation_id: str) -> Optional[ContextWindowStats]:
        return self.reporter.get_context_stats(conversation_id)

    def load_history(
        self,
        conversation_id: str,
        requester: str,
        window: int = None,
    ) -> List[HistoryMessage]:
        """
        Conversation history ready for the prompt builder: compressed when
        the conversation is longer than window, raw otherwise.
        """
        if window is None:
            window = settings.compression.history_window

        messages = self.conversation_store.get_messages(conversation_id, requester) or []
        compression = self.compress_history_if_needed(conversation_id, requester, window)
        if compression is None:
            return messages
        return compression.apply(messages)
