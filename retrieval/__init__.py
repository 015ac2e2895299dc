"""
Context Retrieval Module.

Retrieval is the optical lens for your LLM.

This module implements:
- Explicit document inclusion (direct)
- Project-scoped inclusion
- Semantic/keyword search via a pluggable backend
- Deduplication by document with source precedence

Usage:
    from retrieval import ContextRetriever, KeywordSearchBackend

    retriever = ContextRetriever(document_store, KeywordSearchBackend())
    candidates = retriever.retrieve("user-1", "What are the payment terms?")
"""

from .context_retriever import (
    CandidateChunk,
    ContextRetriever,
    RelevantChunk,
    merge_channels,
    rank_candidates,
)
from .lexical_retriever import BM25Index, IndexedDocument, KeywordSearchBackend

__all__ = [
    "CandidateChunk",
    "ContextRetriever",
    "RelevantChunk",
    "merge_channels",
    "rank_candidates",
    "BM25Index",
    "IndexedDocument",
    "KeywordSearchBackend",
]
