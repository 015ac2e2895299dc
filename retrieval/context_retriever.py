"""
Context retrieval across explicit, project-scoped and search channels.

Channel precedence (highest first):
- direct: documents the user attached explicitly (score 1.0)
- project: every document in the selected project (score 0.9)
- semantic/keyword: search backend hits (backend score)

The channels are fetched in parallel but merged only once all three have
returned, so a document found by several channels always keeps its
highest-precedence source regardless of completion order.
"""

import logging
import numbers
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from deployment.circuit_breaker import CircuitBreaker, get_search_breaker
from shared.config import settings
from shared.errors import ContextValidationError
from shared.interfaces import DocumentStore, SearchBackend, SearchHit, StoredDocument

logger = logging.getLogger(__name__)


@dataclass
class CandidateChunk:
    """A unit of retrievable content considered for the prompt."""

    document_id: str
    document_title: str
    content: str
    snippet: str
    relevance_score: float
    source_type: str


@dataclass
class RelevantChunk:
    """Search match inside a fixed set of documents."""

    document_id: str
    document_title: str
    match_snippet: str
    relevance_score: float
    content_preview: str


def make_document_snippet(content: str) -> str:
    return content[:settings.context.snippet_chars] + "..."


def chunk_from_document(doc: StoredDocument, score: float, source_type: str) -> CandidateChunk:
    return CandidateChunk(
        document_id=doc.id,
        document_title=doc.title,
        content=doc.content,
        snippet=make_document_snippet(doc.content),
        relevance_score=score,
        source_type=source_type,
    )


def chunk_from_hit(hit: SearchHit) -> CandidateChunk:
    source_type = hit.match_type if hit.match_type in ("semantic", "keyword") else "semantic"
    return CandidateChunk(
        document_id=hit.document_id,
        document_title=hit.title,
        content=hit.content,
        snippet=hit.snippet,
        relevance_score=hit.score,
        source_type=source_type,
    )


def merge_channels(*channels: Iterable[CandidateChunk]) -> List[CandidateChunk]:
    """
    Merge candidate channels in precedence order, first occurrence wins.

    Args:
        *channels: Candidate lists, highest precedence first

    Returns:
        Candidates with unique document ids
    """
    seen = set()
    merged = []
    for channel in channels:
        for chunk in channel:
            if chunk.document_id in seen:
                continue
            seen.add(chunk.document_id)
            merged.append(chunk)
    return merged


def rank_candidates(candidates: List[CandidateChunk], limit: int) -> List[CandidateChunk]:
    """Sort by descending relevance (stable) and keep the top limit."""
    return sorted(candidates, key=lambda c: c.relevance_score, reverse=True)[:limit]


class ContextRetriever:
    """
    Gather ranked, deduplicated candidate chunks for a chat query.

    Usage:
        retriever = ContextRetriever(document_store, search_backend)
        candidates = retriever.retrieve(
            "user-1",
            "How do I rotate API keys?",
            document_ids=["doc-7"],
            scope_id="proj-2",
        )
    """

    def __init__(
        self,
        document_store: DocumentStore,
        search_backend: Optional[SearchBackend] = None,
        search_timeout: float = None,
        breaker: Optional[CircuitBreaker] = None,
        max_workers: int = None,
    ):
        """
        Args:
            document_store: Source of direct and project documents
            search_backend: Semantic/keyword search (optional channel)
            search_timeout: Seconds to wait for the search backend
            breaker: Circuit breaker guarding the search backend
            max_workers: Threads used to fetch channels in parallel
        """
        self.document_store = document_store
        self.search_backend = search_backend
        self.search_timeout = (
            search_timeout if search_timeout is not None else settings.retrieval.search_timeout
        )
        self.breaker = breaker or get_search_breaker()
        self.max_workers = max_workers or settings.retrieval.max_workers

    def _direct_channel(self, requester: str, document_ids: Sequence[str]) -> List[CandidateChunk]:
        chunks = []
        for doc_id in document_ids:
            doc = self.document_store.get_document(doc_id, requester)
            if doc is None:
                logger.debug(f"Skipping missing document {doc_id}")
                continue
            chunks.append(chunk_from_document(doc, settings.retrieval.direct_score, "direct"))
        return chunks

    def _project_channel(self, requester: str, scope_id: str) -> List[CandidateChunk]:
        docs = self.document_store.list_documents_by_scope(requester, scope_id)
        return [chunk_from_document(doc, settings.retrieval.project_score, "project") for doc in docs]

    def _search_channel(
        self,
        requester: str,
        query: str,
        limit: int,
        scope_id: Optional[str],
        min_score: float,
    ) -> List[CandidateChunk]:
        """Search hits as candidates; any failure degrades to no hits."""
        if self.search_backend is None:
            return []

        try:
            hits = self.breaker.call(
                self.search_backend.search,
                requester,
                query,
                limit,
                scope_id,
                min_score,
                timeout=self.search_timeout,
            )
        except Exception as e:
            logger.warning(f"Search unavailable, continuing without it: {e}")
            return []

        chunks = []
        for hit in hits or []:
            score = hit.score
            if not isinstance(score, numbers.Real) or not 0.0 <= score <= 1.0:
                logger.warning(f"Dropping search hit {hit.document_id} with invalid score {score!r}")
                continue
            chunks.append(chunk_from_hit(hit))
        return chunks

    def retrieve(
        self,
        requester: str,
        query: str,
        document_ids: Optional[Sequence[str]] = None,
        scope_id: Optional[str] = None,
        limit: int = None,
        min_score: float = None,
    ) -> List[CandidateChunk]:
        """
        Retrieve candidate chunks for a query.

        Args:
            requester: Identity documents are fetched for
            query: Free-text query
            document_ids: Explicitly attached documents
            scope_id: Project/collection to include wholesale
            limit: Maximum number of candidates returned
            min_score: Minimum search score (search channel only)

        Returns:
            Candidates sorted by descending relevance, unique by document

        Raises:
            ContextValidationError: If limit or min_score is out of range
        """
        if limit is None:
            limit = settings.retrieval.default_limit
        if min_score is None:
            min_score = settings.retrieval.default_min_score

        if limit < 1:
            raise ContextValidationError(f"limit must be at least 1, got {limit}")
        if not 0.0 <= min_score <= 1.0:
            raise ContextValidationError(f"min_score must be within [0, 1], got {min_score}")

        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            direct = executor.submit(self._direct_channel, requester, list(document_ids or []))
            project = (
                executor.submit(self._project_channel, requester, scope_id)
                if scope_id else None
            )
            search = executor.submit(self._search_channel, requester, query, limit, scope_id, min_score)

            direct_chunks = direct.result()
            project_chunks = project.result() if project else []
            search_chunks = search.result()
        finally:
            executor.shutdown(wait=False)

        candidates = merge_channels(direct_chunks, project_chunks, search_chunks)

        logger.debug(
            f"Retrieved {len(direct_chunks)} direct, {len(project_chunks)} project, "
            f"{len(search_chunks)} search candidates ({len(candidates)} unique)"
        )

        return rank_candidates(candidates, limit)

    def find_relevant_chunks(
        self,
        requester: str,
        question: str,
        document_ids: Sequence[str],
        max_chunks: int = 5,
    ) -> List[RelevantChunk]:
        """
        Find search matches restricted to a fixed set of documents.

        Over-fetches (2x max_chunks, min score 0.3) before filtering.
        """
        if max_chunks < 1:
            raise ContextValidationError(f"max_chunks must be at least 1, got {max_chunks}")

        wanted = set(document_ids)
        hits = self._search_channel(requester, question, max_chunks * 2, None, 0.3)

        return [
            RelevantChunk(
                document_id=c.document_id,
                document_title=c.document_title,
                match_snippet=c.snippet,
                relevance_score=c.relevance_score,
                content_preview=c.content[:settings.context.snippet_chars],
            )
            for c in hits
            if c.document_id in wanted
        ][:max_chunks]
