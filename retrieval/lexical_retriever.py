"""
Lexical retrieval using BM25.

In-memory keyword search backend. It fills the search channel of the
context retriever when no semantic index is available, and catches exact
term matches (SKU numbers, API names) that embeddings miss.
"""

import logging
import math
import re
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

from shared.interfaces import SearchHit

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+")


def tokenize(text: str) -> List[str]:
    return _TOKEN_RE.findall(text.lower())


@dataclass
class IndexedDocument:
    """A document registered with the keyword index."""

    id: str
    owner: str
    title: str
    content: str
    scope_id: Optional[str] = None


class BM25Index:
    """
    In-memory BM25 index.

    For production with large corpora, use Elasticsearch or OpenSearch.
    """

    def __init__(self, k1: float = 1.5, b: float = 0.75):
        self.k1 = k1
        self.b = b

        self._doc_lengths: Dict[str, int] = {}
        self._avg_doc_len: float = 0
        self._term_doc_freq: Dict[str, int] = defaultdict(int)
        self._inverted_index: Dict[str, Dict[str, int]] = defaultdict(dict)

    def add(self, doc_id: str, text: str) -> None:
        """Add (or replace) a document in the index."""
        if doc_id in self._doc_lengths:
            self.remove(doc_id)

        terms = tokenize(text)
        self._doc_lengths[doc_id] = len(terms)

        for term in terms:
            postings = self._inverted_index[term]
            if doc_id not in postings:
                self._term_doc_freq[term] += 1
                postings[doc_id] = 0
            postings[doc_id] += 1

        self._update_avg_len()

    def remove(self, doc_id: str) -> None:
        """Remove a document from the index."""
        if self._doc_lengths.pop(doc_id, None) is None:
            return
        for term in list(self._inverted_index):
            postings = self._inverted_index[term]
            if postings.pop(doc_id, None) is not None:
                self._term_doc_freq[term] -= 1
                if not postings:
                    del self._inverted_index[term]
                    del self._term_doc_freq[term]
        self._update_avg_len()

    def _update_avg_len(self) -> None:
        if self._doc_lengths:
            self._avg_doc_len = sum(self._doc_lengths.values()) / len(self._doc_lengths)
        else:
            self._avg_doc_len = 0

    def score(self, query: str) -> Dict[str, float]:
        """BM25 score for every document matching at least one query term."""
        n_docs = len(self._doc_lengths)
        scores: Dict[str, float] = defaultdict(float)

        if n_docs == 0:
            return scores

        for term in set(tokenize(query)):
            if term not in self._inverted_index:
                continue

            # IDF component
            df = self._term_doc_freq[term]
            idf = math.log((n_docs - df + 0.5) / (df + 0.5) + 1)

            for doc_id, tf in self._inverted_index[term].items():
                doc_len = self._doc_lengths[doc_id]

                # BM25 TF component
                numerator = tf * (self.k1 + 1)
                denominator = tf + self.k1 * (
                    1 - self.b + self.b * (doc_len / self._avg_doc_len)
                )
                scores[doc_id] += idf * (numerator / denominator)

        return scores

    def __len__(self) -> int:
        return len(self._doc_lengths)


def make_snippet(content: str, query: str, width: int = 200) -> str:
    """Window of content around the first query term match."""
    lowered = content.lower()
    positions = [lowered.find(t) for t in tokenize(query)]
    positions = [p for p in positions if p >= 0]
    start = max(0, min(positions) - width // 4) if positions else 0
    snippet = content[start:start + width]
    if start > 0:
        snippet = "..." + snippet
    if start + width < len(content):
        snippet += "..."
    return snippet


class KeywordSearchBackend:
    """
    BM25 keyword search implementing the SearchBackend contract.

    Raw BM25 scores are squashed into [0, 1] with min(score / score_scale, 1)
    so they can be compared against min_score like semantic similarities.

    Usage:
        backend = KeywordSearchBackend()
        backend.index_document(IndexedDocument("d1", "alice", "Billing", text))
        hits = backend.search("alice", "payment terms", limit=5, scope_id=None, min_score=0.4)
    """

    def __init__(self, k1: float = 1.5, b: float = 0.75, score_scale: float = 5.0):
        self.index = BM25Index(k1=k1, b=b)
        self.score_scale = score_scale
        self._documents: Dict[str, IndexedDocument] = {}

    def index_document(self, document: IndexedDocument) -> None:
        self._documents[document.id] = document
        self.index.add(document.id, f"{document.title}\n{document.content}")

    def index_documents(self, documents: List[IndexedDocument]) -> None:
        for document in documents:
            self.index_document(document)
        logger.info(f"Indexed {len(documents)} documents for BM25")

    def remove_document(self, document_id: str) -> None:
        self._documents.pop(document_id, None)
        self.index.remove(document_id)

    def search(
        self,
        requester: str,
        query: str,
        limit: int,
        scope_id: Optional[str] = None,
        min_score: float = 0.0,
    ) -> List[SearchHit]:
        """
        Search documents visible to requester.

        Args:
            requester: Only this owner's documents are searched
            query: Search query
            limit: Maximum number of hits
            scope_id: Restrict to one project/collection
            min_score: Drop hits whose normalised score is below this

        Returns:
            Hits sorted by descending score
        """
        hits = []
        for doc_id, raw in self.index.score(query).items():
            doc = self._documents[doc_id]
            if doc.owner != requester:
                continue
            if scope_id is not None and doc.scope_id != scope_id:
                continue

            score = min(raw / self.score_scale, 1.0)
            if score < min_score:
                continue

            hits.append(
                SearchHit(
                    document_id=doc.id,
                    title=doc.title,
                    content=doc.content,
                    snippet=make_snippet(doc.content, query),
                    score=score,
                    match_type="keyword",
                )
            )

        hits.sort(key=lambda h: h.score, reverse=True)
        return hits[:limit]
