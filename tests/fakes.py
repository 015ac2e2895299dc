"""In-memory collaborator fakes and builders shared by the tests."""

import time
from typing import List, Optional

from retrieval.context_retriever import CandidateChunk
from shared.interfaces import GenerationResult, ProviderChoice, SearchHit
from stores.in_memory import InMemoryConversationStore


class FakeSearch:
    """Search backend returning canned hits and recording calls."""

    def __init__(self, hits: Optional[List[SearchHit]] = None, delay: float = 0.0):
        self.hits = hits or []
        self.delay = delay
        self.calls = []

    def search(self, requester, query, limit, scope_id, min_score):
        self.calls.append(
            {"requester": requester, "query": query, "limit": limit, "scope_id": scope_id, "min_score": min_score}
        )
        if self.delay:
            time.sleep(self.delay)
        return list(self.hits)


class FailingSearch:
    def search(self, requester, query, limit, scope_id, min_score):
        raise ConnectionError("search backend unreachable")


class FakeGenerator:
    def __init__(self, text: str = "The user asked about billing.", error: Exception = None):
        self.text = text
        self.error = error
        self.calls = []

    def generate(self, prompt, system_instruction, config):
        self.calls.append({"prompt": prompt, "system_instruction": system_instruction, "config": config})
        if self.error:
            raise self.error
        return GenerationResult(text=self.text, provider=config.provider, model=config.model)


class FakeSelector:
    def __init__(self, provider: str = "openai", api_key: str = "sk-test"):
        self.provider = provider
        self.api_key = api_key

    def select_provider(self, user_settings, preferred_provider=None, needs_search=False):
        return ProviderChoice(self.provider, "test-model")

    def get_api_key(self, provider, user_settings):
        return self.api_key


def make_hit(doc_id: str, score: float, content: str = "search content", match_type: str = "semantic") -> SearchHit:
    return SearchHit(
        document_id=doc_id,
        title=f"Hit {doc_id}",
        content=content,
        snippet=content[:20],
        score=score,
        match_type=match_type,
    )


def make_chunk(doc_id: str, tokens: int, score: float = 1.0, source_type: str = "direct") -> CandidateChunk:
    """Chunk whose content estimates to exactly `tokens` tokens."""
    return CandidateChunk(
        document_id=doc_id,
        document_title=f"Doc {doc_id}",
        content="x" * (tokens * 4),
        snippet="x" * 20,
        relevance_score=score,
        source_type=source_type,
    )


class SlowDocumentStore:
    """Wraps a document store and delays direct lookups."""

    def __init__(self, store, delay: float):
        self.store = store
        self.delay = delay

    def get_document(self, document_id, requester):
        time.sleep(self.delay)
        return self.store.get_document(document_id, requester)

    def list_documents_by_scope(self, requester, scope_id):
        return self.store.list_documents_by_scope(requester, scope_id)


def fill_conversation(store: InMemoryConversationStore, conversation_id: str, count: int) -> None:
    for i in range(count):
        role = "user" if i % 2 == 0 else "assistant"
        store.append_message(conversation_id, role, f"message {i}")
