"""
Collaborator contracts consumed by the context assembly core.

The core never talks to storage, search or an LLM directly; it goes
through these narrow protocols so it can be exercised with in-memory
fakes. Records returned by collaborators are plain dataclasses.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol


@dataclass
class StoredDocument:
    """A document as returned by the document store."""

    id: str
    title: str
    content: str


@dataclass
class SearchHit:
    """A single ranked result from the semantic/keyword search backend."""

    document_id: str
    title: str
    content: str
    snippet: str
    score: float
    match_type: str = "semantic"


@dataclass
class HistoryMessage:
    """One conversation message, oldest first."""

    role: str  # "user" | "assistant"
    content: str
    is_summary: bool = False


@dataclass
class Conversation:
    """Conversation metadata: owner and the documents attached to it."""

    id: str
    user_id: str
    document_ids: List[str] = field(default_factory=list)


@dataclass
class ProviderChoice:
    """Provider and model picked by the selection policy."""

    provider: str
    model: str


@dataclass
class ProviderConfig:
    """Everything a text generator needs to call a provider."""

    provider: str
    model: str
    api_key: str
    temperature: float = 0.3
    max_tokens: Optional[int] = None


@dataclass
class GenerationResult:
    """Text produced by a generation provider."""

    text: str
    provider: str = ""
    model: str = ""
    tokens_used: Optional[int] = None


class DocumentStore(Protocol):
    def get_document(self, document_id: str, requester: str) -> Optional[StoredDocument]:
        ...

    def list_documents_by_scope(self, requester: str, scope_id: str) -> List[StoredDocument]:
        ...


class SearchBackend(Protocol):
    def search(
        self,
        requester: str,
        query: str,
        limit: int,
        scope_id: Optional[str],
        min_score: float,
    ) -> List[SearchHit]:
        ...


class ConversationStore(Protocol):
    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        ...

    def get_messages(self, conversation_id: str, requester: Optional[str] = None) -> Optional[List[HistoryMessage]]:
        ...

    def get_user_settings(self, requester: str) -> Dict[str, Any]:
        ...


class TextGenerator(Protocol):
    def generate(self, prompt: str, system_instruction: str, config: ProviderConfig) -> GenerationResult:
        ...


class ProviderSelector(Protocol):
    def select_provider(
        self,
        user_settings: Optional[Dict[str, Any]],
        preferred_provider: Optional[str] = None,
        needs_search: bool = False,
    ) -> ProviderChoice:
        ...

    def get_api_key(self, provider: str, user_settings: Optional[Dict[str, Any]]) -> str:
        ...
