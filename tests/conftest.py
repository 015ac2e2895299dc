import pytest

from context.token_estimator import TiktokenEstimator
from deployment.circuit_breaker import get_llm_breaker, get_search_breaker
from shared.interfaces import Conversation, StoredDocument
from stores.in_memory import InMemoryConversationStore, InMemoryDocumentStore


@pytest.fixture(autouse=True)
def reset_breakers():
    get_search_breaker().reset()
    get_llm_breaker().reset()
    yield
    get_search_breaker().reset()
    get_llm_breaker().reset()


@pytest.fixture
def document_store():
    store = InMemoryDocumentStore()
    store.add_document(StoredDocument("doc-1", "Setup Guide", "Install the CLI and run init. " * 10), owner="alice")
    store.add_document(StoredDocument("doc-2", "Billing", "Invoices are issued monthly. " * 10), owner="alice", scope_id="proj-1")
    store.add_document(StoredDocument("doc-3", "Deploy", "Deploy with the release command. " * 10), owner="alice", scope_id="proj-1")
    store.add_document(StoredDocument("doc-9", "Private", "Bob's notes."), owner="bob", scope_id="proj-1")
    return store


@pytest.fixture
def conversation_store():
    store = InMemoryConversationStore()
    store.add_conversation(Conversation(id="conv-1", user_id="alice", document_ids=["doc-1", "doc-2"]))
    return store


@pytest.fixture(scope="session")
def cl100k():
    """tiktoken estimator; skipped when the encoding cannot be loaded."""
    estimator = TiktokenEstimator("cl100k_base")
    try:
        estimator.encoding
    except Exception as e:
        pytest.skip(f"cl100k_base encoding unavailable: {e}")
    return estimator
