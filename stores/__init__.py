from .in_memory import InMemoryConversationStore, InMemoryDocumentStore
from .seed import load_seed

__all__ = ["InMemoryDocumentStore", "InMemoryConversationStore", "load_seed"]
