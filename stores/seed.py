"""
Seed the in-memory stores from a JSON file.

Expected layout:
    {
        "documents": [
            {"id": "d1", "title": "...", "content": "...", "owner": "alice", "scope_id": "proj-1"}
        ],
        "conversations": [
            {"id": "c1", "user_id": "alice", "document_ids": ["d1"],
             "messages": [{"role": "user", "content": "..."}]}
        ],
        "user_settings": {"alice": {"geminiModelPreference": "gemini-2.0-flash"}}
    }
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from retrieval.lexical_retriever import IndexedDocument, KeywordSearchBackend
from shared.interfaces import Conversation, StoredDocument

from .in_memory import InMemoryConversationStore, InMemoryDocumentStore

logger = logging.getLogger(__name__)


def load_seed(
    path: str,
    document_store: InMemoryDocumentStore,
    conversation_store: InMemoryConversationStore,
    search_backend: Optional[KeywordSearchBackend] = None,
) -> Dict[str, int]:
    """
    Load documents, conversations and user settings into the stores.

    Documents are also indexed in the keyword backend when one is given.

    Returns:
        Counts of loaded documents and conversations
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))

    documents = data.get("documents", [])
    for item in documents:
        document = StoredDocument(item["id"], item.get("title", ""), item.get("content", ""))
        document_store.add_document(document, owner=item["owner"], scope_id=item.get("scope_id"))

        if search_backend is not None:
            search_backend.index_document(
                IndexedDocument(
                    id=document.id,
                    owner=item["owner"],
                    title=document.title,
                    content=document.content,
                    scope_id=item.get("scope_id"),
                )
            )

    conversations = data.get("conversations", [])
    for item in conversations:
        conversation_store.add_conversation(
            Conversation(
                id=item["id"],
                user_id=item["user_id"],
                document_ids=list(item.get("document_ids", [])),
            )
        )
        for message in item.get("messages", []):
            conversation_store.append_message(item["id"], message["role"], message["content"])

    for requester, user_settings in data.get("user_settings", {}).items():
        conversation_store.set_user_settings(requester, user_settings)

    logger.info(f"Seeded {len(documents)} documents and {len(conversations)} conversations from {path}")
    return {"documents": len(documents), "conversations": len(conversations)}
