"""
In-memory document and conversation stores.

Reference implementations of the DocumentStore and ConversationStore
contracts, used by the demo API and tests. Documents are owned by one
user and may belong to one project scope.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional

from shared.interfaces import Conversation, HistoryMessage, StoredDocument

logger = logging.getLogger(__name__)


class InMemoryDocumentStore:
    """Owner-checked document lookup by id and by project scope."""

    def __init__(self):
        self._documents: Dict[str, StoredDocument] = {}
        self._owners: Dict[str, str] = {}
        self._scopes: Dict[str, Optional[str]] = {}

    def add_document(
        self,
        document: StoredDocument,
        owner: str,
        scope_id: Optional[str] = None,
    ) -> None:
        self._documents[document.id] = document
        self._owners[document.id] = owner
        self._scopes[document.id] = scope_id

    def remove_document(self, document_id: str) -> None:
        self._documents.pop(document_id, None)
        self._owners.pop(document_id, None)
        self._scopes.pop(document_id, None)

    def get_document(self, document_id: str, requester: str) -> Optional[StoredDocument]:
        if self._owners.get(document_id) != requester:
            return None
        return self._documents.get(document_id)

    def list_documents_by_scope(self, requester: str, scope_id: str) -> List[StoredDocument]:
        return [
            doc
            for doc_id, doc in self._documents.items()
            if self._owners[doc_id] == requester and self._scopes[doc_id] == scope_id
        ]

    def __len__(self) -> int:
        return len(self._documents)


class InMemoryConversationStore:
    """Append-only conversation messages with per-user settings."""

    def __init__(self):
        self._conversations: Dict[str, Conversation] = {}
        self._messages: Dict[str, List[HistoryMessage]] = defaultdict(list)
        self._user_settings: Dict[str, Dict[str, Any]] = {}

    def add_conversation(self, conversation: Conversation) -> None:
        self._conversations[conversation.id] = conversation

    def append_message(self, conversation_id: str, role: str, content: str) -> HistoryMessage:
        if conversation_id not in self._conversations:
            raise KeyError(f"Unknown conversation: {conversation_id}")
        if role not in ("user", "assistant"):
            raise ValueError(f"Invalid role: {role}")
        message = HistoryMessage(role=role, content=content)
        self._messages[conversation_id].append(message)
        return message

    def set_user_settings(self, requester: str, user_settings: Dict[str, Any]) -> None:
        self._user_settings[requester] = dict(user_settings)

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return self._conversations.get(conversation_id)

    def get_messages(
        self,
        conversation_id: str,
        requester: Optional[str] = None,
    ) -> Optional[List[HistoryMessage]]:
        """Messages oldest first; None if missing or not owned by requester."""
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            return None
        if requester is not None and conversation.user_id != requester:
            return None
        return list(self._messages[conversation_id])

    def get_user_settings(self, requester: str) -> Dict[str, Any]:
        return dict(self._user_settings.get(requester, {}))
