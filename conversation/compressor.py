"""
Conversation history compression.

Long conversations are compressed by summarizing every message except
the most recent window. The summary replaces that prefix in the history
fed to the prompt builder; stored messages are never modified.
Summarization is best effort: any generation failure means "no
compression", never a failed chat request.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from deployment.circuit_breaker import call_with_timeout
from shared.config import settings
from shared.errors import ContextValidationError
from shared.interfaces import (
    ConversationStore,
    HistoryMessage,
    ProviderConfig,
    ProviderSelector,
    TextGenerator,
)

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_INSTRUCTION = (
    "You are a conversation summarizer. Create concise, accurate summaries "
    "that preserve key information."
)

SUMMARY_PROMPT = """Summarize the following conversation between a user and an AI assistant. Focus on key questions asked, answers provided, and any decisions or conclusions reached. Keep the summary concise but complete.

Conversation:
{conversation}

Summary:"""


@dataclass
class CompressionResult:
    """Summary of older messages plus the split point."""

    summary: str
    summarized_count: int
    remaining_count: int

    def apply(self, messages: List[HistoryMessage]) -> List[HistoryMessage]:
        """
        Compressed history: one summary message followed by the
        messages left verbatim. Returns a new list.
        """
        kept = list(messages[-self.remaining_count:]) if self.remaining_count else []
        return [HistoryMessage(role="assistant", content=self.summary, is_summary=True)] + kept


def render_transcript(messages: List[HistoryMessage]) -> str:
    return "\n\n".join(
        f"{'User' if m.role == 'user' else 'Assistant'}: {m.content}" for m in messages
    )


class ConversationCompressor:
    """
    Summarize old conversation messages through a text generator.

    Usage:
        compressor = ConversationCompressor(conversations, LLMClient(), DefaultProviderSelector())
        result = compressor.compress_if_needed("conv-1", "user-1", window=10)
        if result:
            history = result.apply(messages)
    """

    def __init__(
        self,
        conversation_store: ConversationStore,
        generator: TextGenerator,
        provider_selector: ProviderSelector,
        generation_timeout: float = None,
    ):
        self.conversation_store = conversation_store
        self.generator = generator
        self.provider_selector = provider_selector
        self.generation_timeout = (
            generation_timeout
            if generation_timeout is not None
            else settings.compression.generation_timeout
        )

    def _provider_config(self, requester: str) -> ProviderConfig:
        user_settings = self.conversation_store.get_user_settings(requester) or {}
        choice = self.provider_selector.select_provider(user_settings, None, False)
        return ProviderConfig(
            provider=choice.provider,
            model=choice.model,
            api_key=self.provider_selector.get_api_key(choice.provider, user_settings),
            temperature=settings.compression.temperature,
        )

    def compress_if_needed(
        self,
        conversation_id: str,
        requester: str,
        window: int = None,
    ) -> Optional[CompressionResult]:
        """
        Summarize all but the last window messages when the conversation
        is longer than window.

        Args:
            conversation_id: Conversation to compress
            requester: Identity whose settings pick the provider
            window: Number of most recent messages kept verbatim

        Returns:
            CompressionResult, or None when no compression is needed or
            summarization failed
        """
        if window is None:
            window = settings.compression.history_window
        if window < 1:
            raise ContextValidationError(f"window must be at least 1, got {window}")

        messages = self.conversation_store.get_messages(conversation_id, requester)
        if not messages or len(messages) <= window:
            return None

        to_summarize = messages[:-window]
        prompt = SUMMARY_PROMPT.format(conversation=render_transcript(to_summarize))

        try:
            config = self._provider_config(requester)
            response = call_with_timeout(
                self.generator.generate,
                self.generation_timeout,
                prompt,
                SUMMARY_SYSTEM_INSTRUCTION,
                config,
            )
        except Exception as e:
            logger.warning(f"Failed to summarize conversation {conversation_id}: {e}")
            return None

        logger.info(
            f"Summarized {len(to_summarize)} messages of conversation {conversation_id}, "
            f"keeping {window} verbatim"
        )

        return CompressionResult(
            summary=response.text,
            summarized_count=len(to_summarize),
            remaining_count=window,
        )
