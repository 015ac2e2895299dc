"""
Conversation Module.

Compress long chat histories into a generated summary plus the most
recent messages.

Usage:
    from conversation import ConversationCompressor

    result = compressor.compress_if_needed(conversation_id, user_id)
    history = result.apply(messages) if result else messages
"""

from .compressor import (
    SUMMARY_PROMPT,
    SUMMARY_SYSTEM_INSTRUCTION,
    CompressionResult,
    ConversationCompressor,
    render_transcript,
)

__all__ = [
    "ConversationCompressor",
    "CompressionResult",
    "render_transcript",
    "SUMMARY_PROMPT",
    "SUMMARY_SYSTEM_INSTRUCTION",
]
