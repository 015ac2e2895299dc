import time

import pytest

from conversation.compressor import ConversationCompressor, render_transcript
from generation.llm_client import LLMClient
from generation.provider_router import DefaultProviderSelector
from shared.config import settings
from shared.errors import ContextValidationError, GenerationError
from shared.interfaces import GenerationResult, HistoryMessage

from tests.fakes import FakeGenerator, FakeSelector, fill_conversation


def make_compressor(store, generator=None, selector=None, **kwargs):
    return ConversationCompressor(store, generator or FakeGenerator(), selector or FakeSelector(), **kwargs)


def test_fifteen_messages_window_ten(conversation_store):
    fill_conversation(conversation_store, "conv-1", 15)
    generator = FakeGenerator("Summary text")

    result = make_compressor(conversation_store, generator).compress_if_needed("conv-1", "alice", window=10)

    assert result.summary == "Summary text"
    assert result.summarized_count == 5
    assert result.remaining_count == 10

    prompt = generator.calls[0]["prompt"]
    assert "User: message 0" in prompt
    assert "User: message 4" in prompt
    assert "message 5" not in prompt
    assert "key questions asked" in prompt


def test_short_conversation_not_compressed(conversation_store):
    fill_conversation(conversation_store, "conv-1", 8)
    generator = FakeGenerator()

    assert make_compressor(conversation_store, generator).compress_if_needed("conv-1", "alice", window=10) is None
    assert generator.calls == []


def test_exactly_window_not_compressed(conversation_store):
    fill_conversation(conversation_store, "conv-1", 10)
    assert make_compressor(conversation_store).compress_if_needed("conv-1", "alice") is None


def test_unknown_or_foreign_conversation(conversation_store):
    compressor = make_compressor(conversation_store)
    fill_conversation(conversation_store, "conv-1", 15)
    assert compressor.compress_if_needed("missing", "alice") is None
    assert compressor.compress_if_needed("conv-1", "bob") is None


def test_generation_failure_returns_none(conversation_store):
    fill_conversation(conversation_store, "conv-1", 15)
    generator = FakeGenerator(error=GenerationError("provider down", "openai"))

    assert make_compressor(conversation_store, generator).compress_if_needed("conv-1", "alice") is None


def test_generation_timeout_returns_none(conversation_store):
    fill_conversation(conversation_store, "conv-1", 15)

    class SlowGenerator:
        def generate(self, prompt, system_instruction, config):
            time.sleep(1.0)
            return GenerationResult(text="late")

    compressor = make_compressor(conversation_store, SlowGenerator(), generation_timeout=0.05)
    assert compressor.compress_if_needed("conv-1", "alice") is None


def test_missing_credentials_returns_none(conversation_store, monkeypatch):
    for name in ("OPENAI_API_KEY", "CLAUDE_API_KEY", "GEMINI_API_KEY"):
        monkeypatch.setattr(settings, name, "")
    fill_conversation(conversation_store, "conv-1", 15)
    compressor = make_compressor(conversation_store, LLMClient(), DefaultProviderSelector("openai"))

    assert compressor.compress_if_needed("conv-1", "alice") is None


def test_provider_config_uses_user_settings(conversation_store):
    fill_conversation(conversation_store, "conv-1", 12)
    conversation_store.set_user_settings("alice", {"claudeApiKey": "user-key", "claudeModelPreference": "claude-x"})
    generator = FakeGenerator()

    make_compressor(conversation_store, generator, DefaultProviderSelector("claude")).compress_if_needed(
        "conv-1", "alice"
    )

    config = generator.calls[0]["config"]
    assert config.provider == "claude"
    assert config.model == "claude-x"
    assert config.api_key == "user-key"
    assert config.temperature == 0.3


def test_invalid_window(conversation_store):
    with pytest.raises(ContextValidationError):
        make_compressor(conversation_store).compress_if_needed("conv-1", "alice", window=0)


def test_apply_replaces_prefix_without_mutating(conversation_store):
    fill_conversation(conversation_store, "conv-1", 15)
    messages = conversation_store.get_messages("conv-1", "alice")
    result = make_compressor(conversation_store).compress_if_needed("conv-1", "alice", window=10)

    compressed = result.apply(messages)

    assert len(compressed) == 11
    assert compressed[0].is_summary is True
    assert [m.content for m in compressed[1:]] == [f"message {i}" for i in range(5, 15)]
    assert len(messages) == 15
    assert len(conversation_store.get_messages("conv-1")) == 15


def test_render_transcript():
    messages = [HistoryMessage("user", "q"), HistoryMessage("assistant", "a")]
    assert render_transcript(messages) == "User: q\n\nAssistant: a"


def test_platform_gemini_key_used_without_user_credentials(conversation_store, monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "")
    monkeypatch.setattr(settings, "CLAUDE_API_KEY", "")
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "platform-key")
    fill_conversation(conversation_store, "conv-1", 15)
    generator = FakeGenerator("Gemini summary")

    result = make_compressor(conversation_store, generator, DefaultProviderSelector()).compress_if_needed(
        "conv-1", "alice"
    )

    config = generator.calls[0]["config"]
    assert (config.provider, config.api_key) == ("gemini", "platform-key")
    assert result.summary == "Gemini summary"
