import pytest

from context.context_stats import ContextStatsReporter, DocumentTokens, compute_stats
from shared.errors import ContextValidationError
from shared.interfaces import Conversation

from tests.fakes import fill_conversation


def test_empty_conversation(conversation_store, document_store):
    conversation_store.add_conversation(Conversation(id="empty", user_id="alice"))

    stats = ContextStatsReporter(conversation_store, document_store).get_context_stats("empty")

    assert stats.document_count == 0
    assert stats.message_count == 0
    assert stats.token_breakdown.total == 0
    assert stats.utilization_percent == 0
    assert stats.remaining_tokens == 100000
    assert stats.can_add_more is True


def test_documents_and_messages_counted(conversation_store, document_store):
    fill_conversation(conversation_store, "conv-1", 3)

    stats = ContextStatsReporter(conversation_store, document_store).get_context_stats("conv-1")

    # doc-1 and doc-2 are 300 and 290 characters
    assert [(d.id, d.tokens) for d in stats.documents] == [("doc-1", 75), ("doc-2", 73)]
    assert stats.message_count == 3
    assert stats.token_breakdown.documents == 148
    assert stats.token_breakdown.messages == 9
    assert stats.token_breakdown.total == 157
    assert stats.context_limit == 100000


def test_missing_documents_skipped(conversation_store, document_store):
    conversation_store.add_conversation(Conversation(id="c2", user_id="alice", document_ids=["gone", "doc-1"]))

    stats = ContextStatsReporter(conversation_store, document_store).get_context_stats("c2")

    assert [d.id for d in stats.documents] == ["doc-1"]


def test_unknown_conversation(conversation_store, document_store):
    assert ContextStatsReporter(conversation_store, document_store).get_context_stats("nope") is None


def test_utilization_and_can_add_more_threshold():
    stats = compute_stats([DocumentTokens("d", "D", 79999)], [], context_limit=100000)
    assert stats.utilization_percent == 80
    assert stats.can_add_more is True

    stats = compute_stats([DocumentTokens("d", "D", 80000)], [], context_limit=100000)
    assert stats.can_add_more is False


def test_over_limit_clamps_remaining():
    stats = compute_stats([DocumentTokens("d", "D", 150)], [10], context_limit=100)
    assert stats.remaining_tokens == 0
    assert stats.utilization_percent == 160
    assert stats.can_add_more is False


def test_utilization_rounds_half_up():
    assert compute_stats([], [5], context_limit=200).utilization_percent == 3


def test_invalid_limit():
    with pytest.raises(ContextValidationError):
        compute_stats([], [], context_limit=0)
