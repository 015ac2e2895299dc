from retrieval.lexical_retriever import BM25Index, IndexedDocument, KeywordSearchBackend, make_snippet, tokenize


def build_backend():
    backend = KeywordSearchBackend(score_scale=1.0)
    backend.index_documents(
        [
            IndexedDocument("d1", "alice", "Payments", "Payment terms are net 30 days.", scope_id="p1"),
            IndexedDocument("d2", "alice", "Deploy", "Deploy with the release command.", scope_id="p2"),
            IndexedDocument("d3", "bob", "Payments", "Bob payment terms net 60."),
        ]
    )
    return backend


def test_tokenize_strips_punctuation():
    assert tokenize("Payment terms?") == ["payment", "terms"]


def test_search_returns_keyword_hits_in_unit_range():
    hits = build_backend().search("alice", "payment terms", limit=5, scope_id=None, min_score=0.0)

    assert [h.document_id for h in hits] == ["d1"]
    assert hits[0].match_type == "keyword"
    assert 0.0 < hits[0].score <= 1.0


def test_search_respects_owner_and_scope():
    backend = build_backend()
    assert backend.search("bob", "payment", limit=5, scope_id=None, min_score=0.0)[0].document_id == "d3"
    assert backend.search("alice", "payment", limit=5, scope_id="p2", min_score=0.0) == []


def test_min_score_filters_hits():
    backend = KeywordSearchBackend(score_scale=1000.0)
    backend.index_document(IndexedDocument("d1", "alice", "Payments", "payment terms"))
    assert backend.search("alice", "payment", limit=5, scope_id=None, min_score=0.4) == []


def test_remove_document():
    backend = build_backend()
    backend.remove_document("d1")
    assert backend.search("alice", "payment", limit=5, scope_id=None, min_score=0.0) == []
    assert len(backend.index) == 2


def test_reindex_replaces_document():
    index = BM25Index()
    index.add("d1", "alpha beta")
    index.add("d1", "gamma")
    assert index.score("alpha") == {}
    assert "d1" in index.score("gamma")


def test_snippet_centers_on_match():
    content = "intro " * 100 + "needle here"
    snippet = make_snippet(content, "needle", width=40)
    assert "needle" in snippet
    assert snippet.startswith("...")
