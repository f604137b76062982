"""Tests for the RetrievalGateway."""

from __future__ import annotations

import pytest

from mnemo.db.models import Document
from mnemo.errors import EmbeddingUnavailable, ProviderError
from mnemo.retrieval.gateway import RetrievalGateway, RetrievedContext
from mnemo.retrieval.results import SearchResult


@pytest.fixture
def collections(store):
    return {
        "conversations": store.open_or_create_collection("conversations:default"),
        "facts": store.open_or_create_collection("facts:default"),
        "files": store.open_or_create_collection("project_files:/p"),
    }


@pytest.fixture
def gateway(fake_llm, collections):
    return RetrievalGateway(
        fake_llm,
        collections["conversations"],
        collections["facts"],
        project_files=collections["files"],
        distill=False,
    )


def _fill(collections):
    collections["conversations"].upsert([
        Document(id="c1", content="we discussed vectors",
                 metadata={"created": "2024-01-01T00:00:00+00:00", "updated": "2024-01-02T00:00:00+00:00"}),
    ])
    collections["facts"].upsert([
        Document(id="f1", content="likes vectors",
                 metadata={"created": "2024-01-01T00:00:00+00:00", "updated": "2024-01-01T00:00:00+00:00"}),
    ])
    collections["files"].upsert([
        Document(id="/p/vec.py", content="def vectors(): ...", metadata={"hash": "/p/vec.py"}),
    ])


def test_searches_return_results_from_matching_collection(gateway, collections):
    _fill(collections)
    assert [r.id for r in gateway.search_conversations("vectors", 3)] == ["c1"]
    assert [r.id for r in gateway.search_facts("vectors", 3)] == ["f1"]
    assert [r.id for r in gateway.search_project_files("vectors", 3)] == ["/p/vec.py"]


def test_search_orders_by_score(gateway, collections, fake_llm):
    fake_llm.vectors = {"near": [1.0, 0.0], "far": [-1.0, 0.0], "query": [1.0, 0.1]}
    collections["facts"].upsert([
        Document(id="far", content="far"),
        Document(id="near", content="near"),
    ])
    results = gateway.search_facts("query", 2)
    assert [r.id for r in results] == ["near", "far"]
    assert results[0].score > results[1].score


def test_search_without_project_returns_empty(fake_llm, collections):
    gateway = RetrievalGateway(fake_llm, collections["conversations"], collections["facts"])
    assert gateway.search_project_files("anything", 3) == []


def test_empty_collection_does_not_embed(gateway, fake_llm):
    assert gateway.search_facts("anything", 3) == []
    assert fake_llm.embed_calls == []


def test_embedding_failure_raises_embedding_unavailable(gateway, collections, fake_llm):
    _fill(collections)
    fake_llm.fail_embed = True
    with pytest.raises(EmbeddingUnavailable) as info:
        gateway.search_facts("vectors", 3)
    assert isinstance(info.value, ProviderError)
    assert isinstance(info.value.__cause__, ProviderError)


def test_distill_query_uses_quick_complete(gateway, fake_llm):
    fake_llm.summary = "  vectors  "
    assert gateway.distill_query("tell me about those vector things") == "vectors"


def test_distill_query_falls_back_on_failure(gateway, fake_llm):
    fake_llm.fail_complete = True
    assert gateway.distill_query("raw input") == "raw input"


def test_distill_query_falls_back_on_empty(gateway, fake_llm):
    fake_llm.summary = ""
    assert gateway.distill_query("raw input") == "raw input"


def test_build_context_collects_all_three(gateway, collections):
    _fill(collections)
    context = gateway.build_context("vectors", k=3)
    assert [r.id for r in context.conversations] == ["c1"]
    assert [r.id for r in context.facts] == ["f1"]
    assert [r.id for r in context.files] == ["/p/vec.py"]
    assert not context.is_empty()


def test_build_context_distills_first(gateway, collections, fake_llm):
    _fill(collections)
    gateway.distill = True
    fake_llm.summary = "vectors"
    gateway.build_context("what did we say about vectors?")
    assert fake_llm.embed_calls[-1] == "vectors"


def test_build_context_degrades_to_empty_when_embedding_fails(gateway, collections, fake_llm):
    _fill(collections)
    fake_llm.fail_embed = True
    context = gateway.build_context("vectors")
    assert context.is_empty()
    assert context.render() == ""


def test_render_concatenates_in_order():
    context = RetrievedContext(
        conversations=[SearchResult(id="c", content="conv", created="C")],
        facts=[SearchResult(id="f", content="fact", created="C", updated="U")],
        files=[SearchResult(id="/p/x", content="file")],
    )
    assert context.render() == (
        "Conversation on C:\nconv\n\n"
        "Fact with ID `f` created on C, last updated on U:\nfact\n\n"
        "File `/p/x`:\nfile\n\n"
    )
