"""Tests for SearchResult renderings."""

from __future__ import annotations

from mnemo.db.models import Document, ScoredDocument
from mnemo.retrieval.results import SearchResult


def test_from_hit_copies_timestamps_and_score():
    doc = Document(
        id="abc",
        content="summary",
        metadata={"created": "2024-01-01T00:00:00+00:00", "updated": "2024-01-02T00:00:00+00:00"},
        embedding=[1.0],
    )
    result = SearchResult.from_hit(ScoredDocument(document=doc, score=0.75))
    assert result == SearchResult(
        id="abc",
        content="summary",
        created="2024-01-01T00:00:00+00:00",
        updated="2024-01-02T00:00:00+00:00",
        score=0.75,
    )


def test_from_hit_without_timestamps():
    doc = Document(id="/p/a.txt", content="text", metadata={"hash": "/p/a.txt"}, embedding=[1.0])
    result = SearchResult.from_hit(ScoredDocument(document=doc, score=0.5))
    assert result.created == ""
    assert result.updated == ""


def test_conversation_string_with_range():
    r = SearchResult(id="u", content="We talked.", created="C", updated="U")
    assert r.conversation_string() == "Conversation from C to U:\nWe talked.\n\n"


def test_conversation_string_without_updated():
    r = SearchResult(id="u", content="We talked.", created="C")
    assert r.conversation_string() == "Conversation on C:\nWe talked.\n\n"


def test_fact_string():
    r = SearchResult(id="f1", content="Likes tea.", created="C", updated="U")
    assert r.fact_string() == "Fact with ID `f1` created on C, last updated on U:\nLikes tea.\n\n"


def test_file_string():
    r = SearchResult(id="/p/main.go", content="package main")
    assert r.file_string() == "File `/p/main.go`:\npackage main\n\n"
