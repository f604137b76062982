"""Domain models for the vector store layer."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Document:
    """The atomic stored unit of a collection.

    An empty *embedding* means "not computed yet": the store embeds
    ``content`` with its embedding function when the document is upserted.
    """

    id: str
    content: str
    metadata: dict[str, str] = field(default_factory=dict)
    embedding: list[float] = field(default_factory=list)


@dataclass
class ScoredDocument:
    """A query hit: the stored document and its cosine similarity to the query."""

    document: Document
    score: float
