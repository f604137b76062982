"""Search results and their prompt-injection renderings."""

from __future__ import annotations

from dataclasses import dataclass

from mnemo.db.models import ScoredDocument


@dataclass
class SearchResult:
    """A ranked hit from one collection. Transient; never persisted.

    Attributes:
        id: Document ID (conversation UUID, fact UUID, or absolute file path).
        content: Conversation summary, fact text, or file content.
        created: RFC 3339 timestamp, empty for project files.
        updated: RFC 3339 timestamp, empty for project files.
        score: Cosine similarity to the query (higher = more related).
    """

    id: str
    content: str
    created: str = ""
    updated: str = ""
    score: float = 0.0

    @classmethod
    def from_hit(cls, hit: ScoredDocument) -> SearchResult:
        doc = hit.document
        return cls(
            id=doc.id,
            content=doc.content,
            created=doc.metadata.get("created", ""),
            updated=doc.metadata.get("updated", ""),
            score=hit.score,
        )

    def conversation_string(self) -> str:
        if not self.updated:
            return f"Conversation on {self.created}:\n{self.content}\n\n"
        return f"Conversation from {self.created} to {self.updated}:\n{self.content}\n\n"

    def fact_string(self) -> str:
        return (
            f"Fact with ID `{self.id}` created on {self.created}, "
            f"last updated on {self.updated}:\n{self.content}\n\n"
        )

    def file_string(self) -> str:
        return f"File `{self.id}`:\n{self.content}\n\n"
