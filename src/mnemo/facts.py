"""Fact Store — the assistant's long-term memory of small, atomic facts.

Each fact is one document in the ``facts:<box>`` collection, embedded on its
own so it can be recalled by similarity.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from mnemo.db.models import Document
from mnemo.db.repository import Collection
from mnemo.ledger.conversation import utcnow
from mnemo.ledger.ledger import format_timestamp
from mnemo.llm.client import LanguageModel
from mnemo.retrieval.results import SearchResult

log = logging.getLogger(__name__)


@dataclass
class Fact:
    id: str
    content: str
    created: str
    updated: str


class FactStore:
    """CRUD and similarity search over facts.

    Unlike the collection's general upsert, :meth:`update` refuses unknown IDs:
    a fact's identity only ever comes from :meth:`create`.

    Args:
        collection: The ``facts:<box>`` collection.
        llm: Embeds fact content and search queries.
    """

    def __init__(self, collection: Collection, llm: LanguageModel) -> None:
        self.collection = collection
        self._llm = llm

    def create(self, content: str) -> str:
        """Store *content* as a new fact and return its UUID."""
        id = str(uuid.uuid4())
        now = format_timestamp(utcnow())
        self.collection.upsert([self._document(id, content, created=now, updated=now)])
        log.info("Created fact %s", id)
        return id

    def get(self, id: str) -> Fact:
        """Return the full fact record.

        Raises:
            NotFound: If no fact has this ID.
        """
        doc = self.collection.get_by_id(id)
        return _to_fact(doc)

    def read(self, id: str) -> str:
        """Return the content of fact *id*. Raises NotFound if absent."""
        return self.collection.get_by_id(id).content

    def update(self, id: str, content: str) -> None:
        """Replace the content of an existing fact, preserving ``created``.

        Raises:
            NotFound: If no fact has this ID.
        """
        existing = self.collection.get_by_id(id)
        now = format_timestamp(utcnow())
        created = existing.metadata.get("created") or now
        self.collection.upsert([self._document(id, content, created=created, updated=now)])
        log.info("Updated fact %s", id)

    def delete(self, id: str) -> None:
        self.collection.delete(id)
        log.info("Deleted fact %s", id)

    def reset(self) -> int:
        """Delete every fact in the box. Returns the number removed."""
        removed = self.collection.delete_all()
        log.info("Reset facts collection %s (%d removed)", self.collection.name, removed)
        return removed

    def list_facts(self) -> list[Fact]:
        """All facts, oldest first."""
        return [_to_fact(d) for d in self.collection.list_documents()]

    def count(self) -> int:
        return self.collection.count()

    def search(self, query: str, k: int) -> list[SearchResult]:
        """Return up to *k* facts ranked by similarity to *query*.

        ``k`` is capped at the number of stored facts; with nothing to search
        the embedder is not called.
        """
        k = min(k, self.collection.count())
        if k <= 0:
            return []
        hits = self.collection.query(self._llm.embed(query), k)
        return [SearchResult.from_hit(hit) for hit in hits]

    def _document(self, id: str, content: str, *, created: str, updated: str) -> Document:
        return Document(
            id=id,
            content=content,
            metadata={"created": created, "updated": updated},
            embedding=self._llm.embed(content),
        )


def _to_fact(doc: Document) -> Fact:
    return Fact(
        id=doc.id,
        content=doc.content,
        created=doc.metadata.get("created", ""),
        updated=doc.metadata.get("updated", ""),
    )

