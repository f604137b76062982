"""Retrieval Gateway — text in, ranked results out.

Hides embedding generation from callers: every search embeds the query text
with the language-model capability and runs a cosine query against the
matching collection. Used synchronously before a chat turn to gather related
conversations, facts and project files.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from mnemo.db.repository import Collection
from mnemo.errors import EmbeddingUnavailable, MnemoError, ProviderError
from mnemo.llm.client import LanguageModel
from mnemo.retrieval.results import SearchResult

log = logging.getLogger(__name__)

_DISTILL_PROMPT = (
    "Take the user input and respond ONLY with a very short query string to use "
    "RAG to identify matching entries."
)


@dataclass
class RetrievedContext:
    """Related material gathered for one chat turn."""

    conversations: list[SearchResult] = field(default_factory=list)
    facts: list[SearchResult] = field(default_factory=list)
    files: list[SearchResult] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.conversations or self.facts or self.files)

    def render(self) -> str:
        """Concatenate every result in its prompt-injection form."""
        parts = [r.conversation_string() for r in self.conversations]
        parts += [r.fact_string() for r in self.facts]
        parts += [r.file_string() for r in self.files]
        return "".join(parts)


class RetrievalGateway:
    """Query-by-text over the conversations, facts and project-file collections.

    Args:
        llm: Embeds queries; also distills free-form input into search queries.
        conversations: The ``conversations:<box>`` collection.
        facts: The ``facts:<box>`` collection.
        project_files: The active project's collection, or None when no
            project is configured.
        distill: Whether :meth:`build_context` rewrites user input into a
            short search query first.
    """

    def __init__(
        self,
        llm: LanguageModel,
        conversations: Collection,
        facts: Collection,
        project_files: Collection | None = None,
        distill: bool = True,
    ) -> None:
        self._llm = llm
        self.conversations = conversations
        self.facts = facts
        self.project_files = project_files
        self.distill = distill

    # ------------------------------------------------------------------
    # Searches
    # ------------------------------------------------------------------

    def search_conversations(self, text: str, k: int) -> list[SearchResult]:
        return self._search(self.conversations, text, k)

    def search_facts(self, text: str, k: int) -> list[SearchResult]:
        return self._search(self.facts, text, k)

    def search_project_files(self, text: str, k: int) -> list[SearchResult]:
        """Search project files; no configured project yields no results."""
        if self.project_files is None:
            return []
        return self._search(self.project_files, text, k)

    def _search(self, collection: Collection, text: str, k: int) -> list[SearchResult]:
        """Embed *text* and query *collection* for up to *k* hits.

        Raises:
            EmbeddingUnavailable: If the query embedding cannot be computed.
        """
        k = min(k, collection.count())
        if k <= 0:
            log.debug("Nothing to search in %s", collection.name)
            return []

        try:
            embedding = self._llm.embed(text)
        except ProviderError as exc:
            raise EmbeddingUnavailable(
                f"Cannot search '{collection.name}': {exc}"
            ) from exc

        results = [SearchResult.from_hit(hit) for hit in collection.query(embedding, k)]
        log.debug("Found %d result(s) in %s", len(results), collection.name)
        return results

    # ------------------------------------------------------------------
    # Chat-turn context
    # ------------------------------------------------------------------

    def distill_query(self, user_input: str) -> str:
        """Turn free-form input into a short search query.

        Falls back to *user_input* unchanged when the provider fails or
        returns nothing.
        """
        try:
            query = self._llm.quick_complete(_DISTILL_PROMPT, user_input)
        except ProviderError as exc:
            log.warning("Could not distill search query: %s", exc)
            return user_input
        return query.strip() or user_input

    def build_context(self, user_input: str, k: int = 3) -> RetrievedContext:
        """Gather related conversations, facts and files for a chat turn.

        Never raises for retrieval problems: a failing search is logged and
        contributes nothing, so the turn proceeds without that context.
        """
        query = self.distill_query(user_input) if self.distill else user_input
        context = RetrievedContext()
        for attr, search in (
            ("conversations", self.search_conversations),
            ("facts", self.search_facts),
            ("files", self.search_project_files),
        ):
            try:
                setattr(context, attr, search(query, k))
            except MnemoError as exc:
                log.warning("Skipping %s context: %s", attr, exc)
        return context
