"""Session — one explicit object wiring the store, ledger, facts and retrieval.

A Session owns the database connection, the background save queue and the
optional project indexer of one box. Nothing in mnemo keeps module-level
state; everything a chat needs hangs off the Session.
"""

from __future__ import annotations

import logging
import sqlite3
from concurrent.futures import Future

from mnemo.config import MnemoConfig, ensure_home
from mnemo.db.connection import Database
from mnemo.db.repository import Collection, EmbeddingStore
from mnemo.db.schema import initialize
from mnemo.db.vectors import (
    CONVERSATIONS_PREFIX,
    FACTS_PREFIX,
    PROJECT_FILES_PREFIX,
    conversations_collection,
    facts_collection,
)
from mnemo.errors import IndexPrecondition, StorageUnavailable
from mnemo.facts import FactStore
from mnemo.indexer.indexer import ProjectIndexer
from mnemo.indexer.watcher import Watcher
from mnemo.ledger.conversation import Conversation
from mnemo.ledger.ledger import ConversationLedger
from mnemo.ledger.save_queue import SaveQueue
from mnemo.ledger.summarizer import ConversationSummarizer
from mnemo.llm.client import LanguageModel, LLMClient
from mnemo.retrieval.gateway import RetrievalGateway, RetrievedContext
from mnemo.retrieval.results import SearchResult

log = logging.getLogger(__name__)


class Session:
    """Everything one box needs for the lifetime of a chat.

    Args:
        cfg: A finalized configuration.
        llm: Language-model capabilities. Defaults to an :class:`LLMClient`
            bound to the configured models.
        watcher: Event source handed to the project indexer.
        index_project: Start bulk indexing and watching the configured project
            immediately, on a background thread.

    Raises:
        StorageUnavailable: If the vector store cannot be opened.

    A project whose indexer preconditions fail is logged and dropped; the
    session still works, without project-file search.
    """

    def __init__(
        self,
        cfg: MnemoConfig,
        llm: LanguageModel | None = None,
        *,
        watcher: Watcher | None = None,
        index_project: bool = False,
    ) -> None:
        self.cfg = cfg
        self.llm: LanguageModel = llm or LLMClient(cfg.embedding, cfg.completion)
        ensure_home(cfg)

        self._conn = Database(cfg.db_path).connect()
        try:
            initialize(self._conn)
        except sqlite3.Error as exc:
            self._conn.close()
            raise StorageUnavailable(f"Cannot initialise {cfg.db_path}: {exc}") from exc

        self.store = EmbeddingStore(self._conn, embedding_func=self.llm.embed)
        box = cfg.store.box
        conversations = self.store.open_or_create_collection(conversations_collection(box))
        facts = self.store.open_or_create_collection(facts_collection(box))

        self.ledger = ConversationLedger(cfg.box_dir, conversations)
        self.saver = SaveQueue(self.ledger, ConversationSummarizer(self.llm))
        self.facts = FactStore(facts, self.llm)

        self.indexer: ProjectIndexer | None = None
        project_files: Collection | None = None
        if cfg.store.project is not None:
            project_files, self.indexer = self._open_project(watcher)

        self.gateway = RetrievalGateway(
            self.llm,
            conversations,
            facts,
            project_files=project_files,
            distill=cfg.retrieval.distill,
        )
        if index_project and self.indexer is not None:
            self.indexer.start()
        log.info("Session opened for box '%s'", box)

    def _open_project(
        self, watcher: Watcher | None
    ) -> tuple[Collection | None, ProjectIndexer | None]:
        root = self.cfg.store.project
        try:
            indexer = ProjectIndexer.open(
                root,
                self.store,
                watcher=watcher,
                concurrency=self.cfg.indexer.concurrency,
            )
        except (IndexPrecondition, StorageUnavailable) as exc:
            log.error("Project %s disabled: %s", root, exc)
            return None, None
        return indexer.collection, indexer

    # ------------------------------------------------------------------
    # Namespaces
    # ------------------------------------------------------------------

    def list_boxes(self) -> list[str]:
        """Names of every box with conversations or facts in the store."""
        boxes: set[str] = set()
        for prefix in (CONVERSATIONS_PREFIX, FACTS_PREFIX):
            boxes.update(name[len(prefix):] for name in self.store.list_collections(prefix))
        return sorted(boxes)

    def list_projects(self) -> list[str]:
        """Absolute roots of every project ever indexed."""
        prefix = PROJECT_FILES_PREFIX
        return [name[len(prefix):] for name in self.store.list_collections(prefix)]

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def search_conversations(self, text: str, k: int | None = None) -> list[SearchResult]:
        return self.gateway.search_conversations(text, self._k(k))

    def search_facts(self, text: str, k: int | None = None) -> list[SearchResult]:
        return self.gateway.search_facts(text, self._k(k))

    def search_project_files(self, text: str, k: int | None = None) -> list[SearchResult]:
        return self.gateway.search_project_files(text, self._k(k))

    def build_context(self, user_input: str, k: int | None = None) -> RetrievedContext:
        return self.gateway.build_context(user_input, self._k(k))

    def _k(self, k: int | None) -> int:
        return self.cfg.retrieval.top_k if k is None else k

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    def new_conversation(self) -> Conversation:
        return self.ledger.new_conversation()

    def save_async(self, conversation: Conversation) -> Future[list[Exception]]:
        """Queue a summary refresh and save; returns immediately."""
        return self.saver.submit(conversation)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Flush pending saves, stop the indexer and close the store."""
        self.saver.shutdown(wait=True)
        if self.indexer is not None:
            self.indexer.stop()
        self._conn.close()
        log.info("Session closed for box '%s'", self.cfg.store.box)

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
