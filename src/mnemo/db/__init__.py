"""mnemo vector store layer."""

from mnemo.db.connection import Database
from mnemo.db.migrations import MIGRATIONS, run_migrations
from mnemo.db.models import Document, ScoredDocument
from mnemo.db.repository import Collection, EmbeddingStore
from mnemo.db.schema import initialize
from mnemo.db.vectors import (
    conversations_collection,
    facts_collection,
    project_collection,
)

__all__ = [
    "Collection",
    "Database",
    "Document",
    "EmbeddingStore",
    "MIGRATIONS",
    "ScoredDocument",
    "conversations_collection",
    "facts_collection",
    "initialize",
    "project_collection",
    "run_migrations",
]
