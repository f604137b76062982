"""Embedding Store — durable collections of embedded documents.

Single interface for collection lifecycle, document upsert/get/delete/count and
cosine nearest-neighbour query. Similarity is computed inside SQLite with
sqlite-vec's ``vec_distance_cosine()`` over a linear scan of the collection.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor

from mnemo.db.models import Document, ScoredDocument
from mnemo.db.vectors import deserialize_embedding, serialize_embedding
from mnemo.errors import NotFound, ProviderError, SerializationError, StorageUnavailable

log = logging.getLogger(__name__)

EmbeddingFunc = Callable[[str], list[float]]

_UPSERT_SQL = """
INSERT INTO documents (collection, id, content, metadata, embedding)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT(collection, id) DO UPDATE SET
    content = excluded.content,
    metadata = excluded.metadata,
    embedding = excluded.embedding,
    updated_at = datetime('now')
"""

# Vectors of a different dimensionality than the query are skipped rather than
# failing the whole query. NULL distances (zero vectors) sort last; ties keep
# insertion order because an upsert never changes a row's rowid.
_QUERY_SQL = """
SELECT id, content, metadata, embedding,
       vec_distance_cosine(embedding, ?) AS distance
FROM documents
WHERE collection = ? AND length(embedding) = ?
ORDER BY distance IS NULL, distance, rowid
LIMIT ?
"""


class EmbeddingStore:
    """Data access layer for every collection in the vector store.

    Wraps an open sqlite3.Connection. All statements run under one re-entrant
    lock and every write is a single transaction, so concurrent readers never
    observe a half-applied upsert. The connection is owned by the caller and
    must be closed after use.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        embedding_func: EmbeddingFunc | None = None,
    ) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open connection with sqlite-vec loaded and the schema
                initialised (see mnemo.db.schema.initialize).
            embedding_func: Computes embeddings for documents upserted without
                one. Stores without it only accept pre-embedded documents.
        """
        self._conn = conn
        self._embed = embedding_func
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def open_or_create_collection(self, name: str) -> Collection:
        """Return the collection called *name*, creating it if necessary.

        Raises:
            ValueError: If *name* is empty.
            StorageUnavailable: If the collection row cannot be written.
        """
        if not name:
            raise ValueError("Collection name must not be empty.")
        with self._lock:
            try:
                self._conn.execute(
                    "INSERT OR IGNORE INTO collections (name) VALUES (?)", (name,)
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                raise StorageUnavailable(
                    f"Cannot open collection '{name}': {exc}"
                ) from exc
        log.debug("Opened collection %s", name)
        return Collection(self, name)

    def has_collection(self, name: str) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM collections WHERE name = ?", (name,)
            ).fetchone()
        return row is not None

    def list_collections(self, prefix: str = "") -> list[str]:
        """Return collection names starting with *prefix*, sorted."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT name FROM collections WHERE substr(name, 1, ?) = ? ORDER BY name",
                (len(prefix), prefix),
            ).fetchall()
        return [r["name"] for r in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert(
        self,
        collection: str,
        documents: Iterable[Document],
        concurrency: int = 1,
        skip_failed: bool = False,
    ) -> int:
        """Insert or overwrite *documents* in one transaction.

        Documents without an embedding are embedded first, at most
        ``min(concurrency, len(pending))`` at a time. The computed embedding is
        written back onto the Document.

        With *skip_failed*, a document whose embedding or encoding fails is
        logged and left out, and the others are still written.

        Returns the number of documents written.

        Raises:
            ValueError: If *concurrency* < 1.
            SerializationError: If a document cannot be encoded, or needs an
                embedding and the store has no embedding function.
            StorageUnavailable: If the write fails (e.g. collection not open).
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")

        docs = list(documents)
        if not docs:
            return 0

        docs = self._fill_embeddings(docs, concurrency, skip_failed)
        rows = []
        for doc in docs:
            try:
                rows.append(_encode(collection, doc))
            except SerializationError as exc:
                if not skip_failed:
                    raise
                log.warning("Skipping document '%s': %s", doc.id, exc)
        if not rows:
            return 0

        with self._lock:
            try:
                with self._conn:
                    self._conn.executemany(_UPSERT_SQL, rows)
            except sqlite3.Error as exc:
                raise StorageUnavailable(
                    f"Cannot write {len(rows)} document(s) to '{collection}': {exc}"
                ) from exc
        log.debug("Upserted %d document(s) into %s", len(rows), collection)
        return len(rows)

    def delete(self, collection: str, *ids: str) -> None:
        """Delete documents by ID. Absent IDs are ignored; no IDs is a no-op."""
        if not ids:
            return
        placeholders = ",".join("?" * len(ids))
        with self._lock:
            with self._conn:
                self._conn.execute(
                    f"DELETE FROM documents WHERE collection = ? AND id IN ({placeholders})",
                    (collection, *ids),
                )

    def delete_by_prefix(self, collection: str, prefix: str) -> int:
        """Delete every document whose ID starts with *prefix*. Returns the count."""
        if not prefix:
            raise ValueError("prefix must not be empty; use delete_all() instead.")
        with self._lock:
            with self._conn:
                cur = self._conn.execute(
                    "DELETE FROM documents WHERE collection = ? AND substr(id, 1, ?) = ?",
                    (collection, len(prefix), prefix),
                )
        return cur.rowcount

    def delete_all(self, collection: str) -> int:
        """Delete every document in *collection*. Returns the number removed."""
        with self._lock:
            with self._conn:
                cur = self._conn.execute(
                    "DELETE FROM documents WHERE collection = ?", (collection,)
                )
        return cur.rowcount

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, collection: str, id: str) -> Document:
        """Return the document *id* from *collection*.

        Raises:
            NotFound: If no such document exists.
        """
        with self._lock:
            row = self._conn.execute(
                "SELECT id, content, metadata, embedding FROM documents "
                "WHERE collection = ? AND id = ?",
                (collection, id),
            ).fetchone()
        if row is None:
            raise NotFound(collection, id)
        return _row_to_document(row)

    def list_documents(self, collection: str) -> list[Document]:
        """Return every document in *collection* in insertion order."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT id, content, metadata, embedding FROM documents "
                "WHERE collection = ? ORDER BY rowid",
                (collection,),
            ).fetchall()
        return [_row_to_document(r) for r in rows]

    def count(self, collection: str) -> int:
        with self._lock:
            return self._conn.execute(
                "SELECT COUNT(*) FROM documents WHERE collection = ?", (collection,)
            ).fetchone()[0]

    def query(
        self, collection: str, embedding: list[float], k: int
    ) -> list[ScoredDocument]:
        """Nearest-neighbour search by cosine similarity, best first.

        Returns at most ``min(k, count)`` hits; an empty collection or
        ``k <= 0`` returns an empty list.
        """
        if k <= 0:
            return []
        blob = serialize_embedding(embedding)
        with self._lock:
            rows = self._conn.execute(
                _QUERY_SQL, (blob, collection, len(blob), k)
            ).fetchall()

        results: list[ScoredDocument] = []
        for row in rows:
            distance = row["distance"]
            score = 0.0 if distance is None else 1.0 - float(distance)
            results.append(ScoredDocument(document=_row_to_document(row), score=score))
        return results

    # ------------------------------------------------------------------
    # Embedding
    # ------------------------------------------------------------------

    def _fill_embeddings(
        self, docs: list[Document], concurrency: int, skip_failed: bool = False
    ) -> list[Document]:
        """Embed every document that has no embedding yet.

        Returns the documents that are ready to write: all of them, or with
        *skip_failed* only those whose embedding succeeded.
        """
        pending = [d for d in docs if not d.embedding]
        if not pending:
            return docs
        if self._embed is None:
            raise SerializationError(
                f"Document '{pending[0].id}' has no embedding and the store "
                "has no embedding function."
            )

        def compute(doc: Document) -> list[float] | None:
            try:
                return self._embed(doc.content)
            except (ProviderError, SerializationError) as exc:
                if not skip_failed:
                    raise
                log.warning("Cannot embed '%s', skipping: %s", doc.id, exc)
                return None

        workers = min(concurrency, len(pending))
        if workers == 1:
            vectors = [compute(d) for d in pending]
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                vectors = list(pool.map(compute, pending))

        failed: set[str] = set()
        for doc, vector in zip(pending, vectors):
            if vector is None:
                failed.add(doc.id)
            else:
                doc.embedding = vector
        return [d for d in docs if d.id not in failed]


class Collection:
    """Handle on one named collection; delegates to its EmbeddingStore."""

    def __init__(self, store: EmbeddingStore, name: str) -> None:
        self.store = store
        self.name = name

    def upsert(
        self,
        documents: Iterable[Document],
        concurrency: int = 1,
        skip_failed: bool = False,
    ) -> int:
        return self.store.upsert(self.name, documents, concurrency, skip_failed)

    def get_by_id(self, id: str) -> Document:
        return self.store.get_by_id(self.name, id)

    def delete(self, *ids: str) -> None:
        self.store.delete(self.name, *ids)

    def delete_by_prefix(self, prefix: str) -> int:
        return self.store.delete_by_prefix(self.name, prefix)

    def delete_all(self) -> int:
        return self.store.delete_all(self.name)

    def list_documents(self) -> list[Document]:
        return self.store.list_documents(self.name)

    def count(self) -> int:
        return self.store.count(self.name)

    def query(self, embedding: list[float], k: int) -> list[ScoredDocument]:
        return self.store.query(self.name, embedding, k)

    def __repr__(self) -> str:
        return f"Collection({self.name!r})"


# ------------------------------------------------------------------
# Row ↔ model helpers
# ------------------------------------------------------------------


def _encode(collection: str, doc: Document) -> tuple[str, str, str, str, bytes]:
    if not isinstance(doc.id, str) or not doc.id:
        raise SerializationError(f"Document ID must be a non-empty string, got {doc.id!r}")
    if not isinstance(doc.content, str):
        raise SerializationError(f"Content of '{doc.id}' must be a string.")
    for key, value in doc.metadata.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise SerializationError(
                f"Metadata of '{doc.id}' must map strings to strings, got {key!r}: {value!r}"
            )
    try:
        metadata = json.dumps(doc.metadata, sort_keys=True)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Cannot encode metadata of '{doc.id}': {exc}") from exc
    return (collection, doc.id, doc.content, metadata, serialize_embedding(doc.embedding))


def _row_to_document(row: sqlite3.Row) -> Document:
    try:
        metadata = json.loads(row["metadata"])
    except json.JSONDecodeError as exc:
        raise SerializationError(f"Corrupt metadata for '{row['id']}': {exc}") from exc
    return Document(
        id=row["id"],
        content=row["content"],
        metadata=metadata,
        embedding=deserialize_embedding(row["embedding"]),
    )
