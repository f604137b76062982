"""Conversation Ledger — crash-safe persistence of chat sessions.

Layout under a box directory::

    conversations/
        index.jsonl             one {uuid, created, modified, summary} per line
        <uuid>/messages.jsonl   one {from, content, is_hidden} per line
        <uuid>/embeddings.json  {uuid, hash, embedding, timestamp}

The index is listed without loading any embeddings. Summarized conversations
are also mirrored into the ``conversations:<box>`` collection so they can be
searched by similarity.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from mnemo.db.models import Document
from mnemo.db.repository import Collection
from mnemo.errors import MnemoError, NotFound, SerializationError
from mnemo.ledger.conversation import Conversation, Message, utcnow
from mnemo.ledger.durable import DurableWriter

log = logging.getLogger(__name__)

_INDEX_NAME = "index.jsonl"
_MESSAGES_NAME = "messages.jsonl"
_EMBEDDING_NAME = "embeddings.json"


def format_timestamp(dt: datetime) -> str:
    """RFC 3339 at second precision, e.g. ``2024-08-16T09:30:00+00:00``."""
    return dt.isoformat(timespec="seconds")


def parse_timestamp(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Invalid timestamp {value!r}") from exc


@dataclass
class ConversationIndexEntry:
    """One line of ``index.jsonl``."""

    uuid: str
    created: datetime
    modified: datetime
    summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "uuid": self.uuid,
            "created": format_timestamp(self.created),
            "modified": format_timestamp(self.modified),
            "summary": self.summary,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversationIndexEntry:
        try:
            return cls(
                uuid=str(data["uuid"]),
                created=parse_timestamp(data["created"]),
                modified=parse_timestamp(data["modified"]),
                summary=str(data.get("summary", "")),
            )
        except (KeyError, TypeError) as exc:
            raise SerializationError(f"Malformed index entry: {data!r}") from exc

    @classmethod
    def of(cls, conversation: Conversation) -> ConversationIndexEntry:
        return cls(
            uuid=conversation.uuid,
            created=conversation.created,
            modified=conversation.modified or conversation.created,
            summary=conversation.summary,
        )


class ConversationLedger:
    """Reads and writes the conversations of one box.

    Args:
        box_dir: The box's data directory (``$MNEMO_HOME/boxes/<box>``).
        collection: The ``conversations:<box>`` collection.
        writer: Durable writer shared by the three persistence steps.
    """

    def __init__(
        self,
        box_dir: Path,
        collection: Collection,
        writer: DurableWriter | None = None,
    ) -> None:
        self.conversations_dir = Path(box_dir) / "conversations"
        self.index_path = self.conversations_dir / _INDEX_NAME
        self.collection = collection
        self._writer = writer or DurableWriter()
        # Saves of different conversations share the index file.
        self._index_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def conversation_dir(self, uuid: str) -> Path:
        return self.conversations_dir / uuid

    def transcript_path(self, uuid: str) -> Path:
        return self.conversation_dir(uuid) / _MESSAGES_NAME

    def embedding_path(self, uuid: str) -> Path:
        return self.conversation_dir(uuid) / _EMBEDDING_NAME

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def new_conversation(self) -> Conversation:
        now = utcnow()
        return Conversation(created=now, modified=now)

    def save(self, conversation: Conversation) -> list[Exception]:
        """Persist *conversation* in three independent steps.

        1. rewrite the index with this conversation's entry first,
        2. write the embedding record (and mirror it into the collection),
        3. write the full transcript.

        A failing step is logged and does not stop the later ones. Returns the
        failures, in step order; an empty list means everything was written.
        """
        failures: list[Exception] = []
        steps = (
            ("index entry", self._save_index_entry),
            ("embedding", self._save_embedding),
            ("transcript", self._save_transcript),
        )
        for label, step in steps:
            try:
                step(conversation)
            except (OSError, MnemoError) as exc:
                log.error(
                    "Failed to save conversation %s %s: %s", conversation.uuid, label, exc
                )
                failures.append(exc)
        if not failures:
            log.debug("Saved conversation %s", conversation.uuid)
        return failures

    def _save_index_entry(self, conversation: Conversation) -> None:
        entry = json.dumps(ConversationIndexEntry.of(conversation).to_dict())
        with self._index_lock:
            lines = [entry]
            for line in self._read_index_lines():
                if _line_uuid(line) != conversation.uuid:
                    lines.append(line)
            self._writer.write_text(self.index_path, "\n".join(lines) + "\n")

    def _save_embedding(self, conversation: Conversation) -> None:
        record = {
            "uuid": conversation.uuid,
            "hash": conversation.hash,
            "embedding": conversation.embedding,
            "timestamp": format_timestamp(utcnow()),
        }
        self._writer.write_text(self.embedding_path(conversation.uuid), json.dumps(record))

        if conversation.embedding:
            self.collection.upsert([
                Document(
                    id=conversation.uuid,
                    content=conversation.summary,
                    metadata={
                        "created": format_timestamp(conversation.created),
                        "updated": format_timestamp(conversation.modified or conversation.created),
                        "hash": conversation.hash,
                    },
                    embedding=conversation.embedding,
                )
            ])

    def _save_transcript(self, conversation: Conversation) -> None:
        body = "".join(json.dumps(m.to_dict()) + "\n" for m in conversation.messages)
        self._writer.write_text(self.transcript_path(conversation.uuid), body)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def list_conversations(self) -> list[ConversationIndexEntry]:
        """Return the index entries, most recently saved first.

        Lines that cannot be decoded are logged and skipped; :meth:`save`
        keeps them in the file untouched.

        Raises:
            SerializationError: If the index file is not UTF-8.
        """
        entries: list[ConversationIndexEntry] = []
        for number, line in enumerate(self._read_index_lines(), 1):
            try:
                entries.append(ConversationIndexEntry.from_dict(json.loads(line)))
            except (json.JSONDecodeError, SerializationError) as exc:
                log.warning("Skipping corrupt line %d in %s: %s", number, self.index_path, exc)
        return entries

    def get_entry(self, uuid: str) -> ConversationIndexEntry:
        for entry in self.list_conversations():
            if entry.uuid == uuid:
                return entry
        raise NotFound(str(self.index_path), uuid)

    def load_conversation(self, uuid: str) -> Conversation:
        """Rebuild a conversation from its index entry, transcript and embedding.

        Raises:
            NotFound: If *uuid* is not in the index.
            SerializationError: If a file cannot be decoded.
        """
        entry = self.get_entry(uuid)
        conversation = Conversation(
            uuid=entry.uuid,
            created=entry.created,
            modified=entry.modified,
            summary=entry.summary,
            messages=self._read_messages(uuid),
        )

        record = self._read_embedding(uuid)
        if record is not None:
            conversation.embedding = [float(v) for v in record.get("embedding") or []]
            conversation.hash = str(record.get("hash", ""))
        return conversation

    def _read_index_lines(self) -> list[str]:
        if not self.index_path.exists():
            return []
        try:
            text = self.index_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise SerializationError(f"{self.index_path} is not UTF-8: {exc}") from exc
        return [line for line in text.splitlines() if line.strip()]

    def _read_messages(self, uuid: str) -> list[Message]:
        path = self.transcript_path(uuid)
        if not path.exists():
            log.warning("Conversation %s has no transcript at %s", uuid, path)
            return []
        messages: list[Message] = []
        for number, line in enumerate(path.read_text(encoding="utf-8").splitlines(), 1):
            if not line.strip():
                continue
            try:
                messages.append(Message.from_dict(json.loads(line)))
            except json.JSONDecodeError as exc:
                raise SerializationError(f"{path}:{number}: {exc}") from exc
        return messages

    def _read_embedding(self, uuid: str) -> dict[str, Any] | None:
        path = self.embedding_path(uuid)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise SerializationError(f"Corrupt embedding record {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise SerializationError(f"Embedding record {path} is not an object")
        return data


def _line_uuid(line: str) -> str | None:
    """UUID of an index line, or None when the line cannot be decoded.

    Undecodable lines are kept as-is on rewrite rather than dropped.
    """
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        log.warning("Keeping undecodable index line: %.80s", line)
        return None
    return data.get("uuid") if isinstance(data, dict) else None
