"""Conversation and message models."""

from __future__ import annotations

import hashlib
import uuid as uuid_mod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from mnemo.errors import SerializationError

YOU = "You"
ASSISTANT = "Assistant"
SYSTEM = "System"

SENDERS = frozenset([YOU, ASSISTANT, SYSTEM])


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def summary_hash(summary: str) -> str:
    """SHA-256 hex digest of *summary*; detects a stale embedding."""
    return hashlib.sha256(summary.encode("utf-8")).hexdigest()


@dataclass
class Message:
    """One chat message.

    Attributes:
        sender: ``You``, ``Assistant`` or ``System``.
        content: Raw message text, trimmed of surrounding whitespace.
        is_hidden: Whether a user message is kept out of the visible chat.
    """

    sender: str
    content: str
    is_hidden: bool = False

    def __post_init__(self) -> None:
        if self.sender not in SENDERS:
            raise ValueError(f"Unknown sender '{self.sender}'")
        self.content = self.content.strip()

    @property
    def is_user_message(self) -> bool:
        return self.sender == YOU

    def to_dict(self) -> dict[str, Any]:
        return {"from": self.sender, "content": self.content, "is_hidden": self.is_hidden}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        try:
            return cls(
                sender=data["from"],
                content=data["content"],
                is_hidden=bool(data.get("is_hidden", False)),
            )
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            raise SerializationError(f"Malformed message record: {data!r}") from exc


@dataclass
class Conversation:
    """A chat session: ordered messages plus a derived summary and embedding.

    ``summary`` and ``embedding`` are recomputed only after assistant replies.
    ``hash`` is the digest of the summary the embedding was computed from.
    """

    uuid: str = field(default_factory=lambda: str(uuid_mod.uuid4()))
    created: datetime = field(default_factory=utcnow)
    modified: datetime | None = None
    summary: str = ""
    embedding: list[float] = field(default_factory=list)
    hash: str = ""
    messages: list[Message] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.modified is None or self.modified < self.created:
            self.modified = self.created

    def add_message(self, message: Message) -> None:
        """Append *message* and bump ``modified``. Does not persist."""
        self.messages.append(message)
        self.modified = max(utcnow(), self.created)

    def set_summary(self, summary: str, embedding: list[float]) -> None:
        self.summary = summary
        self.embedding = list(embedding)
        self.hash = summary_hash(summary)

    def has_stale_embedding(self) -> bool:
        return self.hash != summary_hash(self.summary)

    def needs_summary(self) -> bool:
        """True when the most recent message came from the assistant."""
        return bool(self.messages) and self.messages[-1].sender == ASSISTANT

    def transcript(self) -> str:
        """Every message, system ones included; the summarizer's input."""
        return "".join(f"{m.sender}:\n\n{m.content}\n\n" for m in self.messages)

    def chat_transcript(self) -> str:
        """The visible history: every message except system messages."""
        return "".join(
            f"{m.sender}:\n\n{m.content}\n\n" for m in self.messages if m.sender != SYSTEM
        )
