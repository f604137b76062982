"""Exception taxonomy shared by the store, ledger, indexer and retrieval layers.

Every error raised by mnemo derives from :class:`MnemoError` so callers at the
session boundary can catch the whole family in one place.
"""

from __future__ import annotations


class MnemoError(Exception):
    """Base class for all mnemo errors."""


class NotFound(MnemoError, KeyError):
    """A requested ID is absent from its collection."""

    def __init__(self, collection: str, id: str) -> None:
        super().__init__(f"'{id}' not found in collection '{collection}'")
        self.collection = collection
        self.id = id

    def __str__(self) -> str:
        # KeyError.__str__ repr()s the message; keep it readable.
        return self.args[0]


class StorageUnavailable(MnemoError):
    """The backing database or a collection cannot be opened or created."""


class SerializationError(MnemoError, ValueError):
    """A record cannot be encoded for storage or decoded after reading."""


class ProviderError(MnemoError):
    """The external language-model provider failed (network, auth, quota)."""


class EmbeddingUnavailable(ProviderError):
    """A search could not run because the query embedding could not be computed."""


class IndexPrecondition(MnemoError):
    """The project root cannot be indexed (not a git checkout, bad .gitignore)."""


class ConfigError(MnemoError, ValueError):
    """Raised when a config file or environment variable holds an invalid value."""
