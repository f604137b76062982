"""Collection naming and embedding (de)serialization."""

from __future__ import annotations

import math
from array import array
from numbers import Real

import sqlite_vec

from mnemo.errors import SerializationError

CONVERSATIONS_PREFIX = "conversations:"
FACTS_PREFIX = "facts:"
PROJECT_FILES_PREFIX = "project_files:"


def conversations_collection(box: str) -> str:
    """Examples:
        "default" -> "conversations:default"
    """
    return f"{CONVERSATIONS_PREFIX}{box}"


def facts_collection(box: str) -> str:
    return f"{FACTS_PREFIX}{box}"


def project_collection(project_path: str) -> str:
    """Return the collection name for an absolute project root.

    Examples:
        "/home/me/src/app" -> "project_files:/home/me/src/app"
    """
    return f"{PROJECT_FILES_PREFIX}{project_path}"


def serialize_embedding(embedding: list[float]) -> bytes:
    """Pack *embedding* as little-endian float32 for sqlite-vec.

    Raises:
        SerializationError: If the vector is empty or holds non-finite or
            non-numeric values.
    """
    if not embedding:
        raise SerializationError("Cannot store an empty embedding.")
    for value in embedding:
        if isinstance(value, bool) or not isinstance(value, Real):
            raise SerializationError(
                f"Embedding values must be numbers, got {type(value).__name__}."
            )
        if not math.isfinite(value):
            raise SerializationError(f"Embedding contains a non-finite value: {value}")
    return sqlite_vec.serialize_float32([float(v) for v in embedding])


def deserialize_embedding(blob: bytes) -> list[float]:
    """Unpack a float32 BLOB written by :func:`serialize_embedding`."""
    if len(blob) % 4:
        raise SerializationError(
            f"Embedding blob length {len(blob)} is not a multiple of 4."
        )
    values = array("f")
    values.frombytes(blob)
    return values.tolist()
