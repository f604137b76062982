"""Shared pytest fixtures."""

from __future__ import annotations

import threading

import pytest

from mnemo.config import MnemoConfig, StoreCfg, finalize
from mnemo.db.connection import Database
from mnemo.db.repository import EmbeddingStore
from mnemo.db.schema import initialize
from mnemo.errors import ProviderError

_ENV_VARS = (
    "MNEMO_HOME",
    "MNEMO_BOX",
    "MNEMO_PROJECT",
    "MNEMO_TESTING",
    "MNEMO_EMBEDDING_MODEL",
    "MNEMO_COMPLETION_MODEL",
)


class FakeLLM:
    """Deterministic stand-in for the embedding and completion provider.

    Embeddings are letter histograms folded into ``dim`` buckets, so texts that
    share characters land close together. Exact vectors can be pinned per text
    through ``vectors``.
    """

    def __init__(self, dim: int = 8, summary: str = "A short summary.") -> None:
        self.dim = dim
        self.summary = summary
        self.vectors: dict[str, list[float]] = {}
        self.embed_calls: list[str] = []
        self.complete_calls: list[tuple[str, str]] = []
        self.fail_embed = False
        self.fail_complete = False
        self.fail_texts: set[str] = set()
        self._lock = threading.Lock()

    def embed(self, text: str) -> list[float]:
        with self._lock:
            self.embed_calls.append(text)
        if self.fail_embed:
            raise ProviderError("embedding service down")
        if text in self.fail_texts:
            raise ProviderError("maximum context length exceeded")
        if text in self.vectors:
            return list(self.vectors[text])
        vec = [0.0] * self.dim
        for ch in text.lower():
            vec[ord(ch) % self.dim] += 1.0
        vec[-1] += 1.0
        return vec

    def quick_complete(self, system_prompt: str, user_prompt: str) -> str:
        with self._lock:
            self.complete_calls.append((system_prompt, user_prompt))
        if self.fail_complete:
            raise ProviderError("completion service down")
        return self.summary


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """No MNEMO_* variables and no real ~/.mnemo/config.yaml leak into tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(
        "mnemo.config._GLOBAL_CONFIG_PATH", tmp_path / "global" / "config.yaml"
    )


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / "vector_store.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def store(tmp_db, fake_llm):
    """EmbeddingStore that embeds with the fake provider."""
    return EmbeddingStore(tmp_db, embedding_func=fake_llm.embed)


@pytest.fixture
def cfg(tmp_path):
    """Finalized config rooted in tmp_path, default box, no project."""
    return finalize(MnemoConfig(store=StoreCfg(home=tmp_path / "home")))


@pytest.fixture
def cli_home(tmp_path, fake_llm, monkeypatch):
    """Home directory for CLI runs; commands get the fake provider."""
    monkeypatch.setattr(
        "mnemo.cli.context.build_llm", lambda cfg, require_keys=False: fake_llm
    )
    return tmp_path / "cli-home"
