"""mnemo configuration loader.

Priority (high → low):
  1. CLI flags              (handled at call site — not in this module)
  2. Environment variables  (MNEMO_HOME, MNEMO_BOX, MNEMO_PROJECT, MNEMO_TESTING,
                             MNEMO_EMBEDDING_MODEL, MNEMO_COMPLETION_MODEL)
  3. Global ~/.mnemo/config.yaml  (model and store defaults only — no API keys)
  4. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from mnemo.errors import ConfigError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".mnemo"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"

DEFAULT_BOX = "default"
TESTING_BOX = "testing"

# Fields that suggest an API key; forbidden in global config.
# Does NOT match legitimate config keys like max_tokens or top_k.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"  # api_key, api-key, api_secret, apikey
    r"|_token$"                  # github_token, access_token (suffix)
    r"|^token$"                  # exactly "token"
    r"|_secret$"                 # client_secret (suffix)
    r"|^secret$"                 # exactly "secret"
    r"|passw(?:ord|d)"           # password, passwd
    r"|credential",              # credential, credentials
    re.IGNORECASE,
)

_BOX_NAME_RE: re.Pattern[str] = re.compile(r"[A-Za-z0-9_.\-]+")

# Known top-level sections. Unknown keys produce a warning.
_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["store", "embedding", "completion", "retrieval", "indexer"]
)

_TRUTHY = {"1", "true", "yes", "on"}


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class StoreCfg:
    """Where data lives and which workspace is active (config.yaml: store:).

    Attributes:
        home: Root directory for the vector store, box data and the ops log.
        box: Name of the isolated workspace. Conversations and facts in one box
            are invisible to every other box.
        project: Optional git checkout to index for project-file search.
        testing: When set, the box is forced to ``testing``.
    """

    home: Path = field(default_factory=lambda: Path.home() / ".config" / "mnemo")
    box: str = DEFAULT_BOX
    project: Path | None = None
    testing: bool = False


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (config.yaml: embedding:)."""

    model: str = "openai/text-embedding-3-large"
    dimensions: int = 1536
    timeout: float = 30.0


@dataclass
class CompletionCfg:
    """Quick-completion model used for summaries and query distillation."""

    model: str = "openai/gpt-4o-mini"
    max_tokens: int = 300
    timeout: float = 30.0


@dataclass
class RetrievalCfg:
    """Retrieval configuration (config.yaml: retrieval:)."""

    top_k: int = 3
    distill: bool = True


@dataclass
class IndexerCfg:
    """Project indexer configuration (config.yaml: indexer:)."""

    concurrency: int = 4


@dataclass
class MnemoConfig:
    """Root configuration object, built by load_config() from merged layers."""

    store: StoreCfg = field(default_factory=StoreCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    completion: CompletionCfg = field(default_factory=CompletionCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    indexer: IndexerCfg = field(default_factory=IndexerCfg)

    @property
    def box_dir(self) -> Path:
        """Directory holding the flat files of the active box."""
        return self.store.home / "boxes" / self.store.box

    @property
    def db_path(self) -> Path:
        return self.store.home / "vector_store.db"


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def validate_box(box: str) -> str:
    """Return *box* unchanged, or raise ConfigError if it is not a safe name.

    Box names become directory names and collection-name suffixes, so path
    separators and whitespace are rejected.
    """
    if not box or not _BOX_NAME_RE.fullmatch(box):
        raise ConfigError(
            f"Invalid box name '{box}'.\n"
            "  Use letters, digits, '.', '_' or '-' only."
        )
    return box


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def _as_bool(value: Any) -> bool:
    # Quoted YAML values arrive as strings; "false" must stay false.
    if isinstance(value, str):
        return _truthy(value)
    return bool(value)


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


def _cfg_from_dict(data: dict[str, Any]) -> MnemoConfig:
    """Build a *MnemoConfig* from a raw YAML dict."""
    cfg = MnemoConfig()

    if "store" in data:
        s = data["store"] or {}
        project = s.get("project")
        cfg.store = StoreCfg(
            home=Path(s["home"]).expanduser() if s.get("home") else cfg.store.home,
            box=str(s.get("box", cfg.store.box)),
            project=Path(project).expanduser() if project else None,
            testing=_as_bool(s.get("testing", cfg.store.testing)),
        )

    if "embedding" in data:
        e = data["embedding"] or {}
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimensions=int(e.get("dimensions", cfg.embedding.dimensions)),
            timeout=float(e.get("timeout", cfg.embedding.timeout)),
        )

    if "completion" in data:
        c = data["completion"] or {}
        cfg.completion = CompletionCfg(
            model=str(c.get("model", cfg.completion.model)),
            max_tokens=int(c.get("max_tokens", cfg.completion.max_tokens)),
            timeout=float(c.get("timeout", cfg.completion.timeout)),
        )

    if "retrieval" in data:
        r = data["retrieval"] or {}
        cfg.retrieval = RetrievalCfg(
            top_k=int(r.get("top_k", cfg.retrieval.top_k)),
            distill=_as_bool(r.get("distill", cfg.retrieval.distill)),
        )

    if "indexer" in data:
        i = data["indexer"] or {}
        cfg.indexer = IndexerCfg(
            concurrency=int(i.get("concurrency", cfg.indexer.concurrency)),
        )

    return cfg


def _apply_env_overrides(cfg: MnemoConfig) -> MnemoConfig:
    """Apply MNEMO_* environment variable overrides."""
    if home := os.environ.get("MNEMO_HOME"):
        cfg.store.home = Path(home).expanduser()
    if box := os.environ.get("MNEMO_BOX"):
        cfg.store.box = box
    if project := os.environ.get("MNEMO_PROJECT"):
        cfg.store.project = Path(project).expanduser()
    if _truthy(os.environ.get("MNEMO_TESTING")):
        cfg.store.testing = True
    if model := os.environ.get("MNEMO_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if model := os.environ.get("MNEMO_COMPLETION_MODEL"):
        cfg.completion.model = model
    return cfg


def finalize(cfg: MnemoConfig) -> MnemoConfig:
    """Apply testing overrides and validate the store section.

    Call again after applying CLI flag overrides.

    Raises:
        ConfigError: If the box name is invalid or the project path is not a
            directory.
    """
    if cfg.store.testing:
        cfg.store.box = TESTING_BOX
    validate_box(cfg.store.box)

    if cfg.store.project is not None:
        project = cfg.store.project.expanduser().resolve()
        if not project.is_dir():
            raise ConfigError(
                f"Project path '{cfg.store.project}' is not a directory."
            )
        cfg.store.project = project

    if cfg.indexer.concurrency < 1:
        raise ConfigError(
            f"indexer.concurrency must be >= 1, got {cfg.indexer.concurrency}"
        )
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(*, global_config_path: Path | None = None) -> MnemoConfig:
    """Load and return a merged *MnemoConfig*.

    Applies layers in order: defaults → global YAML → env vars, then
    validates via :func:`finalize`. CLI flag overrides must be applied by the
    caller, followed by another :func:`finalize`.

    Args:
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If the global config contains API-key-like fields, the
            box name is invalid, or the project path is not a directory.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH

    raw: dict[str, Any] = {}
    if global_path.exists():
        try:
            raw = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Global config '{global_path}' is not valid YAML: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"Global config '{global_path}' must be a YAML mapping.")
        _check_no_api_keys(raw, global_path)
        _warn_unknown_keys(raw, global_path)

    try:
        cfg = _cfg_from_dict(raw)
    except (AttributeError, TypeError, ValueError) as exc:
        raise ConfigError(f"Global config '{global_path}' has an invalid value: {exc}") from exc
    cfg = _apply_env_overrides(cfg)
    return finalize(cfg)


def ensure_home(cfg: MnemoConfig) -> Path:
    """Create the home and active box directories (mode 0o700) if missing.

    Returns:
        The home directory path.
    """
    cfg.store.home.mkdir(mode=0o700, parents=True, exist_ok=True)
    cfg.box_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
    return cfg.store.home

