"""Shared CLI plumbing: global options, config layering and session setup."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console

from mnemo.cli.errors import (
    err_config,
    err_corrupt,
    err_no_api_key,
    err_provider,
    err_storage,
)
from mnemo.config import MnemoConfig, ensure_home, finalize, load_config
from mnemo.errors import ConfigError, ProviderError, SerializationError, StorageUnavailable
from mnemo.llm.client import LanguageModel, LLMClient, provider_of, validate_api_key
from mnemo.logging_config import configure_ops_log
from mnemo.session import Session

console = Console()


@dataclass
class GlobalOptions:
    """Flags given before the command name; they override every config layer."""

    home: Path | None = None
    box: str | None = None
    verbose: bool = False


def global_options(ctx: typer.Context) -> GlobalOptions:
    obj = ctx.find_root().obj
    return obj if isinstance(obj, GlobalOptions) else GlobalOptions()


def load_cli_config(ctx: typer.Context, project: Path | None = None) -> MnemoConfig:
    """Merged config with CLI flags applied on top. Exits 1 on invalid config."""
    opts = global_options(ctx)
    try:
        cfg = load_config()
        if opts.home is not None:
            cfg.store.home = opts.home.expanduser()
        if opts.box is not None:
            cfg.store.box = opts.box
        if project is not None:
            cfg.store.project = project
        return finalize(cfg)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def build_llm(cfg: MnemoConfig, require_keys: bool = False) -> LanguageModel:
    """Return the language-model client for *cfg*.

    With *require_keys*, exits 1 unless both configured models have their
    provider's API key in the environment.
    """
    if require_keys:
        for model in (cfg.embedding.model, cfg.completion.model):
            try:
                validate_api_key(model)
            except EnvironmentError:
                console.print(err_no_api_key(provider_of(model)))
                raise typer.Exit(1)
    return LLMClient(cfg.embedding, cfg.completion)


@contextmanager
def open_session(
    ctx: typer.Context,
    *,
    project: Path | None = None,
    require_llm: bool = False,
) -> Iterator[Session]:
    """Open a Session for the command, with the operations log attached.

    Provider and decode failures raised inside the block are reported and
    turned into exit code 1. The session is always closed.
    """
    cfg = load_cli_config(ctx, project)
    llm = build_llm(cfg, require_keys=require_llm)
    try:
        ensure_home(cfg)
        handler = configure_ops_log(cfg.store.home)
    except OSError as exc:
        console.print(err_storage(str(exc)))
        raise typer.Exit(1)

    try:
        try:
            session = Session(cfg, llm)
        except StorageUnavailable as exc:
            console.print(err_storage(str(exc)))
            raise typer.Exit(1)
        try:
            yield session
        except ProviderError as exc:
            console.print(err_provider(str(exc)))
            raise typer.Exit(1)
        except SerializationError as exc:
            console.print(err_corrupt(str(exc)))
            raise typer.Exit(1)
        finally:
            session.close()
    finally:
        logging.getLogger("mnemo").removeHandler(handler)
        handler.close()
