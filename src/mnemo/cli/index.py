"""mnemo index — index a project's files for retrieval.

Bulk-indexes every eligible file under a git checkout into the
``project_files:<abs path>`` collection, then optionally keeps following
filesystem changes until interrupted.

Usage:
  mnemo index ~/src/app
  mnemo index . --watch
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from mnemo.cli.context import open_session
from mnemo.cli.errors import err_not_indexable
from mnemo.errors import IndexPrecondition
from mnemo.indexer.indexer import ProjectIndexer

console = Console()


def index_cmd(
    ctx: typer.Context,
    path: Annotated[
        Path,
        typer.Argument(help="Project root (a git checkout).", exists=True, file_okay=False),
    ],
    watch: Annotated[
        bool,
        typer.Option("--watch/--no-watch", help="Keep indexing changes until Ctrl-C."),
    ] = False,
) -> None:
    """Index the text files of a git checkout for project-file search."""
    root = path.expanduser().resolve()

    with open_session(ctx, require_llm=True) as session:
        try:
            indexer = ProjectIndexer.open(
                root, session.store, concurrency=session.cfg.indexer.concurrency
            )
        except IndexPrecondition as exc:
            console.print(err_not_indexable(str(root), str(exc)))
            raise typer.Exit(1)

        try:
            if watch:
                indexer.watch_tree()
            with console.status(f"Indexing {root} …"):
                count = indexer.bulk_index()
            console.print(f"[green]✓[/] Indexed {count} file(s) from [bold]{root}[/]")

            if watch:
                console.print("[dim]Watching for changes. Press Ctrl-C to stop.[/]")
                try:
                    indexer.watch_forever()
                except KeyboardInterrupt:
                    console.print("\n[dim]Stopped.[/]")
        finally:
            indexer.stop()
