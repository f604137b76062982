"""mnemo search — similarity search over conversations, facts and project files.

Usage:
  mnemo search "sqlite locking"
  mnemo search "retry policy" --kind facts --limit 10
  mnemo search "watcher" --kind files --project ~/src/app
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mnemo.cli.context import open_session
from mnemo.cli.errors import err_no_project
from mnemo.retrieval.results import SearchResult

console = Console()

_SNIPPET_CHARS = 120


class SearchKind(str, Enum):
    conversations = "conversations"
    facts = "facts"
    files = "files"


def search_cmd(
    ctx: typer.Context,
    text: Annotated[str, typer.Argument(help="Text to search for.")],
    kind: Annotated[
        SearchKind | None,
        typer.Option("--kind", "-k", help="Only search this kind of record."),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", min=1, help="Maximum results per kind."),
    ] = 3,
    project: Annotated[
        Path | None,
        typer.Option("--project", "-p", help="Project root whose files to search."),
    ] = None,
) -> None:
    """Search the active box (and project) by similarity to TEXT."""
    kinds = [kind] if kind is not None else list(SearchKind)

    with open_session(ctx, project=project, require_llm=True) as session:
        results: dict[SearchKind, list[SearchResult]] = {}
        if SearchKind.conversations in kinds:
            results[SearchKind.conversations] = session.search_conversations(text, limit)
        if SearchKind.facts in kinds:
            results[SearchKind.facts] = session.search_facts(text, limit)
        if SearchKind.files in kinds:
            if session.gateway.project_files is None:
                if kind is SearchKind.files:
                    console.print(err_no_project())
                    raise typer.Exit(1)
            else:
                results[SearchKind.files] = session.search_project_files(text, limit)

    if not any(results.values()):
        console.print("[yellow]No matches.[/]")
        raise typer.Exit(0)

    for found_kind, hits in results.items():
        if hits:
            console.print(_results_table(found_kind, hits))


def _results_table(kind: SearchKind, hits: list[SearchResult]) -> Table:
    table = Table(title=kind.value.capitalize(), show_header=True, header_style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Path" if kind is SearchKind.files else "ID", style="bold")
    if kind is not SearchKind.files:
        table.add_column("Updated")
    table.add_column("Content")
    for hit in hits:
        row = [f"{hit.score:.3f}", hit.id]
        if kind is not SearchKind.files:
            row.append(hit.updated or hit.created)
        row.append(escape(_snippet(hit.content)))
        table.add_row(*row)
    return table


def _snippet(text: str) -> str:
    flat = " ".join(text.split())
    if len(flat) <= _SNIPPET_CHARS:
        return flat
    return flat[: _SNIPPET_CHARS - 1] + "…"
