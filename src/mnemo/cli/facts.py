"""mnemo facts CLI commands.

Commands:
  mnemo facts add CONTENT          — store a new fact, print its ID
  mnemo facts show ID              — print one fact
  mnemo facts update ID CONTENT    — replace a fact's content
  mnemo facts delete ID            — remove a fact
  mnemo facts search QUERY         — facts ranked by similarity
  mnemo facts list                 — every fact in the box
  mnemo facts reset                — delete every fact in the box
"""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mnemo.cli.context import open_session
from mnemo.cli.errors import err_fact_not_found
from mnemo.errors import NotFound

console = Console()

facts_app = typer.Typer(
    name="facts",
    help="Manage the assistant's long-term facts (add, show, update, delete, search, list, reset).",
    add_completion=False,
)


@facts_app.command("add")
def facts_add_cmd(
    ctx: typer.Context,
    content: Annotated[str, typer.Argument(help="Text of the fact.")],
) -> None:
    """Store a new fact and print its ID."""
    with open_session(ctx, require_llm=True) as session:
        fact_id = session.facts.create(content)
    console.print(f"[green]✓[/] Created fact [bold]{fact_id}[/]")


@facts_app.command("show")
def facts_show_cmd(
    ctx: typer.Context,
    fact_id: Annotated[str, typer.Argument(metavar="ID", help="Fact ID.")],
) -> None:
    """Print one fact with its timestamps."""
    with open_session(ctx) as session:
        try:
            fact = session.facts.get(fact_id)
        except NotFound:
            console.print(err_fact_not_found(fact_id))
            raise typer.Exit(1)
    console.print(f"[bold]{fact.id}[/]  [dim]created {fact.created}, updated {fact.updated}[/]")
    console.print(fact.content, markup=False)


@facts_app.command("update")
def facts_update_cmd(
    ctx: typer.Context,
    fact_id: Annotated[str, typer.Argument(metavar="ID", help="Fact ID.")],
    content: Annotated[str, typer.Argument(help="New text of the fact.")],
) -> None:
    """Replace the content of an existing fact."""
    with open_session(ctx, require_llm=True) as session:
        try:
            session.facts.update(fact_id, content)
        except NotFound:
            console.print(err_fact_not_found(fact_id))
            raise typer.Exit(1)
    console.print(f"[green]✓[/] Updated fact [bold]{fact_id}[/]")


@facts_app.command("delete")
def facts_delete_cmd(
    ctx: typer.Context,
    fact_id: Annotated[str, typer.Argument(metavar="ID", help="Fact ID.")],
) -> None:
    """Delete a fact."""
    with open_session(ctx) as session:
        try:
            session.facts.get(fact_id)
        except NotFound:
            console.print(f"[yellow]Fact not found:[/] '{fact_id}' (nothing to delete).")
            raise typer.Exit(0)
        session.facts.delete(fact_id)
    console.print(f"[green]✓[/] Deleted fact [bold]{fact_id}[/]")


@facts_app.command("search")
def facts_search_cmd(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Text to search for.")],
    limit: Annotated[int, typer.Option("--limit", "-n", min=1, help="Maximum results.")] = 5,
) -> None:
    """List facts ranked by similarity to QUERY."""
    with open_session(ctx, require_llm=True) as session:
        results = session.facts.search(query, limit)

    if not results:
        console.print("[yellow]No facts found.[/]")
        raise typer.Exit(0)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Score", justify="right")
    table.add_column("ID", style="bold")
    table.add_column("Content")
    for r in results:
        table.add_row(f"{r.score:.3f}", r.id, escape(r.content))
    console.print(table)


@facts_app.command("list")
def facts_list_cmd(ctx: typer.Context) -> None:
    """List every fact in the active box, oldest first."""
    with open_session(ctx) as session:
        facts = session.facts.list_facts()

    if not facts:
        console.print("[yellow]No facts stored in this box.[/]")
        raise typer.Exit(0)

    table = Table(title="Facts", show_header=True, header_style="bold")
    table.add_column("ID", style="bold")
    table.add_column("Updated")
    table.add_column("Content")
    for fact in facts:
        table.add_row(fact.id, fact.updated, escape(fact.content))
    console.print(table)
    console.print(f"\n  {len(facts)} fact(s)")


@facts_app.command("reset")
def facts_reset_cmd(
    ctx: typer.Context,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt.")] = False,
) -> None:
    """Delete every fact in the active box."""
    with open_session(ctx) as session:
        count = session.facts.count()
        if count == 0:
            console.print("[dim]No facts to delete.[/]")
            raise typer.Exit(0)
        if not yes and not typer.confirm(f"Delete all {count} fact(s)?", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)
        removed = session.facts.reset()
    console.print(f"[green]✓[/] Deleted {removed} fact(s)")
