"""mnemo conversations CLI commands.

Commands:
  mnemo conversations list         — index of saved conversations, newest first
  mnemo conversations show UUID    — print a conversation's transcript
"""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mnemo.cli.context import open_session
from mnemo.cli.errors import err_conversation_not_found
from mnemo.errors import NotFound
from mnemo.ledger.ledger import format_timestamp

console = Console()

conversations_app = typer.Typer(
    name="conversations",
    help="Inspect saved conversations (list, show).",
    add_completion=False,
)


@conversations_app.command("list")
def conversations_list_cmd(ctx: typer.Context) -> None:
    """List the saved conversations of the active box, most recent first."""
    with open_session(ctx) as session:
        entries = session.ledger.list_conversations()

    if not entries:
        console.print("[yellow]No conversations saved in this box.[/]")
        raise typer.Exit(0)

    table = Table(title="Conversations", show_header=True, header_style="bold")
    table.add_column("UUID", style="bold")
    table.add_column("Created")
    table.add_column("Modified")
    table.add_column("Summary")
    for entry in entries:
        table.add_row(
            entry.uuid,
            format_timestamp(entry.created),
            format_timestamp(entry.modified),
            escape(entry.summary) if entry.summary else "[dim](no summary)[/]",
        )
    console.print(table)


@conversations_app.command("show")
def conversations_show_cmd(
    ctx: typer.Context,
    uuid: Annotated[str, typer.Argument(help="Conversation UUID.")],
    show_all: Annotated[
        bool,
        typer.Option("--all", "-a", help="Include system messages."),
    ] = False,
) -> None:
    """Print the transcript of one conversation."""
    with open_session(ctx) as session:
        try:
            conversation = session.ledger.load_conversation(uuid)
        except NotFound:
            console.print(err_conversation_not_found(uuid))
            raise typer.Exit(1)

    console.print(
        f"[bold]{conversation.uuid}[/]  [dim]{format_timestamp(conversation.created)}"
        f" → {format_timestamp(conversation.modified or conversation.created)}[/]"
    )
    if conversation.summary:
        console.print(f"[italic]{escape(conversation.summary)}[/]")
    console.print()
    transcript = conversation.transcript() if show_all else conversation.chat_transcript()
    console.print(transcript.rstrip("\n"), markup=False)
