"""mnemo CLI entry point."""

from __future__ import annotations

import importlib.metadata
from pathlib import Path
from typing import Annotated

import typer

from mnemo.cli.boxes import boxes_cmd, projects_cmd
from mnemo.cli.context import GlobalOptions
from mnemo.cli.conversations import conversations_app
from mnemo.cli.facts import facts_app
from mnemo.cli.index import index_cmd
from mnemo.cli.search import search_cmd
from mnemo.logging_config import configure_quiet_mode, enable_debug_mode


def _installed_version() -> str:
    try:
        return importlib.metadata.version("mnemo")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"mnemo {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="mnemo",
    help=(
        "mnemo — local semantic memory for a terminal chat assistant.\n\n"
        "  mnemo search TEXT   Find related conversations, facts and project files.\n"
        "  mnemo index PATH    Index a git checkout for project-file search."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    home: Annotated[
        Path | None,
        typer.Option("--home", help="Data directory (overrides MNEMO_HOME)."),
    ] = None,
    box: Annotated[
        str | None,
        typer.Option("--box", "-b", help="Active box (overrides MNEMO_BOX)."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log debug output to stderr."),
    ] = False,
) -> None:
    """mnemo — local semantic memory for a terminal chat assistant."""
    configure_quiet_mode()
    if verbose:
        enable_debug_mode()
    ctx.obj = GlobalOptions(home=home, box=box, verbose=verbose)


app.command("boxes")(boxes_cmd)
app.command("projects")(projects_cmd)
app.command("search")(search_cmd)
app.command("index")(index_cmd)
app.add_typer(facts_app, name="facts")
app.add_typer(conversations_app, name="conversations")


@app.command("version")
def version_cmd() -> None:
    """Show the installed mnemo version."""
    typer.echo(f"mnemo {_installed_version()}")


if __name__ == "__main__":
    app()
