"""mnemo boxes / projects — list the namespaces held by the vector store."""

from __future__ import annotations

import typer
from rich.console import Console

from mnemo.cli.context import open_session

console = Console()


def boxes_cmd(ctx: typer.Context) -> None:
    """List boxes with conversations or facts; the active box is starred."""
    with open_session(ctx) as session:
        active = session.cfg.store.box
        boxes = session.list_boxes()

    if not boxes:
        console.print("[yellow]No boxes yet.[/]")
        raise typer.Exit(0)
    for box in boxes:
        marker = "[green]*[/]" if box == active else " "
        console.print(f"{marker} {box}")


def projects_cmd(ctx: typer.Context) -> None:
    """List every project root that has been indexed."""
    with open_session(ctx) as session:
        projects = session.list_projects()

    if not projects:
        console.print("[yellow]No indexed projects.[/]\n  Run:  mnemo index PATH")
        raise typer.Exit(0)
    for project in projects:
        console.print(project, markup=False)
