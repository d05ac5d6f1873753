"""Rich-based display utilities for the weaveboard CLI."""

from __future__ import annotations

from typing import List, Optional

from rich.console import Console
from rich.table import Table

from .analysis.controller import AnalysisOutcome, AnalysisStatus
from .core.models import BoardSummary, Item, ItemKind
from .views.edges import style_for
from .views.geometry import EdgePath

console = Console()


def print_boards(boards: List[BoardSummary], active_id: str) -> None:
    table = Table(title="Boards", show_header=True, header_style="bold cyan")
    table.add_column("", width=1)
    table.add_column("Id", style="dim")
    table.add_column("Name")
    table.add_column("Updated", justify="right")
    for b in boards:
        marker = "[green]*[/green]" if b.id == active_id else ""
        table.add_row(marker, b.id, b.name, b.updated_at)
    console.print(table)


def _item_summary(item: Item) -> str:
    f = item.fields
    if item.kind == ItemKind.TEXT:
        text = str(f.get("text") or "")
    elif item.kind == ItemKind.LINK:
        text = f"{f.get('title') or ''} ({f.get('url') or ''})"
    else:
        text = str(f.get("label") or f.get("file_name") or "")
    return text if len(text) <= 60 else text[:59] + "…"


def print_items(items: List[Item]) -> None:
    table = Table(title="Items", show_header=True, header_style="bold")
    table.add_column("Id", justify="right", style="dim")
    table.add_column("Kind")
    table.add_column("Position", justify="right")
    table.add_column("Content")
    for item in items:
        table.add_row(item.id, item.kind.value, f"{item.x:.0f},{item.y:.0f}", _item_summary(item))
    console.print(table)


def print_edges(edges: List[EdgePath], *, focus=None, show_paths: bool = False) -> None:
    table = Table(title="Connections", show_header=True, header_style="bold cyan")
    table.add_column("Pair", style="dim")
    table.add_column("Layer")
    table.add_column("Label")
    table.add_column("Category")
    table.add_column("Strength", justify="right")
    table.add_column("Surprise", justify="right")
    table.add_column("Offset", justify="right")
    if show_paths:
        table.add_column("Path", overflow="fold")
    for e in edges:
        c = e.connection
        style = style_for(c, focus)
        row = [
            f"{c.from_id} ↔ {c.to_id}",
            c.layer.value if c.layer else "",
            f"[{style.stroke}]{c.label}[/]" if style.show_label else f"[dim]{c.label}[/dim]",
            c.category,
            f"{c.strength:.2f}",
            f"{c.surprise:.2f}",
            f"{e.offset_index:+.1f}",
        ]
        if show_paths:
            row.append(e.d)
        table.add_row(*row)
    console.print(table)


def print_outcome(outcome: AnalysisOutcome) -> None:
    layer = outcome.layer.value
    if outcome.rejected:
        console.print(f"[yellow]Analysis for {layer} is already running.[/yellow]")
    elif outcome.status is AnalysisStatus.ERROR:
        console.print(f"[red]Analysis failed:[/red] {outcome.error}")
    elif outcome.discarded:
        console.print("[yellow]Connections were cleared during analysis; result dropped.[/yellow]")
    elif outcome.status is AnalysisStatus.NO_NEW:
        console.print(f"No new connections found for {layer}.")
    else:
        console.print(
            f"[green]Added {len(outcome.kept)} connection(s)[/green] to {layer} "
            f"({outcome.returned} proposed)."
        )
        for c in outcome.kept:
            console.print(f"  {c.from_id} ↔ {c.to_id}: [bold]{c.label}[/bold] [dim]{c.category}[/dim]")


def print_warning(message: Optional[str]) -> None:
    if message:
        console.print(f"[yellow]Warning:[/yellow] {message}")
