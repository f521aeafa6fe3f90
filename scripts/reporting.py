"""Console output shared by the migration scripts."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.table import Table

from platform_migrations.results import BatchReport, ItemStatus

console = Console()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

STATUS_STYLES = {
    ItemStatus.SUCCESS: "green",
    ItemStatus.SKIPPED: "yellow",
    ItemStatus.FAILED: "red",
}


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )


def display_report(report: BatchReport, verbose: bool = False) -> None:
    """Print counts for a batch, plus every non-success item.

    With ``verbose`` successful items are listed too.
    """
    counts = report.status_counts()
    console.print(f"\n[bold]{report.name}[/bold]")
    console.print(f"[green]Succeeded:[/green] {counts[ItemStatus.SUCCESS.value]}")
    console.print(f"[yellow]Skipped:[/yellow] {counts[ItemStatus.SKIPPED.value]}")
    console.print(f"[red]Failed:[/red] {counts[ItemStatus.FAILED.value]}")
    console.print(f"[dim]Elapsed:[/dim] {report.elapsed_seconds:.2f}s")

    shown = report.results if verbose else report.skipped + report.failed
    if not shown:
        return

    table = Table(title=f"{report.name} items")
    table.add_column("Item", style="dim")
    table.add_column("Status")
    table.add_column("Reason")

    for result in shown:
        style = STATUS_STYLES[result.status]
        table.add_row(result.item_id, f"[{style}]{result.status.value}[/{style}]", result.reason or "")

    console.print(table)
