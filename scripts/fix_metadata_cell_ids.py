"""Fix metadata cell ids in the stored cell sets of every experiment.

Metadata track values were paired with samples in the samples table's own
order rather than the experiment's ``sampleIds`` order, so the cells of
metadata cell sets could belong to the wrong samples. This script rebuilds
every metadata cell set from the ``sample`` cell set and overwrites the
cell-sets object of each experiment.

Usage:
    fix-metadata-cell-ids
    fix-metadata-cell-ids --environment staging --dry-run
    fix-metadata-cell-ids --experiment-id e52b39624588791a7889e39c617f669e
"""

from __future__ import annotations

import click

from platform_migrations.cell_sets.job import CellSetRepairJob
from platform_migrations.config import Environment, MigrationConfig
from platform_migrations.errors import ConfigError
from scripts.reporting import configure_logging, console, display_report


@click.command()
@click.option(
    "--environment",
    type=click.Choice([env.value for env in Environment]),
    default=None,
    help="Target environment (default: MIGRATION_ENVIRONMENT or development)",
)
@click.option(
    "--experiment-id",
    "experiment_ids",
    multiple=True,
    help="Only repair these experiments (repeatable); default is every object in the bucket",
)
@click.option("--max-in-flight", type=int, default=None, help="Experiments repaired concurrently")
@click.option("--dry-run", is_flag=True, help="Rebuild cell sets without writing them back")
@click.option("--verbose", "-v", is_flag=True, help="Show every experiment in the report")
def main(
    environment: str | None,
    experiment_ids: tuple[str, ...],
    max_in_flight: int | None,
    dry_run: bool,
    verbose: bool,
) -> None:
    """Rebuild metadata cell sets in canonical sample order."""
    configure_logging(verbose)

    try:
        config = MigrationConfig.from_env(
            environment=environment,
            max_in_flight=max_in_flight,
            dry_run=dry_run or None,
        )
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1) from e

    console.print(f"[bold blue]Fixing metadata cell ids in {config.cell_sets_bucket}...[/bold blue]")
    if config.dry_run:
        console.print("[yellow]Dry run mode - no cell sets will be written[/yellow]")

    job = CellSetRepairJob.from_config(config)
    report = job.run(list(experiment_ids) or None)

    display_report(report, verbose=verbose)

    if not report.all_ok:
        raise SystemExit(1)

    console.print("\n[bold green]✓ Cell set migration complete[/bold green]")


if __name__ == "__main__":
    main()
