"""Migrate the document-store table dumps into PostgreSQL.

Reads the JSON dumps of the projects, experiments, samples, user-access,
invite-access and plots tables, joins them by experiment id and inserts the
rows of the relational schema. The schema must already exist
(``migrate-schema``).

Usage:
    dynamo-to-sql
    dynamo-to-sql --environment production --dumps-dir downloaded_data
    dynamo-to-sql --dry-run
"""

from __future__ import annotations

from pathlib import Path

import click

from platform_migrations.clients.sql import RecordingWriter, SqlWriter, get_engine
from platform_migrations.config import Environment, MigrationConfig
from platform_migrations.dumps import DynamoDumps
from platform_migrations.errors import ConfigError, NotFoundError
from platform_migrations.sql.migrator import CONCURRENT_ROW_STAGES, DynamoToSqlMigrator
from scripts.reporting import configure_logging, console, display_report


@click.command()
@click.option(
    "--environment",
    type=click.Choice([env.value for env in Environment]),
    default=None,
    help="Environment whose dumps are loaded (default: MIGRATION_ENVIRONMENT or development)",
)
@click.option(
    "--dumps-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding <table>-<environment>.json dumps",
)
@click.option("--database-url", type=str, default=None, help="SQLAlchemy URL of the target database")
@click.option("--max-in-flight", type=int, default=None, help="Projects migrated concurrently")
@click.option("--dry-run", is_flag=True, help="Build every row without touching the database")
@click.option("--verbose", "-v", is_flag=True, help="Show every item in the reports")
def main(
    environment: str | None,
    dumps_dir: Path | None,
    database_url: str | None,
    max_in_flight: int | None,
    dry_run: bool,
    verbose: bool,
) -> None:
    """Load the document-store dumps into the relational schema."""
    configure_logging(verbose)

    try:
        config = MigrationConfig.from_env(
            environment=environment,
            dumps_dir=dumps_dir,
            database_url=database_url,
            max_in_flight=max_in_flight,
            dry_run=dry_run or None,
        )
        dumps = DynamoDumps.from_directory(config.dumps_dir, config.environment)
    except (ConfigError, NotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1) from e

    console.print(f"[bold blue]Migrating {len(dumps.projects)} projects to SQL...[/bold blue]")

    if config.dry_run:
        console.print("[yellow]Dry run mode - rows are built but not inserted[/yellow]")
        writer = RecordingWriter()
        engine = None
    else:
        engine = get_engine(config, concurrent_stages=CONCURRENT_ROW_STAGES)
        writer = SqlWriter(engine)

    try:
        summary = DynamoToSqlMigrator(writer, dumps, max_in_flight=config.max_in_flight).run()
    finally:
        if engine is not None:
            engine.dispose()

    for report in summary.reports:
        display_report(report, verbose=verbose)

    if isinstance(writer, RecordingWriter):
        for table_name, count in sorted(writer.counts().items()):
            console.print(f"  [dim]{table_name}:[/dim] {count} rows")

    if not summary.all_ok:
        raise SystemExit(1)

    console.print("\n[bold green]✓ Finished[/bold green]")


if __name__ == "__main__":
    main()
