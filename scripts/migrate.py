"""Schema migrations for the platform's relational database."""

from __future__ import annotations

import click
from sqlalchemy.exc import SQLAlchemyError

from platform_migrations.clients.sql import get_engine
from platform_migrations.config import MigrationConfig
from platform_migrations.errors import ConfigError
from platform_migrations.sql.schema import create_schema, drop_schema, schema_ddl
from scripts.reporting import configure_logging, console


@click.command()
@click.option(
    "--direction",
    type=click.Choice(["up", "down"]),
    default="up",
    help="up creates the schema, down drops it",
)
@click.option("--database-url", type=str, default=None, help="SQLAlchemy URL of the target database")
@click.option("--dry-run", is_flag=True, help="Print the DDL without applying it")
def main(direction: str, database_url: str | None, dry_run: bool) -> None:
    """Create or drop the relational schema."""
    configure_logging()
    console.print(f"[bold blue]Running schema migration ({direction})...[/bold blue]")

    if dry_run:
        console.print("[yellow]Dry run mode - no changes will be applied[/yellow]")
        for statement in schema_ddl(direction):
            console.print(f"{statement};\n", markup=False, highlight=False)
        return

    try:
        config = MigrationConfig.from_env(database_url=database_url)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1) from e

    engine = get_engine(config)
    try:
        if direction == "up":
            create_schema(engine)
        else:
            drop_schema(engine)
    except SQLAlchemyError as e:
        console.print(f"[red]Migration failed:[/red] {e}")
        raise SystemExit(1) from e
    finally:
        engine.dispose()

    console.print("[bold green]✓ Schema migration applied[/bold green]")


if __name__ == "__main__":
    main()
