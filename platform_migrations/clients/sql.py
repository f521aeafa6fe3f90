"""Row writers for the relational target.

``SqlWriter`` commits every insert on its own; there is no transaction that
spans several rows. ``RecordingWriter`` keeps rows in memory and backs dry
runs.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from sqlalchemy import create_engine, insert
from sqlalchemy.engine import Engine

from platform_migrations.sql.schema import metadata

if TYPE_CHECKING:
    from platform_migrations.config import MigrationConfig

logger = logging.getLogger(__name__)


class RowWriter(Protocol):
    """Anything that can insert one row and return its primary key."""

    def insert(self, table_name: str, row: dict[str, Any]) -> Any:
        ...


def get_engine(config: MigrationConfig, concurrent_stages: int = 1) -> Engine:
    """Create an engine with one connection per concurrently running item.

    ``concurrent_stages`` is the number of ``max_in_flight`` bounded stages
    that share the engine at the same time.
    """
    return create_engine(
        config.database_url,
        pool_size=config.max_in_flight * concurrent_stages,
        max_overflow=0,
        pool_pre_ping=True,
    )


class SqlWriter:
    """Inserts rows through SQLAlchemy Core, one committed statement each."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def insert(self, table_name: str, row: dict[str, Any]) -> Any:
        """Insert ``row`` into ``table_name``.

        Returns:
            The primary key value (a tuple for composite keys).
        """
        table = metadata.tables[table_name]
        with self.engine.begin() as connection:
            result = connection.execute(insert(table).values(**row))
            primary_key = tuple(result.inserted_primary_key or ())

        logger.debug(f"Inserted into {table_name}: {primary_key}")
        return primary_key[0] if len(primary_key) == 1 else primary_key


@dataclass
class RecordingWriter:
    """In-memory writer; serial ids are handed out like the database would."""

    rows: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    _serial: itertools.count = field(default_factory=lambda: itertools.count(1))
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def insert(self, table_name: str, row: dict[str, Any]) -> Any:
        table = metadata.tables[table_name]
        with self._lock:
            stored = dict(row)
            autoincrement = [
                c.name for c in table.primary_key.columns if c.autoincrement is True
            ]
            for column in autoincrement:
                stored.setdefault(column, next(self._serial))
            self.rows.append((table_name, stored))

        primary_key = tuple(stored.get(c.name) for c in table.primary_key.columns)
        return primary_key[0] if len(primary_key) == 1 else primary_key

    def rows_for(self, table_name: str) -> list[dict[str, Any]]:
        """Rows inserted into one table, in insertion order."""
        with self._lock:
            return [row for name, row in self.rows if name == table_name]

    def counts(self) -> dict[str, int]:
        """Number of rows per table."""
        with self._lock:
            counts: dict[str, int] = {}
            for name, _row in self.rows:
                counts[name] = counts.get(name, 0) + 1
            return counts
