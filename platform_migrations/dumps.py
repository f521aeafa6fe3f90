"""Whole-table JSON dumps of the document store.

Each dump is a JSON array of plain records named ``<table>-<environment>.json``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from platform_migrations.config import Environment
from platform_migrations.errors import NotFoundError

logger = logging.getLogger(__name__)

DUMP_TABLES = {
    "projects": "projects",
    "experiments": "experiments",
    "samples": "samples",
    "user_access": "user-access",
    "invite_access": "invite-access",
    "plots": "plots-tables",
}


def dump_path(dumps_dir: Path, table: str, environment: Environment | str) -> Path:
    """Return the dump file of a table for an environment."""
    environment = Environment.parse(environment)
    return dumps_dir / f"{DUMP_TABLES[table]}-{environment.value}.json"


def load_dump(path: Path) -> list[dict[str, Any]]:
    """Load one dump file, which must hold a JSON array."""
    if not path.exists():
        raise NotFoundError(f"Dump file does not exist: {path}")

    with open(path, encoding="utf-8") as f:
        records = json.load(f)

    if not isinstance(records, list):
        raise ValueError(f"Dump {path.name} must contain a JSON array, got {type(records).__name__}")

    logger.info(f"Loaded {len(records)} records from {path.name}")
    return records


@dataclass
class DynamoDumps:
    """All six table dumps, with lookups by experiment id."""

    projects: list[dict[str, Any]] = field(default_factory=list)
    experiments: list[dict[str, Any]] = field(default_factory=list)
    samples: list[dict[str, Any]] = field(default_factory=list)
    user_access: list[dict[str, Any]] = field(default_factory=list)
    invite_access: list[dict[str, Any]] = field(default_factory=list)
    plots: list[dict[str, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._experiments_by_id = self._index(self.experiments)
        self._samples_by_experiment = self._index(self.samples)

    @staticmethod
    def _index(records: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
        # First record wins, matching a linear find over the dump.
        index: dict[str, dict[str, Any]] = {}
        for record in records:
            experiment_id = record.get("experimentId")
            if experiment_id is not None:
                index.setdefault(experiment_id, record)
        return index

    @classmethod
    def from_directory(cls, dumps_dir: Path, environment: Environment | str) -> DynamoDumps:
        return cls(**{
            table: load_dump(dump_path(dumps_dir, table, environment))
            for table in DUMP_TABLES
        })

    def experiment(self, experiment_id: str) -> dict[str, Any] | None:
        return self._experiments_by_id.get(experiment_id)

    def samples_of(self, experiment_id: str) -> dict[str, Any] | None:
        return self._samples_by_experiment.get(experiment_id)
