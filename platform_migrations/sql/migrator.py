"""Move the document-store dumps into the relational schema.

Stages, in order:
1. Projects: experiment, executions, samples, files and metadata tracks
2. User access, invite access and plots, concurrently with each other

Each project and each access/plot record ends as its own ``ItemResult``.
All rows of a project are built before its first insert, so bad source
data fails the project without writing anything.
Inserts are committed one at a time; a database error in the middle of a
project leaves its earlier rows committed.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from platform_migrations.clients.sql import RowWriter
from platform_migrations.dumps import DynamoDumps
from platform_migrations.errors import MigrationError, PreconditionError
from platform_migrations.pool import run_bounded
from platform_migrations.results import BatchReport, ItemResult
from platform_migrations.sql import projection

logger = logging.getLogger(__name__)

# User access, invite access and plots run side by side after the projects.
CONCURRENT_ROW_STAGES = 3

RECOVERABLE_ERRORS = (
    MigrationError,
    SQLAlchemyError,
    KeyError,
    TypeError,
    ValueError,
)


@dataclass
class MigrationSummary:
    """Reports of every stage of one store migration run."""

    projects: BatchReport
    user_access: BatchReport
    invite_access: BatchReport
    plots: BatchReport

    @property
    def reports(self) -> list[BatchReport]:
        return [self.projects, self.user_access, self.invite_access, self.plots]

    @property
    def all_ok(self) -> bool:
        return all(report.all_ok for report in self.reports)

    def to_dict(self) -> dict[str, Any]:
        return {report.name: report.to_dict() for report in self.reports}


@dataclass
class _RowCounter:
    writer: RowWriter
    counts: dict[str, int] = field(default_factory=dict)

    def insert(self, table_name: str, row: dict[str, Any]) -> Any:
        key = self.writer.insert(table_name, row)
        self.counts[table_name] = self.counts.get(table_name, 0) + 1
        return key


@dataclass
class _ProjectRows:
    """Rows of one project in insert order.

    Metadata track values wait for the serial id of their track.
    """

    rows: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    tracks: list[tuple[dict[str, Any], list[dict[str, Any]]]] = field(default_factory=list)


class DynamoToSqlMigrator:
    """Projects the document-store dumps onto relational rows."""

    def __init__(
        self,
        writer: RowWriter,
        dumps: DynamoDumps,
        max_in_flight: int = 16,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.writer = writer
        self.dumps = dumps
        self.max_in_flight = max_in_flight
        self.id_factory = id_factory

    # -------------------------------------------------------------------------
    # Projects
    # -------------------------------------------------------------------------

    def _resolve_project(self, project: dict[str, Any]) -> tuple[str, dict, dict, dict] | str:
        """Return the project's joined records, or why it must be skipped."""
        project_data = project.get("projects")
        if not project_data:
            return "project data is missing"

        experiments = project_data.get("experiments") or []
        if not experiments:
            return "project has no experiments"
        if len(experiments) > 1:
            raise PreconditionError(
                f"Project {project.get('projectUuid')} has {len(experiments)} experiments, expected exactly one"
            )

        experiment_id = experiments[0]
        experiment_data = self.dumps.experiment(experiment_id)
        if experiment_data is None:
            return f"experiment {experiment_id} is missing from the dumps"

        sample_data = self.dumps.samples_of(experiment_id)
        if sample_data is None:
            return f"samples of experiment {experiment_id} are missing from the dumps"

        return experiment_id, project_data, experiment_data, sample_data

    def _plan_project(
        self,
        project_uuid: str,
        experiment_id: str,
        project_data: dict[str, Any],
        experiment_data: dict[str, Any],
        sample_data: dict[str, Any],
    ) -> _ProjectRows:
        """Build every row of a project; raises before anything is written."""
        samples = list((sample_data.get("samples") or {}).values())
        tracks = projection.metadata_tracks(samples)

        plan = _ProjectRows(
            rows=[("experiment", projection.experiment_row(experiment_id, project_data, experiment_data))],
        )
        for execution in projection.experiment_execution_rows(experiment_id, experiment_data):
            plan.rows.append(("experiment_execution", execution))

        if not samples:
            logger.info(f"No samples in the project {project_uuid}, experiment {experiment_id}")
            return plan

        for sample in samples:
            plan.rows.append(("sample", projection.sample_row(experiment_id, sample)))

            for file_name, file in projection.sample_files(sample):
                sample_file_id = self.id_factory()
                plan.rows.append((
                    "sample_file",
                    projection.sample_file_row(sample_file_id, project_uuid, sample, file_name, file),
                ))
                plan.rows.append((
                    "sample_to_sample_file_map",
                    projection.sample_to_sample_file_row(sample_file_id, sample),
                ))

        for track in tracks:
            plan.tracks.append((
                projection.metadata_track_row(track, experiment_id),
                [projection.sample_in_metadata_track_row(None, track, sample) for sample in samples],
            ))

        return plan

    def _insert_project(self, plan: _ProjectRows) -> dict[str, int]:
        rows = _RowCounter(self.writer)
        for table_name, row in plan.rows:
            rows.insert(table_name, row)

        for track_row, values in plan.tracks:
            track_id = rows.insert("metadata_track", track_row)
            for value in values:
                rows.insert("sample_in_metadata_track_map", {**value, "metadata_track_id": track_id})

        return rows.counts

    def migrate_project(self, project: dict[str, Any]) -> ItemResult:
        """Migrate one project; never raises."""
        project_uuid = str(project.get("projectUuid"))

        try:
            resolved = self._resolve_project(project)
            if isinstance(resolved, str):
                logger.warning(f"[ MALFORMED ] project {project_uuid}: {resolved}, skipping")
                return ItemResult.skipped(project_uuid, resolved)

            experiment_id, project_data, experiment_data, sample_data = resolved
            logger.info(f"Migrating {project_uuid}, experiment {experiment_id}")
            plan = self._plan_project(project_uuid, experiment_id, project_data, experiment_data, sample_data)
            counts = self._insert_project(plan)
        except RECOVERABLE_ERRORS as e:
            logger.error(f"Error on project {project_uuid}: {type(e).__name__}: {e}")
            return ItemResult.failed(project_uuid, f"{type(e).__name__}: {e}")

        return ItemResult.success(project_uuid, experiment_id=experiment_id, rows=counts)

    def migrate_projects(self, projects: list[dict[str, Any]]) -> BatchReport:
        report = BatchReport(name="projects")
        report.extend(run_bounded(self.migrate_project, projects, self.max_in_flight))
        return report.finish()

    # -------------------------------------------------------------------------
    # Access grants and plots
    # -------------------------------------------------------------------------

    def _migrate_rows(
        self,
        name: str,
        table_name: str,
        records: list[dict[str, Any]],
        build_row: Callable[[dict[str, Any]], dict[str, Any]],
        item_id: Callable[[dict[str, Any]], str],
    ) -> BatchReport:
        def _migrate_one(record: dict[str, Any]) -> ItemResult:
            record_id = item_id(record)
            try:
                self.writer.insert(table_name, build_row(record))
            except RECOVERABLE_ERRORS as e:
                logger.error(f"Error inserting {table_name} {record_id}: {type(e).__name__}: {e}")
                return ItemResult.failed(record_id, f"{type(e).__name__}: {e}")
            return ItemResult.success(record_id)

        report = BatchReport(name=name)
        report.extend(run_bounded(_migrate_one, records, self.max_in_flight))
        logger.info(f"Migrated {len(report.succeeded)}/{len(records)} {name} records")
        return report.finish()

    def migrate_user_access(self, records: list[dict[str, Any]]) -> BatchReport:
        return self._migrate_rows(
            "user_access",
            "user_access",
            records,
            projection.user_access_row,
            lambda r: f"{r.get('userId')}/{r.get('experimentId')}",
        )

    def migrate_invite_access(self, records: list[dict[str, Any]]) -> BatchReport:
        return self._migrate_rows(
            "invite_access",
            "invite_access",
            records,
            projection.invite_access_row,
            lambda r: f"{r.get('userEmail')}/{r.get('experimentId')}",
        )

    def migrate_plots(self, records: list[dict[str, Any]]) -> BatchReport:
        return self._migrate_rows(
            "plots",
            "plot",
            records,
            projection.plot_row,
            lambda r: f"{r.get('plotUuid')}/{r.get('experimentId')}",
        )

    # -------------------------------------------------------------------------
    # Full run
    # -------------------------------------------------------------------------

    def run(self) -> MigrationSummary:
        """Migrate projects, then access grants and plots concurrently."""
        projects = self.migrate_projects(self.dumps.projects)

        with ThreadPoolExecutor(max_workers=CONCURRENT_ROW_STAGES) as executor:
            user_access = executor.submit(self.migrate_user_access, self.dumps.user_access)
            invite_access = executor.submit(self.migrate_invite_access, self.dumps.invite_access)
            plots = executor.submit(self.migrate_plots, self.dumps.plots)

            return MigrationSummary(
                projects=projects,
                user_access=user_access.result(),
                invite_access=invite_access.result(),
                plots=plots.result(),
            )
