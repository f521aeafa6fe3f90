"""Repair metadata cell sets for every experiment in the cell-sets bucket.

For one experiment:
1. Read ``sampleIds`` and ``projectId`` from the experiments table
2. Read the project's metadata track names
3. Read the experiment's samples
4. Stop early (skipped) when the project has no metadata tracks
5. Read and validate the cell-set document
6. Rebuild every metadata track group from the ``sample`` group
7. Overwrite the document (unless dry-run)

Failures are caught per experiment and reported in the ``BatchReport``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from platform_migrations.cell_sets.models import CellSetCollection
from platform_migrations.cell_sets.repair import (
    metadata_in_sample_order,
    rebuild_metadata_cell_sets,
    storage_order_was_wrong,
)
from platform_migrations.clients.document_store import DocumentStore
from platform_migrations.clients.object_store import CellSetStore
from platform_migrations.config import MigrationConfig
from platform_migrations.errors import MalformedReferenceError, MigrationError
from platform_migrations.pool import run_bounded
from platform_migrations.results import BatchReport, ItemResult, ItemStatus
from platform_migrations.validators.documents import validate_document

logger = logging.getLogger(__name__)

REPORT_NAME = "fix-metadata-cell-ids"
NO_METADATA_REASON = "no metadata tracks"

RECOVERABLE_ERRORS = (
    MigrationError,
    ClientError,
    BotoCoreError,
    KeyError,
    TypeError,
    ValueError,
)


def _require_valid(kind: str, data: Any, experiment_id: str) -> None:
    errors = validate_document(kind, data)
    if errors:
        raise MalformedReferenceError(
            f"Invalid {kind} document for experiment {experiment_id}: {'; '.join(errors[:3])}"
        )


class CellSetRepairJob:
    """Recompute metadata-track cellIds in canonical sample order."""

    def __init__(
        self,
        config: MigrationConfig,
        documents: DocumentStore,
        cell_sets: CellSetStore,
    ):
        self.config = config
        self.documents = documents
        self.cell_sets = cell_sets

    @classmethod
    def from_config(cls, config: MigrationConfig) -> CellSetRepairJob:
        return cls(config, DocumentStore.from_config(config), CellSetStore.from_config(config))

    def repair(self, experiment_id: str) -> ItemResult:
        """Repair one experiment, raising on any failure."""
        experiment = self.documents.get_experiment(experiment_id)
        _require_valid("experiment", experiment, experiment_id)
        sample_ids: list[str] = experiment["sampleIds"]

        project = self.documents.get_project(experiment["projectId"])
        _require_valid("project", project, experiment_id)
        tracks: list[str] = project["projects"]["metadataKeys"]

        samples_record = self.documents.get_samples(experiment_id)
        _require_valid("samples", samples_record, experiment_id)
        samples: dict[str, Any] = samples_record["samples"]

        if not tracks:
            logger.info(f"Experiment {experiment_id} has no metadata - skipping.")
            return ItemResult.skipped(experiment_id, NO_METADATA_REASON)

        values_by_track = {
            track: metadata_in_sample_order(track, sample_ids, samples) for track in tracks
        }

        document = self.cell_sets.get_document(experiment_id)
        _require_valid("cell_sets", document, experiment_id)
        collection = CellSetCollection.from_dict(document)

        rebuild_metadata_cell_sets(collection, sample_ids, values_by_track)

        if not self.config.dry_run:
            self.cell_sets.put_cell_sets(experiment_id, collection)

        return ItemResult.success(
            experiment_id,
            tracks=len(tracks),
            order_was_wrong=storage_order_was_wrong(tracks, sample_ids, samples),
            written=not self.config.dry_run,
        )

    def migrate_cell_sets(self, experiment_id: str) -> ItemResult:
        """Repair one experiment and report the outcome; never raises."""
        logger.info(f"Migrating experiment: {experiment_id}")
        try:
            result = self.repair(experiment_id)
        except RECOVERABLE_ERRORS as e:
            logger.error(f"Error migrating experiment: {experiment_id}, {e}")
            return ItemResult.failed(experiment_id, f"{type(e).__name__}: {e}")

        if result.status is ItemStatus.SUCCESS:
            logger.info(f"Migration for experiment {experiment_id} finished")
        return result

    def run(self, experiment_ids: Sequence[str] | None = None) -> BatchReport:
        """Repair the given experiments, or every key in the bucket."""
        report = BatchReport(name=REPORT_NAME)

        if experiment_ids is None:
            experiment_ids = self.cell_sets.list_keys()

        report.extend(
            run_bounded(self.migrate_cell_sets, experiment_ids, self.config.max_in_flight)
        )
        return report.finish()
