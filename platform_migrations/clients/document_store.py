"""Keyed reads from the experiments, projects and samples tables."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import boto3

from platform_migrations.errors import NotFoundError

if TYPE_CHECKING:
    from platform_migrations.config import MigrationConfig

logger = logging.getLogger(__name__)


def get_dynamodb_resource(config: MigrationConfig) -> Any:
    """Create a DynamoDB resource for the configured region and endpoint."""
    return boto3.resource(
        "dynamodb",
        region_name=config.region,
        endpoint_url=config.aws_endpoint_url,
    )


def to_plain(value: Any) -> Any:
    """Convert DynamoDB Decimals (recursively) into ints and floats."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: to_plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_plain(v) for v in value]
    if isinstance(value, set):
        return {to_plain(v) for v in value}
    return value


class DocumentStore:
    """Thin wrapper over the per-environment tables."""

    def __init__(self, resource: Any, config: MigrationConfig):
        self.resource = resource
        self.config = config

    @classmethod
    def from_config(cls, config: MigrationConfig) -> DocumentStore:
        return cls(get_dynamodb_resource(config), config)

    def get_item(
        self,
        table_name: str,
        key: dict[str, Any],
        attributes: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        """Fetch one item, optionally projected to ``attributes``.

        Raises:
            NotFoundError: If no item has ``key``.
        """
        params: dict[str, Any] = {"Key": key}
        if attributes:
            params["ProjectionExpression"] = ",".join(attributes)

        response = self.resource.Table(table_name).get_item(**params)
        if "Item" not in response:
            raise NotFoundError(f"No item {key} in {table_name}.")

        return to_plain(response["Item"])

    def get_experiment(self, experiment_id: str) -> dict[str, Any]:
        return self.get_item(
            self.config.experiments_table,
            {"experimentId": experiment_id},
            ["sampleIds", "projectId"],
        )

    def get_project(self, project_uuid: str) -> dict[str, Any]:
        return self.get_item(
            self.config.projects_table,
            {"projectUuid": project_uuid},
            ["projects"],
        )

    def get_samples(self, experiment_id: str) -> dict[str, Any]:
        return self.get_item(
            self.config.samples_table,
            {"experimentId": experiment_id},
            ["samples"],
        )
