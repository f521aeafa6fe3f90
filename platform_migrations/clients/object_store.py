"""Cell-set documents in object storage (one JSON object per experiment)."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from platform_migrations.cell_sets.models import CellSetCollection
from platform_migrations.errors import NotFoundError

if TYPE_CHECKING:
    from platform_migrations.config import MigrationConfig

logger = logging.getLogger(__name__)

MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


def get_s3_client(config: MigrationConfig) -> Any:
    """Create an S3 client for the configured region and endpoint.

    LocalStack only serves path-style addressing, so a custom endpoint forces it.
    """
    client_config = Config(s3={"addressing_style": "path"}) if config.aws_endpoint_url else None
    return boto3.client(
        "s3",
        region_name=config.region,
        endpoint_url=config.aws_endpoint_url,
        config=client_config,
    )


class CellSetStore:
    """Reads and overwrites cell-set documents in a bucket."""

    def __init__(self, client: Any, bucket: str):
        self.client = client
        self.bucket = bucket

    @classmethod
    def from_config(cls, config: MigrationConfig) -> CellSetStore:
        return cls(get_s3_client(config), config.cell_sets_bucket)

    def list_keys(self) -> list[str]:
        """Return every object key in the bucket (all pages)."""
        paginator = self.client.get_paginator("list_objects_v2")
        keys: list[str] = []
        for page in paginator.paginate(Bucket=self.bucket):
            keys.extend(entry["Key"] for entry in page.get("Contents", []))
        logger.info(f"Found {len(keys)} cell set objects in {self.bucket}")
        return keys

    def get_document(self, experiment_id: str) -> dict[str, Any]:
        """Return the raw cell-set JSON document of an experiment."""
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=experiment_id)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in MISSING_KEY_CODES:
                raise NotFoundError(f"Cell sets for experiment {experiment_id} do not exist.") from e
            raise
        return json.loads(response["Body"].read())

    def put_cell_sets(self, experiment_id: str, collection: CellSetCollection) -> None:
        """Overwrite the experiment's document in a single put."""
        body = json.dumps(collection.to_dict())
        self.client.put_object(Bucket=self.bucket, Key=experiment_id, Body=body)
