"""Relational schema of the platform (PostgreSQL).

Tables, native enum types and the ``updated_at`` triggers are all attached to
one ``MetaData`` so ``create_schema`` / ``drop_schema`` handle them together.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import (
    DDL,
    Boolean,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
    create_mock_engine,
    event,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, ENUM, JSONB, TIMESTAMP, UUID
from sqlalchemy.engine import Engine

metadata = MetaData()

# =============================================================================
# Enum types
# =============================================================================

PIPELINE_TYPES = ("qc", "gem2s")
SAMPLE_TECHNOLOGIES = ("10x", "rhapsody")
SAMPLE_FILE_TYPES = ("features10x", "barcodes10x", "matrix10x", "rhapsody")
UPLOAD_STATUSES = (
    "uploaded",
    "uploading",
    "compressing",
    "uploadError",
    "fileNotFound",
    "fileReadError",
    "fileReadAborted",
)
ACCESS_ROLES = ("owner", "admin", "explorer", "viewer")

pipeline_type = ENUM(*PIPELINE_TYPES, name="pipeline_type", metadata=metadata)
sample_technology = ENUM(*SAMPLE_TECHNOLOGIES, name="sample_technology", metadata=metadata)
sample_file_type = ENUM(*SAMPLE_FILE_TYPES, name="sample_file_type", metadata=metadata)
upload_status = ENUM(*UPLOAD_STATUSES, name="upload_status", metadata=metadata)
access_role = ENUM(*ACCESS_ROLES, name="access_role", metadata=metadata)


def _experiment_fk(nullable: bool = False) -> Column:
    return Column(
        "experiment_id",
        UUID(as_uuid=False),
        ForeignKey("experiment.id", ondelete="CASCADE"),
        nullable=nullable,
    )


def _timestamp(name: str) -> Column:
    return Column(name, TIMESTAMP(timezone=True), nullable=False, server_default=func.now())


# =============================================================================
# Tables
# =============================================================================

experiment = Table(
    "experiment",
    metadata,
    Column("id", UUID(as_uuid=False), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("processing_config", JSONB, nullable=True),
    Column("notify_by_email", Boolean, server_default=text("true")),
    Column("samples_order", ARRAY(UUID(as_uuid=False)), nullable=False),
    _timestamp("created_at"),
    _timestamp("updated_at"),
)

experiment_execution = Table(
    "experiment_execution",
    metadata,
    _experiment_fk(nullable=False),
    Column("pipeline_type", pipeline_type, nullable=False),
    Column("params_hash", String(255), nullable=True),
    Column("state_machine_arn", String(255), nullable=False),
    Column("execution_arn", String(255), nullable=False),
    PrimaryKeyConstraint("experiment_id", "pipeline_type"),
)

sample = Table(
    "sample",
    metadata,
    Column("id", UUID(as_uuid=False), primary_key=True),
    _experiment_fk(),
    Column("name", String(255), nullable=False),
    Column("sample_technology", sample_technology, nullable=False),
    _timestamp("created_at"),
    _timestamp("updated_at"),
)

sample_file = Table(
    "sample_file",
    metadata,
    Column("id", UUID(as_uuid=False), primary_key=True),
    Column("sample_file_type", sample_file_type, nullable=False),
    Column("valid", Boolean, nullable=False),
    Column("size", Integer, nullable=False),
    Column("s3_path", String(255), nullable=False),
    Column("upload_status", upload_status, nullable=False),
    _timestamp("updated_at"),
)

metadata_track = Table(
    "metadata_track",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    _experiment_fk(),
    Column("key", String(255)),
)

sample_to_sample_file_map = Table(
    "sample_to_sample_file_map",
    metadata,
    Column("sample_id", UUID(as_uuid=False), nullable=False),
    Column(
        "sample_file_id",
        UUID(as_uuid=False),
        ForeignKey("sample_file.id", ondelete="CASCADE"),
        nullable=False,
    ),
    PrimaryKeyConstraint("sample_id", "sample_file_id"),
)

sample_in_metadata_track_map = Table(
    "sample_in_metadata_track_map",
    metadata,
    Column(
        "metadata_track_id",
        Integer,
        ForeignKey("metadata_track.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "sample_id",
        UUID(as_uuid=False),
        ForeignKey("sample.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("value", String(255), nullable=False),
    PrimaryKeyConstraint("metadata_track_id", "sample_id"),
)

plot = Table(
    "plot",
    metadata,
    Column("id", String(255), nullable=False),
    _experiment_fk(),
    Column("config", JSONB, nullable=False),
    Column("s3_data_key", String(255), nullable=True),
    PrimaryKeyConstraint("id", "experiment_id"),
)

invite_access = Table(
    "invite_access",
    metadata,
    Column("user_email", String(255), nullable=False),
    _experiment_fk(),
    Column("access_role", access_role, nullable=False),
    _timestamp("updated_at"),
    PrimaryKeyConstraint("user_email", "experiment_id"),
)

user_access = Table(
    "user_access",
    metadata,
    Column("user_id", UUID(as_uuid=False), nullable=False),
    _experiment_fk(),
    Column("access_role", access_role, nullable=False),
    _timestamp("updated_at"),
    PrimaryKeyConstraint("user_id", "experiment_id"),
)

# =============================================================================
# updated_at triggers
# =============================================================================

ON_UPDATE_FUNCTION = """
CREATE OR REPLACE FUNCTION on_update_timestamp()
RETURNS trigger AS $$
BEGIN
  NEW.updated_at = now();
  RETURN NEW;
END;
$$ LANGUAGE plpgsql;
"""

DROP_ON_UPDATE_FUNCTION = "DROP FUNCTION IF EXISTS on_update_timestamp();"


def on_update_trigger(table_name: str) -> str:
    """Return the DDL of the trigger refreshing ``updated_at`` on update."""
    return (
        f"CREATE TRIGGER {table_name}_updated_at_trigger\n"
        f"BEFORE UPDATE ON {table_name}\n"
        f"FOR EACH ROW\n"
        f"EXECUTE PROCEDURE on_update_timestamp();"
    )


TRIGGERED_TABLES = tuple(name for name, table in metadata.tables.items() if "updated_at" in table.c)

event.listen(metadata, "before_create", DDL(ON_UPDATE_FUNCTION))
event.listen(metadata, "after_drop", DDL(DROP_ON_UPDATE_FUNCTION))
for _name in TRIGGERED_TABLES:
    event.listen(metadata.tables[_name], "after_create", DDL(on_update_trigger(_name)))


# =============================================================================
# Schema operations
# =============================================================================


def create_schema(engine: Engine) -> None:
    """Create enum types, the trigger function, tables and triggers."""
    metadata.create_all(engine)


def drop_schema(engine: Engine) -> None:
    """Drop every table, enum type and the trigger function."""
    metadata.drop_all(engine)


def schema_ddl(direction: str = "up") -> list[str]:
    """Render the DDL statements ``create_schema``/``drop_schema`` would run."""
    statements: list[str] = []

    def _collect(sql: Any, *_multiparams: Any, **_params: Any) -> None:
        statements.append(str(sql.compile(dialect=mock_engine.dialect)).strip())

    mock_engine = create_mock_engine("postgresql://", _collect)
    if direction == "up":
        metadata.create_all(mock_engine, checkfirst=False)
    elif direction == "down":
        metadata.drop_all(mock_engine, checkfirst=False)
    else:
        raise ValueError(f"Unknown direction '{direction}', expected 'up' or 'down'")
    return statements
