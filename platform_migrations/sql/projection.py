"""Map document-store records onto rows of the relational schema.

Every function here is pure: it takes dump records and returns row dicts keyed
by column name. Inserting them is the migrator's job.
"""

from __future__ import annotations

from typing import Any

from platform_migrations.cell_sets.repair import DEFAULT_METADATA_VALUE
from platform_migrations.errors import PreconditionError
from platform_migrations.sql.schema import UPLOAD_STATUSES

LAST_MODIFIED_KEY = "lastModified"
DEFAULT_UPLOAD_STATUS = "uploaded"

TECHNOLOGY_ALIASES = {
    "10x chromium": "10x",
    "10x": "10x",
    "bd rhapsody": "rhapsody",
    "rhapsody": "rhapsody",
}

# Substring of the uploaded file name -> sample_file_type, first match wins.
FILE_TYPE_PATTERNS = (
    ("features", "features10x"),
    ("genes", "features10x"),
    ("barcodes", "barcodes10x"),
    ("matrix", "matrix10x"),
)


# =============================================================================
# Field mapping helpers
# =============================================================================


def sample_technology(sample: dict[str, Any]) -> str:
    """Map a sample's ``type`` onto the ``sample_technology`` enum."""
    raw = str(sample.get("type", "")).strip().lower()
    try:
        return TECHNOLOGY_ALIASES[raw]
    except KeyError:
        raise ValueError(f"Unknown technology '{sample.get('type')}' for sample {sample.get('uuid')}") from None


def sample_file_type(file_name: str, technology: str) -> str:
    """Derive the ``sample_file_type`` of an uploaded file from its name."""
    lowered = file_name.lower()
    for pattern, file_type in FILE_TYPE_PATTERNS:
        if pattern in lowered:
            return file_type
    if technology == "rhapsody":
        return "rhapsody"
    raise ValueError(f"Cannot determine file type of '{file_name}'")


def sample_files(sample: dict[str, Any]) -> list[tuple[str, dict[str, Any]]]:
    """Return ``(file_name, file)`` pairs, leaving out the lastModified stamp."""
    files = sample.get("files") or {}
    return [(name, file) for name, file in files.items() if name != LAST_MODIFIED_KEY]


def metadata_tracks(samples: list[dict[str, Any]]) -> list[str]:
    """Return the metadata track names shared by every sample.

    The first sample defines the tracks; every other sample must hold the same
    set of tracks.

    Raises:
        PreconditionError: If two samples disagree on their tracks.
    """
    if not samples:
        return []

    tracks = list((samples[0].get("metadata") or {}).keys())
    expected = set(tracks)
    for sample in samples[1:]:
        actual = set((sample.get("metadata") or {}).keys())
        if actual != expected:
            raise PreconditionError(
                f"Sample {sample.get('uuid')} has metadata tracks {sorted(actual)}, "
                f"expected {sorted(expected)}"
            )
    return tracks


# =============================================================================
# Row builders
# =============================================================================


def experiment_row(
    experiment_id: str,
    project_data: dict[str, Any],
    experiment_data: dict[str, Any],
) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": experiment_id,
        "name": project_data["name"],
        "description": project_data.get("description") or "",
        "processing_config": experiment_data.get("processingConfig"),
        "notify_by_email": experiment_data.get("notifyByEmail", True),
        "samples_order": list(experiment_data.get("sampleIds") or []),
    }
    if project_data.get("createdDate"):
        row["created_at"] = project_data["createdDate"]
    if project_data.get("lastModified"):
        row["updated_at"] = project_data["lastModified"]
    return row


def experiment_execution_rows(
    experiment_id: str,
    experiment_data: dict[str, Any],
) -> list[dict[str, Any]]:
    """One row per pipeline the experiment has run: gem2s, then qc."""
    meta = experiment_data.get("meta") or {}
    rows = []

    gem2s = meta.get("gem2s")
    if gem2s is not None:
        rows.append({
            "experiment_id": experiment_id,
            "pipeline_type": "gem2s",
            "params_hash": gem2s.get("paramsHash"),
            "state_machine_arn": gem2s["stateMachineArn"],
            "execution_arn": gem2s["executionArn"],
        })

    qc = meta.get("pipeline")
    if qc is not None:
        rows.append({
            "experiment_id": experiment_id,
            "pipeline_type": "qc",
            "params_hash": None,
            "state_machine_arn": qc["stateMachineArn"],
            "execution_arn": qc["executionArn"],
        })

    return rows


def sample_row(experiment_id: str, sample: dict[str, Any]) -> dict[str, Any]:
    row = {
        "id": sample["uuid"],
        "experiment_id": experiment_id,
        "name": sample["name"],
        "sample_technology": sample_technology(sample),
    }
    if sample.get("createdDate"):
        row["created_at"] = sample["createdDate"]
    if sample.get(LAST_MODIFIED_KEY):
        row["updated_at"] = sample[LAST_MODIFIED_KEY]
    return row


def sample_file_row(
    sample_file_id: str,
    project_uuid: str,
    sample: dict[str, Any],
    file_name: str,
    file: dict[str, Any],
) -> dict[str, Any]:
    upload = file.get("upload") or {}
    status = upload.get("status") or DEFAULT_UPLOAD_STATUS
    if status not in UPLOAD_STATUSES:
        raise ValueError(f"Unknown upload status '{status}' for file {file_name} of sample {sample['uuid']}")

    row = {
        "id": sample_file_id,
        "sample_file_type": sample_file_type(file_name, sample_technology(sample)),
        "valid": bool(file.get("valid", False)),
        "size": int(file.get("size") or 0),
        "s3_path": f"{project_uuid}/{sample['uuid']}/{file_name}",
        "upload_status": status,
    }
    if file.get(LAST_MODIFIED_KEY):
        row["updated_at"] = file[LAST_MODIFIED_KEY]
    return row


def sample_to_sample_file_row(sample_file_id: str, sample: dict[str, Any]) -> dict[str, Any]:
    return {"sample_id": sample["uuid"], "sample_file_id": sample_file_id}


def metadata_track_row(track: str, experiment_id: str) -> dict[str, Any]:
    return {"experiment_id": experiment_id, "key": track}


def sample_in_metadata_track_row(
    metadata_track_id: int | None,
    track: str,
    sample: dict[str, Any],
) -> dict[str, Any]:
    metadata = sample.get("metadata") or {}
    return {
        "metadata_track_id": metadata_track_id,
        "sample_id": sample["uuid"],
        "value": metadata.get(track) or DEFAULT_METADATA_VALUE,
    }


def _with_updated_at(row: dict[str, Any], record: dict[str, Any]) -> dict[str, Any]:
    if record.get("createdDate"):
        row["updated_at"] = record["createdDate"]
    return row


def user_access_row(record: dict[str, Any]) -> dict[str, Any]:
    return _with_updated_at({
        "user_id": record["userId"],
        "experiment_id": record["experimentId"],
        "access_role": record["role"],
    }, record)


def invite_access_row(record: dict[str, Any]) -> dict[str, Any]:
    return _with_updated_at({
        "user_email": record["userEmail"],
        "experiment_id": record["experimentId"],
        "access_role": record["role"],
    }, record)


def plot_row(record: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": record["plotUuid"],
        "experiment_id": record["experimentId"],
        "config": record["config"],
        "s3_data_key": record.get("plotDataKey"),
    }
