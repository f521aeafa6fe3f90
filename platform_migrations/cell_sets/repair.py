"""Rebuild metadata cell sets from the sample cell sets.

Metadata values used to be paired with samples in the iteration order of the
samples mapping instead of the experiment's ``sampleIds`` order, so the
``cellIds`` of metadata-track groups could belong to the wrong samples. The
functions here recompute those groups from the authoritative ``sample`` group.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from platform_migrations.cell_sets.models import CellSetCollection

DEFAULT_METADATA_VALUE = "N/A"

_HYPHEN_RUN = re.compile(r"-+")


def sanitize_metadata_key(name: str) -> str:
    """Replace every run of hyphens with a single underscore.

    Downstream pipelines reject hyphens in identifiers.
    """
    return _HYPHEN_RUN.sub("_", name)


def _sample_metadata_value(sample: Mapping[str, Any] | None, track: str) -> Any:
    if not sample:
        return DEFAULT_METADATA_VALUE
    metadata = sample.get("metadata") or {}
    return metadata.get(track) or DEFAULT_METADATA_VALUE


def metadata_in_sample_order(
    track: str,
    sample_ids: Sequence[str],
    samples: Mapping[str, Mapping[str, Any]],
) -> list[Any]:
    """Return one value of ``track`` per sample id, in ``sample_ids`` order."""
    return [_sample_metadata_value(samples.get(sample_id), track) for sample_id in sample_ids]


def metadata_in_storage_order(
    track: str,
    samples: Mapping[str, Mapping[str, Any]],
) -> list[Any]:
    """Return track values in the samples mapping's own order.

    This is how the values were paired with samples before the fix. It is only
    used to detect experiments whose stored order disagreed with ``sampleIds``.
    """
    return [_sample_metadata_value(sample, track) for sample in samples.values()]


def storage_order_was_wrong(
    tracks: Sequence[str],
    sample_ids: Sequence[str],
    samples: Mapping[str, Mapping[str, Any]],
) -> bool:
    """True if any track's stored-order values differ from the canonical ones."""
    return any(
        metadata_in_storage_order(track, samples) != metadata_in_sample_order(track, sample_ids, samples)
        for track in tracks
    )


def _unique(values: Sequence[Any]) -> list[Any]:
    seen: list[Any] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def rebuild_track(
    collection: CellSetCollection,
    track: str,
    sample_ids: Sequence[str],
    values: Sequence[Any],
) -> None:
    """Recompute the cellIds of one metadata track group in place.

    ``values[i]`` is the track value of ``sample_ids[i]``.

    Raises:
        MalformedReferenceError: If the track's group, a value's child, or a
            sample's child does not exist.
    """
    if len(values) != len(sample_ids):
        raise ValueError(
            f"Track '{track}' has {len(values)} values for {len(sample_ids)} samples"
        )

    group = collection.group(sanitize_metadata_key(track))
    samples_group = collection.samples

    for value in _unique(values):
        cell_ids: list[Any] = []
        for sample_id, sample_value in zip(sample_ids, values):
            if sample_value == value:
                cell_ids.extend(samples_group.sample_child(sample_id).cell_ids)

        group.child_named(value).cell_ids = cell_ids


def rebuild_metadata_cell_sets(
    collection: CellSetCollection,
    sample_ids: Sequence[str],
    values_by_track: Mapping[str, Sequence[Any]],
) -> CellSetCollection:
    """Recompute every metadata track group of ``collection``.

    Args:
        collection: Cell sets of one experiment; mutated in place.
        sample_ids: The experiment's canonical sample order.
        values_by_track: Raw track name to its values in ``sample_ids`` order.

    Returns:
        The same collection, with only ``cellIds`` fields changed.
    """
    for track, values in values_by_track.items():
        rebuild_track(collection, track, sample_ids, values)
    return collection
