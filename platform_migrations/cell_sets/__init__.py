"""Cell-set documents and the metadata cellIds repair."""

from .models import CellSet, CellSetChild, CellSetCollection, SAMPLE_CELL_SET_KEY
from .repair import (
    DEFAULT_METADATA_VALUE,
    metadata_in_sample_order,
    metadata_in_storage_order,
    rebuild_metadata_cell_sets,
    rebuild_track,
    sanitize_metadata_key,
)

__all__ = [
    "CellSet",
    "CellSetChild",
    "CellSetCollection",
    "SAMPLE_CELL_SET_KEY",
    "DEFAULT_METADATA_VALUE",
    "metadata_in_sample_order",
    "metadata_in_storage_order",
    "rebuild_metadata_cell_sets",
    "rebuild_track",
    "sanitize_metadata_key",
]
