"""Unit tests for the metadata cell-set rebuild (platform_migrations.cell_sets.repair)."""

from __future__ import annotations

import copy
from typing import Any

import pytest

from platform_migrations.cell_sets import (
    DEFAULT_METADATA_VALUE,
    CellSetCollection,
    metadata_in_sample_order,
    metadata_in_storage_order,
    rebuild_metadata_cell_sets,
    rebuild_track,
    sanitize_metadata_key,
)
from platform_migrations.cell_sets.repair import storage_order_was_wrong
from platform_migrations.errors import MalformedReferenceError


def _children(collection: CellSetCollection, key: str) -> dict[Any, list[Any]]:
    return {child.name: child.cell_ids for child in collection.group(key).children}


# ============================================================================
# sanitize_metadata_key
# ============================================================================


class TestSanitizeMetadataKey:
    """Hyphen runs collapse into a single underscore."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Track-1", "Track_1"),
            ("a--b---c", "a_b_c"),
            ("-leading", "_leading"),
            ("trailing-", "trailing_"),
            ("no_hyphens", "no_hyphens"),
            ("", ""),
        ],
    )
    def test_replaces_hyphen_runs(self, raw: str, expected: str) -> None:
        assert sanitize_metadata_key(raw) == expected

    @pytest.mark.parametrize("raw", ["Track-1", "a--b", "---", "plain", "x-y_z--w"])
    def test_is_idempotent_and_hyphen_free(self, raw: str) -> None:
        once = sanitize_metadata_key(raw)
        assert sanitize_metadata_key(once) == once
        assert "-" not in once


# ============================================================================
# Canonical-order extraction
# ============================================================================


class TestMetadataInSampleOrder:
    """One value per sample id, in sample id order."""

    def test_follows_sample_ids_not_mapping_order(
        self, sample_ids: list[str], samples: dict[str, Any]
    ) -> None:
        assert metadata_in_sample_order("Group", sample_ids, samples) == ["Y", "X"]

    def test_storage_order_follows_mapping(self, samples: dict[str, Any]) -> None:
        assert metadata_in_storage_order("Group", samples) == ["X", "Y"]

    def test_length_matches_sample_ids(self, samples: dict[str, Any]) -> None:
        sample_ids = ["s1", "missing", "s2", "s1"]
        values = metadata_in_sample_order("Group", sample_ids, samples)
        assert len(values) == len(sample_ids)

    def test_missing_sample_gets_default(self, samples: dict[str, Any]) -> None:
        values = metadata_in_sample_order("Group", ["missing", "s1"], samples)
        assert values == [DEFAULT_METADATA_VALUE, "X"]

    def test_missing_track_gets_default(self, samples: dict[str, Any]) -> None:
        values = metadata_in_sample_order("Condition", ["s1", "s2"], samples)
        assert values == [DEFAULT_METADATA_VALUE, DEFAULT_METADATA_VALUE]

    def test_empty_value_gets_default(self) -> None:
        samples = {"s1": {"metadata": {"Group": ""}}, "s2": {}}
        assert metadata_in_sample_order("Group", ["s1", "s2"], samples) == ["N/A", "N/A"]

    def test_storage_order_was_wrong(self, sample_ids: list[str], samples: dict[str, Any]) -> None:
        assert storage_order_was_wrong(["Group"], sample_ids, samples) is True
        assert storage_order_was_wrong(["Group"], ["s1", "s2"], samples) is False


# ============================================================================
# Group rebuild
# ============================================================================


class TestRebuildTrack:
    """Metadata groups are recomputed from the sample group."""

    def test_scenario_rebuild(
        self,
        cell_sets_document: dict[str, Any],
        sample_ids: list[str],
        samples: dict[str, Any],
    ) -> None:
        collection = CellSetCollection.from_dict(cell_sets_document)
        values = {"Group": metadata_in_sample_order("Group", sample_ids, samples)}

        rebuild_metadata_cell_sets(collection, sample_ids, values)

        assert _children(collection, "Group") == {"X": [10], "Y": [20]}

    def test_independent_of_sample_mapping_order(self) -> None:
        document = {
            "cellSets": [
                {
                    "key": "sample",
                    "children": [
                        {"key": "A", "name": "A", "cellIds": [1, 2]},
                        {"key": "B", "name": "B", "cellIds": [3]},
                    ],
                },
                {
                    "key": "color",
                    "children": [
                        {"name": "red", "cellIds": []},
                        {"name": "blue", "cellIds": []},
                    ],
                },
            ]
        }
        forward = {"A": {"metadata": {"color": "red"}}, "B": {"metadata": {"color": "blue"}}}
        backward = {"B": {"metadata": {"color": "blue"}}, "A": {"metadata": {"color": "red"}}}

        results = []
        for samples in (forward, backward):
            collection = CellSetCollection.from_dict(copy.deepcopy(document))
            values = {"color": metadata_in_sample_order("color", ["B", "A"], samples)}
            rebuild_metadata_cell_sets(collection, ["B", "A"], values)
            results.append(_children(collection, "color"))

        assert results[0] == results[1] == {"red": [1, 2], "blue": [3]}

    def test_cells_concatenate_in_sample_order(self) -> None:
        collection = CellSetCollection.from_dict({
            "cellSets": [
                {
                    "key": "sample",
                    "children": [
                        {"key": "s1", "name": "s1", "cellIds": [1, 2]},
                        {"key": "s2", "name": "s2", "cellIds": [3]},
                        {"key": "s3", "name": "s3", "cellIds": [4, 5]},
                    ],
                },
                {"key": "Group", "children": [{"name": "X", "cellIds": [99]}, {"name": "Y", "cellIds": []}]},
            ]
        })

        rebuild_track(collection, "Group", ["s3", "s2", "s1"], ["X", "Y", "X"])

        assert _children(collection, "Group") == {"X": [4, 5, 1, 2], "Y": [3]}

    def test_is_a_fixed_point(
        self,
        cell_sets_document: dict[str, Any],
        sample_ids: list[str],
        samples: dict[str, Any],
    ) -> None:
        values = {"Group": metadata_in_sample_order("Group", sample_ids, samples)}
        collection = rebuild_metadata_cell_sets(
            CellSetCollection.from_dict(cell_sets_document), sample_ids, values
        )
        once = collection.to_dict()

        again = rebuild_metadata_cell_sets(CellSetCollection.from_dict(once), sample_ids, values)

        assert again.to_dict() == once

    def test_only_cell_ids_change(
        self,
        cell_sets_document: dict[str, Any],
        sample_ids: list[str],
        samples: dict[str, Any],
    ) -> None:
        before = copy.deepcopy(cell_sets_document)
        values = {"Group": metadata_in_sample_order("Group", sample_ids, samples)}

        after = rebuild_metadata_cell_sets(
            CellSetCollection.from_dict(cell_sets_document), sample_ids, values
        ).to_dict()

        for old, new in zip(before["cellSets"], after["cellSets"]):
            assert {k: v for k, v in old.items() if k != "children"} == {
                k: v for k, v in new.items() if k != "children"
            }
            for old_child, new_child in zip(old["children"], new["children"]):
                old_child.pop("cellIds")
                new_child.pop("cellIds")
                assert old_child == new_child

        assert after["cellSets"][0] == before["cellSets"][0]

    def test_hyphenated_track_uses_sanitized_group_key(self) -> None:
        collection = CellSetCollection.from_dict({
            "cellSets": [
                {"key": "sample", "children": [{"key": "s1", "name": "s1", "cellIds": [7]}]},
                {"key": "Track_1", "children": [{"name": "A", "cellIds": []}]},
            ]
        })

        rebuild_metadata_cell_sets(collection, ["s1"], {"Track-1": ["A"]})

        assert _children(collection, "Track_1") == {"A": [7]}

    def test_missing_group_raises(self, cell_sets_document: dict[str, Any]) -> None:
        collection = CellSetCollection.from_dict(cell_sets_document)
        with pytest.raises(MalformedReferenceError, match="Condition"):
            rebuild_track(collection, "Condition", ["s2", "s1"], ["Y", "X"])

    def test_missing_value_child_raises(self, cell_sets_document: dict[str, Any]) -> None:
        collection = CellSetCollection.from_dict(cell_sets_document)
        with pytest.raises(MalformedReferenceError, match="Z"):
            rebuild_track(collection, "Group", ["s2", "s1"], ["Z", "X"])

    def test_missing_sample_child_raises(self, cell_sets_document: dict[str, Any]) -> None:
        collection = CellSetCollection.from_dict(cell_sets_document)
        with pytest.raises(MalformedReferenceError, match="s9"):
            rebuild_track(collection, "Group", ["s9", "s1"], ["Y", "X"])

    def test_value_count_mismatch_raises(self, cell_sets_document: dict[str, Any]) -> None:
        collection = CellSetCollection.from_dict(cell_sets_document)
        with pytest.raises(ValueError, match="2 samples"):
            rebuild_track(collection, "Group", ["s2", "s1"], ["Y"])
