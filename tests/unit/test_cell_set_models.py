"""Unit tests for cell-set document models."""

from __future__ import annotations

from typing import Any

import pytest

from platform_migrations.cell_sets.models import CellSet, CellSetChild, CellSetCollection
from platform_migrations.errors import MalformedReferenceError


class TestCellSetChild:

    def test_preserves_untouched_fields(self) -> None:
        data = {"key": "louvain-0", "name": "Cluster 0", "color": "#77aadd", "cellIds": [1, 2]}
        child = CellSetChild.from_dict(data)

        assert child.extra == {"color": "#77aadd"}
        assert child.to_dict() == data

    def test_missing_cell_ids_default_to_empty(self) -> None:
        child = CellSetChild.from_dict({"name": "X"})
        assert child.cell_ids == []
        assert child.key is None
        assert "key" not in child.to_dict()


class TestCellSet:

    @pytest.fixture
    def sample_group(self) -> CellSet:
        return CellSet.from_dict({
            "key": "sample",
            "children": [
                {"key": "s1", "name": "Sample 1", "cellIds": [1]},
                {"name": "s2", "cellIds": [2]},
            ],
        })

    def test_sample_child_matches_key(self, sample_group: CellSet) -> None:
        assert sample_group.sample_child("s1").cell_ids == [1]

    def test_sample_child_falls_back_to_name(self, sample_group: CellSet) -> None:
        assert sample_group.sample_child("s2").cell_ids == [2]

    def test_sample_child_missing_raises(self, sample_group: CellSet) -> None:
        with pytest.raises(MalformedReferenceError):
            sample_group.sample_child("s3")

    def test_child_named_missing_raises(self, sample_group: CellSet) -> None:
        with pytest.raises(MalformedReferenceError, match="no child named"):
            sample_group.child_named("Nope")


class TestCellSetCollection:

    def test_round_trip_keeps_document(self, cell_sets_document: dict[str, Any]) -> None:
        collection = CellSetCollection.from_dict(cell_sets_document)
        assert collection.to_dict() == cell_sets_document

    def test_keys_in_document_order(self, cell_sets_document: dict[str, Any]) -> None:
        collection = CellSetCollection.from_dict(cell_sets_document)
        assert collection.keys == ["louvain", "sample", "Group"]

    def test_samples_group(self, cell_sets_document: dict[str, Any]) -> None:
        collection = CellSetCollection.from_dict(cell_sets_document)
        assert [child.key for child in collection.samples.children] == ["s1", "s2"]

    def test_missing_group_raises(self) -> None:
        collection = CellSetCollection.from_dict({"cellSets": []})
        with pytest.raises(MalformedReferenceError, match="sample"):
            _ = collection.samples
