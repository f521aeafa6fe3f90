"""Data models for cell-set documents.

A cell-set document is stored per experiment as
``{"cellSets": [{key, name, children: [{key, name, cellIds, ...}]}]}``.
Fields the migrations do not touch (``color``, ``rootNode``, ``type``, ...)
ride along in ``extra`` so a read/write cycle preserves them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from platform_migrations.errors import MalformedReferenceError

SAMPLE_CELL_SET_KEY = "sample"


@dataclass
class CellSetChild:
    """A single cell set: a group value and the cells belonging to it."""

    name: str
    cell_ids: list[Any] = field(default_factory=list)
    key: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CellSetChild:
        extra = {k: v for k, v in data.items() if k not in ("key", "name", "cellIds")}
        return cls(
            name=data["name"],
            cell_ids=list(data.get("cellIds", [])),
            key=data.get("key"),
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.key is not None:
            data["key"] = self.key
        data["name"] = self.name
        data.update(self.extra)
        data["cellIds"] = list(self.cell_ids)
        return data


@dataclass
class CellSet:
    """A cell set group (``sample``, ``louvain``, or a metadata track)."""

    key: str
    children: list[CellSetChild] = field(default_factory=list)
    name: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CellSet:
        extra = {k: v for k, v in data.items() if k not in ("key", "name", "children")}
        return cls(
            key=data["key"],
            children=[CellSetChild.from_dict(child) for child in data.get("children", [])],
            name=data.get("name"),
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"key": self.key}
        if self.name is not None:
            data["name"] = self.name
        data.update(self.extra)
        data["children"] = [child.to_dict() for child in self.children]
        return data

    def child_named(self, name: Any) -> CellSetChild:
        """Return the first child whose ``name`` equals ``name``."""
        for child in self.children:
            if child.name == name:
                return child
        raise MalformedReferenceError(f"Cell set '{self.key}' has no child named '{name}'")

    def sample_child(self, sample_id: str) -> CellSetChild:
        """Return the child holding a sample's cells.

        Sample children carry the sample id in ``key``; older documents only
        have it in ``name``.
        """
        for child in self.children:
            if child.key == sample_id:
                return child
        for child in self.children:
            if child.name == sample_id:
                return child
        raise MalformedReferenceError(f"Cell set '{self.key}' has no child for sample '{sample_id}'")


@dataclass
class CellSetCollection:
    """Ordered cell set groups of one experiment."""

    cell_sets: list[CellSet] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CellSetCollection:
        return cls(cell_sets=[CellSet.from_dict(cell_set) for cell_set in data["cellSets"]])

    def to_dict(self) -> dict[str, Any]:
        return {"cellSets": [cell_set.to_dict() for cell_set in self.cell_sets]}

    @property
    def keys(self) -> list[str]:
        return [cell_set.key for cell_set in self.cell_sets]

    def group(self, key: str) -> CellSet:
        """Return the group with the given key or fail loudly."""
        for cell_set in self.cell_sets:
            if cell_set.key == key:
                return cell_set
        raise MalformedReferenceError(f"No cell set with key '{key}' (available: {self.keys})")

    @property
    def samples(self) -> CellSet:
        return self.group(SAMPLE_CELL_SET_KEY)
