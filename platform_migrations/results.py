"""Per-item outcomes and batch reports.

Jobs never raise for a single bad item. Each item ends as an ``ItemResult``
(success, skipped with a reason, or failed with a reason) and the results of
a batch are collected into a ``BatchReport`` returned to the caller.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ItemStatus(str, Enum):
    """Outcome of migrating one item."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ItemResult:
    """Outcome of migrating a single item (experiment, project, row)."""

    item_id: str
    status: ItemStatus
    reason: str | None = None
    detail: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, item_id: str, **detail: Any) -> ItemResult:
        return cls(item_id=item_id, status=ItemStatus.SUCCESS, detail=detail)

    @classmethod
    def skipped(cls, item_id: str, reason: str, **detail: Any) -> ItemResult:
        return cls(item_id=item_id, status=ItemStatus.SKIPPED, reason=reason, detail=detail)

    @classmethod
    def failed(cls, item_id: str, reason: str, **detail: Any) -> ItemResult:
        return cls(item_id=item_id, status=ItemStatus.FAILED, reason=reason, detail=detail)

    @property
    def ok(self) -> bool:
        """True unless the item failed."""
        return self.status is not ItemStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "item_id": self.item_id,
            "status": self.status.value,
            "reason": self.reason,
            "detail": self.detail,
        }


@dataclass
class BatchReport:
    """Collected outcomes of one batch run."""

    name: str
    results: list[ItemResult] = field(default_factory=list)
    started_at: float = field(default_factory=time.time)
    elapsed_seconds: float = 0.0

    def add(self, result: ItemResult) -> None:
        self.results.append(result)

    def extend(self, results: list[ItemResult]) -> None:
        self.results.extend(results)

    def finish(self) -> BatchReport:
        """Stamp the elapsed time and return self."""
        self.elapsed_seconds = time.time() - self.started_at
        return self

    @property
    def succeeded(self) -> list[ItemResult]:
        return [r for r in self.results if r.status is ItemStatus.SUCCESS]

    @property
    def skipped(self) -> list[ItemResult]:
        return [r for r in self.results if r.status is ItemStatus.SKIPPED]

    @property
    def failed(self) -> list[ItemResult]:
        return [r for r in self.results if r.status is ItemStatus.FAILED]

    @property
    def all_ok(self) -> bool:
        """True when no item failed."""
        return not self.failed

    def status_counts(self) -> dict[str, int]:
        """Number of results per status, every status present."""
        counts = {status.value: 0 for status in ItemStatus}
        for result in self.results:
            counts[result.status.value] += 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "status_counts": self.status_counts(),
            "elapsed_seconds": self.elapsed_seconds,
            "results": [r.to_dict() for r in self.results],
        }
