"""Bounded fan-out for per-item migration work."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def run_bounded(
    func: Callable[[T], R],
    items: Iterable[T],
    max_in_flight: int,
) -> list[R]:
    """Apply ``func`` to every item with at most ``max_in_flight`` running.

    Results come back in input order regardless of completion order. An
    exception raised by ``func`` propagates once every submitted item has
    finished; callers that must not fail wrap their work so it returns a
    result instead.
    """
    if max_in_flight < 1:
        raise ValueError(f"max_in_flight must be positive, got {max_in_flight}")

    items = list(items)
    if not items:
        return []

    results: list[R | None] = [None] * len(items)
    first_error: BaseException | None = None

    with ThreadPoolExecutor(max_workers=min(max_in_flight, len(items))) as executor:
        future_to_index = {executor.submit(func, item): index for index, item in enumerate(items)}

        for future in as_completed(future_to_index):
            index = future_to_index[future]
            try:
                results[index] = future.result()
            except Exception as e:
                logger.debug(f"Item {index} raised {e!r}")
                if first_error is None:
                    first_error = e

    if first_error is not None:
        raise first_error

    return results  # type: ignore[return-value]
