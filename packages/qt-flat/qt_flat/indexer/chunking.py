"""Partitioning of attribute columns into join batches."""

from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")


def chunk_attributes(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into ordered chunks of at most ``size`` elements.

    The last chunk holds the remainder. An empty sequence gives no chunks.

    Raises:
        ValueError: If ``size`` is less than 1.
    """
    if size < 1:
        raise ValueError(f"Chunk size must be at least 1, got {size}")
    items = list(items)
    return [items[i:i + size] for i in range(0, len(items), size)]
