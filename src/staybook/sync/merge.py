"""Per-key last-writer-wins merge of a local row set into a remote snapshot.

Rows another writer added since our fetch survive; for a key present on
both sides the local row replaces the remote one. Remote order is kept,
keys only known locally are appended in local order. Merging the same
local rows twice yields the same result as merging once.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from typing import TypeVar

T = TypeVar("T")


def merge_records(
    remote: Iterable[T],
    local: Iterable[T],
    key: Callable[[T], Hashable],
) -> list[T]:
    """Overlay *local* onto *remote* by *key* and flatten."""
    merged: dict[Hashable, T] = {}
    for record in remote:
        merged[key(record)] = record
    for record in local:
        merged[key(record)] = record
    return list(merged.values())
