"""Merging of per-feed event sequences."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from wildfeed.models.events import Event


def merge_descending(a: Sequence[Event], b: Sequence[Event]) -> list[Event]:
    """Merge two sequences that are each sorted newest first.

    On equal timestamps the element from *b* is emitted first. Nothing is
    dropped or deduplicated.
    """
    merged: list[Event] = []
    i = j = 0
    while i < len(a) and j < len(b):
        if a[i].timestamp > b[j].timestamp:
            merged.append(a[i])
            i += 1
        else:
            merged.append(b[j])
            j += 1
    merged.extend(a[i:])
    merged.extend(b[j:])
    return merged


def merge_all(sequences: Iterable[Sequence[Event]]) -> list[Event]:
    """Fold :func:`merge_descending` over *sequences* in the given order."""
    merged: list[Event] = []
    for sequence in sequences:
        merged = merge_descending(merged, sequence)
    return merged
