"""Merge engine for record collections.

Implements last-writer-wins by modification time with a notes-union
tie-break:

1. Records are keyed by ``value``; A is processed before B.
2. A newer ``last_modified`` replaces the kept record, notes included.
3. Equal ``last_modified`` with different incoming notes keeps the earlier
   record and joins the notes as ``"<kept> | <incoming>"``.
4. An older ``last_modified`` is dropped.

The result is ordered newest-created first (by ``timestamp``).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from itertools import chain

from addrsync.core.types import Record

NOTES_SEPARATOR = " | "


def normalize(record: Record, default: int | None = None) -> Record:
    """Return a copy of record with ``last_modified`` filled in.

    Args:
        record: Record to normalize.
        default: Value used when ``last_modified`` is missing
            (defaults to the record's timestamp).
    """
    if record.last_modified:
        return replace(record)
    fallback = record.timestamp if default is None else default
    return replace(record, last_modified=fallback)


def normalize_all(records: Iterable[Record], default: int | None = None) -> list[Record]:
    return [normalize(r, default) for r in records]


def join_notes(kept: str, incoming: str) -> str:
    """Join notes of two tied records.

    Incoming segments already present in the kept notes are not repeated,
    so merging an already-merged collection again leaves it unchanged.
    """
    # Segments already kept are skipped so re-merging never repeats notes
    segments = kept.split(NOTES_SEPARATOR)
    added = [s for s in incoming.split(NOTES_SEPARATOR) if s not in segments]
    if not added:
        return kept
    joined = NOTES_SEPARATOR.join([kept, *added]).strip()
    if joined.startswith("| "):
        joined = joined[2:]
    return joined


def merge_collections(collection_a: Iterable[Record], collection_b: Iterable[Record]) -> list[Record]:
    """Reconcile two collections into one.

    Args:
        collection_a: First collection (wins ties on record identity).
        collection_b: Second collection.

    Returns:
        Merged records, newest ``timestamp`` first.
    """
    merged: dict[str, Record] = {}

    for incoming in chain(collection_a, collection_b):
        kept = merged.get(incoming.value)

        if kept is None:
            merged[incoming.value] = normalize(incoming)
            continue

        kept_modified = kept.effective_modified
        incoming_modified = incoming.effective_modified

        if incoming_modified > kept_modified:
            merged[incoming.value] = normalize(incoming)
        elif (
            incoming_modified == kept_modified
            and incoming.notes
            and incoming.notes != kept.notes
        ):
            merged[incoming.value] = replace(kept, notes=join_notes(kept.notes, incoming.notes))

    return sorted(merged.values(), key=lambda r: r.timestamp, reverse=True)
