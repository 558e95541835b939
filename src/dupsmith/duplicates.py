"""
Duplicate-related helpers for dupsmith.

Includes:
- count_duplicates_sorted: generic iterable duplicate counter
- row_digest: SHA-256 digest of a row's key-field values
- DigestGroups: thread-safe digest -> row-index aggregation
- group_rows / find_duplicate_groups: parallel grouping into duplicate groups
- summarize / limit_groups: aggregate counts and group limiting
"""

from __future__ import annotations

import logging
import os
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from hashlib import sha256
from typing import Hashable, Iterable, List, Optional, Sequence, Tuple

from .config import FIELD_SEPARATOR, GROUP_ORDERS
from .errors import NoValidFieldsError
from .model import DuplicateGroup, Row, render_value

logger = logging.getLogger(__name__)


def count_duplicates_sorted(
    items: Iterable[Hashable],
    threshold: int = 2,
    reverse: bool = True,
) -> List[Tuple[Hashable, int]]:
    """
    Count occurrences in an iterable and return items whose frequency
    is at or above `threshold`, sorted by count.

    Ties keep first-seen order.
    """
    counter = Counter(items)
    duplicates = [(k, v) for k, v in counter.items() if v >= threshold]
    duplicates.sort(key=lambda x: x[1], reverse=reverse)
    return duplicates


def row_digest(row: Row, key_fields: Sequence[str]) -> str:
    """
    SHA-256 hex digest of a row's key-field values.

    Each value is rendered through its display projection (null as
    ``"NULL"``) and followed by the ASCII "Unit Separator" (0x1F), so that
    ``["ab", "c"]`` and ``["a", "bc"]`` never share a buffer. The same
    ``key_fields`` sequence must be used for every row of a run.
    """
    buf = "".join(render_value(row.get(f)) + FIELD_SEPARATOR for f in key_fields)
    return sha256(buf.encode("utf-8")).hexdigest()


class DigestGroups:
    """
    Digest -> row indices, safe for concurrent writers.

    One lock guards the whole check-then-insert-or-append step. Readers call
    :meth:`snapshot` only after every writer has finished.
    """

    def __init__(self) -> None:
        self._groups: dict[str, list[int]] = {}
        self._lock = threading.Lock()

    def add(self, digest: str, index: int) -> None:
        with self._lock:
            members = self._groups.get(digest)
            if members is None:
                self._groups[digest] = [index]
            else:
                members.append(index)

    def snapshot(self) -> dict[str, list[int]]:
        with self._lock:
            return {k: list(v) for k, v in self._groups.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._groups)


@dataclass(frozen=True)
class GroupingResult:
    groups: list[DuplicateGroup]
    total_rows: int
    distinct_keys: int

    @property
    def singleton_keys(self) -> int:
        return self.distinct_keys - len(self.groups)


@dataclass(frozen=True)
class DuplicateSummary:
    group_count: int
    total_duplicate_records: int


def _chunk_ranges(n: int, parts: int) -> list[range]:
    size = max(1, -(-n // parts))
    return [range(start, min(start + size, n)) for start in range(0, n, size)]


def _digest_chunk(
    rows: Sequence[Row],
    indices: range,
    key_fields: tuple[str, ...],
    aggregator: DigestGroups,
) -> int:
    for i in indices:
        aggregator.add(row_digest(rows[i], key_fields), i)
    return len(indices)


def group_rows(
    rows: Sequence[Row],
    key_fields: Sequence[str],
    *,
    workers: Optional[int] = None,
    order: str = "first-seen",
    aggregator: Optional[DigestGroups] = None,
) -> GroupingResult:
    """
    Partition ``rows`` by key digest and keep groups of two or more.

    Args:
        rows:
            Fully materialized rows, in input order.
        key_fields:
            Resolved key field list; must not be empty.
        workers:
            Number of digest workers. None uses the CPU count; 1 (or fewer)
            runs in the calling thread. Results are identical either way.
        order:
            "first-seen": groups ordered by their earliest member's input
            position. "digest": groups ordered lexicographically by digest.
        aggregator:
            Optional pre-built aggregation map; must be empty.

    Returns:
        GroupingResult with members of each group in input order.
    """
    if order not in GROUP_ORDERS:
        raise ValueError(f"order must be one of {GROUP_ORDERS}, got {order!r}")
    keys = tuple(key_fields)
    if not keys:
        raise NoValidFieldsError("No valid fields to check for duplicates.")

    agg = aggregator if aggregator is not None else DigestGroups()
    if len(agg):
        raise ValueError("aggregator must be empty")
    n = len(rows)
    n_workers = workers if workers is not None else (os.cpu_count() or 1)
    n_workers = max(1, min(n_workers, n or 1))

    logger.debug("Digesting %d rows with %d worker(s)", n, n_workers)

    if n_workers == 1:
        _digest_chunk(rows, range(n), keys, agg)
    else:
        with ThreadPoolExecutor(max_workers=n_workers) as ex:
            futures = [
                ex.submit(_digest_chunk, rows, chunk, keys, agg)
                for chunk in _chunk_ranges(n, n_workers)
            ]
            for fut in as_completed(futures):
                fut.result()

    mapping = agg.snapshot()

    found: list[tuple[int, DuplicateGroup]] = []
    for digest, indices in mapping.items():
        if len(indices) < 2:
            continue
        indices.sort()
        found.append((indices[0], DuplicateGroup(digest, tuple(rows[i] for i in indices))))

    if order == "digest":
        found.sort(key=lambda item: item[1].digest)
    else:
        found.sort(key=lambda item: item[0])
    groups = [g for _, g in found]

    return GroupingResult(groups=groups, total_rows=n, distinct_keys=len(mapping))


def find_duplicate_groups(
    rows: Sequence[Row],
    key_fields: Sequence[str],
    **kwargs,
) -> list[DuplicateGroup]:
    """Convenience wrapper returning only the duplicate groups."""
    return group_rows(rows, key_fields, **kwargs).groups


def summarize(groups: Sequence[DuplicateGroup]) -> DuplicateSummary:
    """Group count and rows beyond the first in every group."""
    return DuplicateSummary(
        group_count=len(groups),
        total_duplicate_records=sum(g.count - 1 for g in groups),
    )


def limit_groups(
    groups: Sequence[DuplicateGroup],
    limit: int,
) -> Tuple[list[DuplicateGroup], int]:
    """
    Keep the first ``limit`` groups.

    A limit of zero or less means unlimited. Returns ``(kept, elided)``.
    """
    if limit > 0 and len(groups) > limit:
        return list(groups[:limit]), len(groups) - limit
    return list(groups), 0
