from __future__ import annotations

import math
from typing import Iterable, List

from src.models.candidate import Candidate, SnapshotEntry


def _finite(value: float | None) -> bool:
    return value is not None and math.isfinite(value)


def _volume_key(candidate: Candidate) -> float:
    # Missing or non-finite volume ranks last.
    return candidate.day_volume if _finite(candidate.day_volume) else float("-inf")


def _passes(
    entry: SnapshotEntry,
    price_min: float,
    price_max: float,
    min_change_pct: float,
    min_volume: float,
) -> bool:
    if not entry.symbol:
        return False
    if not _finite(entry.price) or not _finite(entry.change_pct):
        return False
    if not price_min <= entry.price <= price_max:
        return False
    if entry.change_pct < min_change_pct:
        return False
    if min_volume > 0 and not (_finite(entry.day_volume) and entry.day_volume >= min_volume):
        return False
    return True


def select(
    entries: Iterable[SnapshotEntry],
    price_min: float,
    price_max: float,
    min_change_pct: float,
    max_count: int,
    min_volume: float = 0,
) -> List[Candidate]:
    """Cheap in-memory cut of the snapshot, highest day volume first.

    ``max_count <= 0`` leaves the list uncapped.
    """
    candidates = [
        Candidate.from_entry(entry)
        for entry in entries
        if _passes(entry, price_min, price_max, min_change_pct, min_volume)
    ]
    candidates.sort(key=_volume_key, reverse=True)
    if max_count > 0:
        candidates = candidates[:max_count]
    return candidates
