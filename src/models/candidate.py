from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SnapshotEntry:
    symbol: str
    price: float | None
    change_pct: float | None
    day_volume: float | None


@dataclass(frozen=True)
class Candidate:
    symbol: str
    price: float
    change_pct: float
    day_volume: float | None

    @classmethod
    def from_entry(cls, entry: SnapshotEntry) -> "Candidate":
        return cls(
            symbol=entry.symbol,
            price=float(entry.price),
            change_pct=float(entry.change_pct),
            day_volume=entry.day_volume,
        )
