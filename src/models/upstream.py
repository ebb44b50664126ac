"""Polygon payload shapes.

Every field is optional: the snapshot and reference endpoints routinely omit
blocks (no trade yet today, no shares outstanding on file). Normalization to
the internal shapes keeps those gaps as ``None``.
"""
from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from src.models.candidate import SnapshotEntry
from src.utils.math import is_positive_finite


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TradeBlock(_Payload):
    p: float | None = None


class DayBlock(_Payload):
    c: float | None = None
    v: float | None = None


class TickerSnapshot(_Payload):
    ticker: str | None = None
    todays_change_perc: float | None = Field(default=None, alias="todaysChangePerc")
    last_trade: TradeBlock | None = Field(default=None, alias="lastTrade")
    day: DayBlock | None = None
    min: DayBlock | None = None
    prev_day: DayBlock | None = Field(default=None, alias="prevDay")

    def to_entry(self) -> SnapshotEntry:
        price = self.last_trade.p if self.last_trade else None
        if price is None and self.day is not None and is_positive_finite(self.day.c):
            price = self.day.c
        if price is None and self.min is not None:
            price = self.min.c
        volume = self.day.v if self.day else None
        return SnapshotEntry(
            symbol=(self.ticker or "").strip().upper(),
            price=price,
            change_pct=self.todays_change_perc,
            day_volume=volume,
        )


class SnapshotPage(_Payload):
    tickers: List[TickerSnapshot] = Field(default_factory=list)
    results: List[TickerSnapshot] = Field(default_factory=list)
    next_url: str | None = None

    def entries(self) -> List[SnapshotEntry]:
        return [t.to_entry() for t in (self.tickers or self.results)]


class DailyBar(_Payload):
    t: int | None = None
    v: float | None = None


class ReferenceInfo(_Payload):
    ticker: str | None = None
    float_shares: float | None = None
    share_class_shares_outstanding: float | None = None
    weighted_shares_outstanding: float | None = None

    def float_estimate(self) -> float | None:
        """Free float when reported, otherwise the closest shares-outstanding figure."""
        for value in (
            self.float_shares,
            self.share_class_shares_outstanding,
            self.weighted_shares_outstanding,
        ):
            if is_positive_finite(value):
                return float(value)
        return None
