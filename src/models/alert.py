from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Alert(Base):
    __tablename__ = "alerts"
    __table_args__ = (Index("ix_alerts_symbol_created_at", "symbol", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    symbol: Mapped[str] = mapped_column(String(16))
    price: Mapped[float] = mapped_column(Float)
    change_pct: Mapped[float] = mapped_column(Float)
    day_volume: Mapped[float | None] = mapped_column(Float, nullable=True)
    rvol: Mapped[float] = mapped_column(Float)
    float_shares: Mapped[int] = mapped_column(Integer)
    has_news: Mapped[bool] = mapped_column(Boolean, default=False)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "price": self.price,
            "change_pct": self.change_pct,
            "day_volume": self.day_volume,
            "rvol": self.rvol,
            "float_shares": self.float_shares,
            "has_news": self.has_news,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
