# src/percolator/core/models/trade.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from src.percolator.core.models.enums import Side, TradeSource


# ------------------------------------------------------------
# Trade (tape entry)
# ------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Trade:
    """
    Immutable tape record. Real fills and ambient prints share this shape.
    """

    symbol: str
    side: Side
    price: float
    qty: float
    ts_ms: int
    source: TradeSource = TradeSource.FILL

    # --------------------------------------------------------
    def to_payload(self) -> dict[str, Any]:
        """Serialize for JSON / SSE."""
        return {
            "symbol": self.symbol,
            "side": self.side.value,
            "price": float(self.price),
            "quantity": float(self.qty),
            "timestamp": int(self.ts_ms),
            "source": self.source.value,
        }


# ------------------------------------------------------------
# Fill (execution result)
# ------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Fill:
    symbol: str
    side: Side
    price: float
    qty: float
    realized_pnl: float
    ts_ms: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "side": self.side.value,
            "price": float(self.price),
            "quantity": float(self.qty),
            "realizedPnl": float(self.realized_pnl),
            "timestamp": int(self.ts_ms),
        }
