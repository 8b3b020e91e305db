# src/percolator/core/ledger/snapshot.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


def _num(x: Optional[float]) -> Optional[float]:
    # JSON has no Infinity/NaN
    if x is None or not math.isfinite(x):
        return None
    return float(x)


@dataclass(frozen=True, slots=True)
class PositionView:
    quantity: float
    entry_price: float
    side: str
    realized_pnl: float

    # None when the mark is unavailable for an open position
    unrealized_pnl: Optional[float]
    notional: Optional[float]
    liquidation_price: Optional[float]

    def to_payload(self) -> dict[str, Any]:
        return {
            "quantity": self.quantity,
            "entryPrice": self.entry_price,
            "side": self.side,
            "unrealizedPnl": _num(self.unrealized_pnl),
            "notional": _num(self.notional),
            "liquidationPrice": _num(self.liquidation_price),
            "realizedPnl": self.realized_pnl,
        }


@dataclass(frozen=True, slots=True)
class Snapshot:
    """
    Point-in-time projection of ledger + marks. Built fresh, never cached.

    Aggregates are None when an open position has no mark.
    margin_ratio is +inf with no open risk (encoded as null in payloads).
    """

    ts_ms: int
    prices: Dict[str, Optional[float]]
    cash: float
    equity: Optional[float]
    used_margin: Optional[float]
    margin_ratio: Optional[float]
    leverage: float
    positions: Dict[str, PositionView] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "timestamp": self.ts_ms,
            "prices": {s: _num(p) for s, p in self.prices.items()},
            "cash": self.cash,
            "equity": _num(self.equity),
            "usedMargin": _num(self.used_margin),
            "marginRatio": _num(self.margin_ratio),
            "leverage": self.leverage,
            "positions": {s: v.to_payload() for s, v in self.positions.items()},
        }
