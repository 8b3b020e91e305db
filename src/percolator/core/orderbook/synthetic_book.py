# src/percolator/core/orderbook/synthetic_book.py
from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, List, Optional

from src.percolator.core.instruments import Instrument

BOOK_LEVELS = 25
QTY_DECIMALS = 4

# level size = base_qty * U(low, high)
QTY_JITTER_LOW = 0.7
QTY_JITTER_HIGH = 1.6


@dataclass(frozen=True, slots=True)
class BookLevel:
    price: float
    qty: float

    def to_payload(self) -> dict[str, float]:
        return {"p": self.price, "q": self.qty}


@dataclass(frozen=True, slots=True)
class OrderBook:
    """
    asks: worst (farthest from mid) first, best last.
    bids: worst first, best bid last.
    """

    symbol: str
    mid: Optional[float]
    bids: List[BookLevel] = field(default_factory=list)
    asks: List[BookLevel] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "mid": self.mid,
            "bids": [lv.to_payload() for lv in self.bids],
            "asks": [lv.to_payload() for lv in self.asks],
        }


def generate_book(
    instrument: Instrument,
    mid: Optional[float],
    *,
    rng: random.Random | None = None,
    levels: int = BOOK_LEVELS,
) -> OrderBook:
    """
    Plausible bid/ask ladder around `mid`. No memory between calls.

    Prices are exact tick multiples away from mid (rounded to the
    instrument's price precision); sizes are random.
    """
    if mid is None:
        return OrderBook(symbol=instrument.symbol, mid=None)

    rng = rng or random.Random()
    tick = instrument.tick
    base = instrument.base_qty
    dp = instrument.price_decimals

    def _qty() -> float:
        return round(base * rng.uniform(QTY_JITTER_LOW, QTY_JITTER_HIGH), QTY_DECIMALS)

    asks: List[BookLevel] = []
    for i in range(levels, 0, -1):
        asks.append(BookLevel(price=round(mid + i * tick, dp), qty=_qty()))

    bids: List[BookLevel] = []
    for i in range(1, levels + 1):
        bids.append(BookLevel(price=round(mid - i * tick, dp), qty=_qty()))
    bids.reverse()

    return OrderBook(symbol=instrument.symbol, mid=mid, bids=bids, asks=asks)
