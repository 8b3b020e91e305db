# src/percolator/market/price_cache.py
from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional


def _ts_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class PriceTick:
    price: float
    observed_ms: int

    def to_payload(self) -> dict:
        return {"price": self.price, "ts": self.observed_ms}


@dataclass(frozen=True, slots=True)
class Candle:
    t: int
    o: float
    h: float
    l: float
    c: float
    v: float

    def to_payload(self) -> dict:
        return {"t": self.t, "o": self.o, "h": self.h, "l": self.l, "c": self.c, "v": self.v}


class MarketPriceCache:
    """
    Last observed spot price + 1m candles per symbol.

    Written by the feed poller, read by the ledger / book / prints.
    `stale_after_sec` (optional) makes an old tick read as absent;
    the core never applies its own staleness rule.
    """

    def __init__(
        self,
        *,
        stale_after_sec: float | None = None,
        clock_ms: Callable[[], int] = _ts_ms,
    ) -> None:
        self.stale_after_sec = stale_after_sec
        self._clock_ms = clock_ms
        self._lock = threading.Lock()
        self._ticks: Dict[str, PriceTick] = {}
        self._candles: Dict[str, List[Candle]] = {}

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    def update_price(self, symbol: str, price: float, observed_ms: int | None = None) -> bool:
        """
        Returns False (and stores nothing) for non-finite / non-positive prices.
        """
        try:
            px = float(price)
        except (TypeError, ValueError):
            return False
        if not math.isfinite(px) or px <= 0:
            return False

        tick = PriceTick(price=px, observed_ms=int(observed_ms if observed_ms is not None else self._clock_ms()))
        with self._lock:
            self._ticks[symbol] = tick
        return True

    def set_candles(self, symbol: str, candles: Iterable[Candle]) -> None:
        rows = list(candles)
        with self._lock:
            self._candles[symbol] = rows

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def current_price(self, symbol: str) -> Optional[PriceTick]:
        with self._lock:
            tick = self._ticks.get(symbol)
        if tick is None:
            return None
        if self.stale_after_sec is not None:
            age_ms = self._clock_ms() - tick.observed_ms
            if age_ms > self.stale_after_sec * 1000:
                return None
        return tick

    def tickers(self, symbols: Iterable[str]) -> Dict[str, Optional[PriceTick]]:
        with self._lock:
            return {s: self._ticks.get(s) for s in symbols}

    def candles(self, symbol: str) -> List[Candle]:
        with self._lock:
            return list(self._candles.get(symbol) or [])
