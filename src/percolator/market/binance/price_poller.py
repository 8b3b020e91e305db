# src/percolator/market/binance/price_poller.py
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Iterable, List

from src.percolator.market.price_cache import Candle, MarketPriceCache

logger = logging.getLogger(__name__)


def _ts_ms() -> int:
    return int(time.time() * 1000)


def parse_klines(payload: Any) -> List[Candle]:
    """
    Binance klines -> candles.
    payload = list[list]: [ open_time, open, high, low, close, volume, close_time, ... ]
    """
    out: List[Candle] = []
    if not payload:
        return out

    for k in payload:
        try:
            out.append(
                Candle(
                    t=int(k[0]),
                    o=float(k[1]),
                    h=float(k[2]),
                    l=float(k[3]),
                    c=float(k[4]),
                    v=float(k[5]),
                )
            )
        except (TypeError, ValueError, IndexError):
            # битые строки пропускаем
            continue
    return out


class PricePoller(threading.Thread):
    """
    ONE poller for all configured symbols.

    Ticker every `price_poll_sec`, klines every `candles_poll_sec`.
    Errors are logged per tick; the cache simply keeps its last values.
    """

    def __init__(
        self,
        *,
        rest,
        cache: MarketPriceCache,
        symbols: Iterable[str],
        price_poll_sec: float = 1.0,
        candles_poll_sec: float = 15.0,
        candle_interval: str = "1m",
        candle_limit: int = 500,
    ):
        super().__init__(daemon=True, name="PricePoller")
        self.rest = rest
        self.cache = cache
        self.symbols = list(symbols)
        self.price_poll_sec = float(price_poll_sec)
        self.candles_poll_sec = float(candles_poll_sec)
        self.candle_interval = candle_interval
        self.candle_limit = int(candle_limit)
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    # ------------------------------------------------------------------
    def prime(self) -> None:
        """One synchronous round at boot so the first requests see prices."""
        self._safe(self.poll_candles_once)
        self._safe(self.poll_prices_once)

    def run(self) -> None:
        logger.info(
            "[FEED] poller started: symbols=%s price_poll=%.1fs candles_poll=%.1fs",
            ",".join(self.symbols),
            self.price_poll_sec,
            self.candles_poll_sec,
        )

        next_candles = time.monotonic() + self.candles_poll_sec
        while not self._stop_event.is_set():
            self._safe(self.poll_prices_once)

            if time.monotonic() >= next_candles:
                self._safe(self.poll_candles_once)
                next_candles = time.monotonic() + self.candles_poll_sec

            self._stop_event.wait(self.price_poll_sec)

        logger.info("[FEED] poller stopped")

    # ------------------------------------------------------------------
    def poll_prices_once(self) -> int:
        rows = self.rest.ticker_prices() or []
        now = _ts_ms()
        wanted = set(self.symbols)

        updated = 0
        for row in rows:
            sym = row.get("symbol") if isinstance(row, dict) else None
            if sym not in wanted:
                continue
            if self.cache.update_price(sym, row.get("price"), observed_ms=now):
                updated += 1
        return updated

    def poll_candles_once(self) -> int:
        n = 0
        for sym in self.symbols:
            try:
                payload = self.rest.klines(sym, interval=self.candle_interval, limit=self.candle_limit)
            except Exception as e:
                logger.warning("[FEED] klines failed for %s: %s", sym, e)
                continue
            candles = parse_klines(payload)
            self.cache.set_candles(sym, candles)
            n += 1
        return n

    def _safe(self, fn) -> None:
        try:
            fn()
        except Exception as e:
            logger.warning("[FEED] %s failed: %s", fn.__name__, e)
