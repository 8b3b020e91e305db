# src/percolator/core/prints/ambient_prints.py
from __future__ import annotations

import logging
import random
import threading
import time
from typing import List

from src.percolator.core.instruments import Instrument, InstrumentRegistry
from src.percolator.core.models.enums import Side, TradeSource
from src.percolator.core.models.trade import Trade
from src.percolator.core.tape.trade_tape import TradeTape
from src.percolator.market.price_cache import MarketPriceCache

logger = logging.getLogger(__name__)

# prints land within +/- PRINT_SPREAD_TICKS of the mark
PRINT_SPREAD_TICKS = 3


def _ts_ms() -> int:
    return int(time.time() * 1000)


def make_print(instrument: Instrument, mark: float, rng: random.Random) -> Trade:
    tick = instrument.tick
    price = round(mark + (rng.random() - 0.5) * tick * 2 * PRINT_SPREAD_TICKS, instrument.price_decimals)
    side = Side.BUY if rng.random() > 0.5 else Side.SELL
    qty = round(
        rng.uniform(instrument.print_qty_min, instrument.print_qty_max),
        instrument.print_qty_decimals,
    )
    return Trade(
        symbol=instrument.symbol,
        side=side,
        price=price,
        qty=qty,
        ts_ms=_ts_ms(),
        source=TradeSource.AMBIENT,
    )


class AmbientPrintGenerator(threading.Thread):
    """
    Keeps the tape visibly alive with small synthetic prints.

    Goes straight to the tape: never touches the ledger.
    """

    def __init__(
        self,
        *,
        instruments: InstrumentRegistry,
        prices: MarketPriceCache,
        tape: TradeTape,
        period_sec: float = 1.2,
        rng: random.Random | None = None,
    ):
        super().__init__(daemon=True, name="AmbientPrints")
        self.instruments = instruments
        self.prices = prices
        self.tape = tape
        self.period_sec = float(period_sec)
        self.rng = rng or random.Random()
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def run(self) -> None:
        logger.info("[PRINTS] started (period=%.2fs)", self.period_sec)
        while not self._stop_event.wait(self.period_sec):
            try:
                self.run_once()
            except Exception as e:
                logger.exception("[PRINTS] tick error: %s", e)
        logger.info("[PRINTS] stopped")

    def run_once(self) -> List[Trade]:
        out: List[Trade] = []
        for inst in self.instruments:
            tick = self.prices.current_price(inst.symbol)
            if tick is None:
                continue
            trade = make_print(inst, tick.price, self.rng)
            self.tape.insert(trade)
            out.append(trade)
        return out
