# src/percolator/service.py
from __future__ import annotations

import logging
import random
from typing import Dict, List, Optional

from src.percolator.core.engine.execution import ExecutionEngine, OrderResult
from src.percolator.core.errors import PaperTradingError
from src.percolator.core.instruments import InstrumentRegistry
from src.percolator.core.ledger import Ledger, Snapshot
from src.percolator.core.models.trade import Trade
from src.percolator.core.orderbook.synthetic_book import OrderBook, generate_book
from src.percolator.core.tape.trade_tape import TradeTape
from src.percolator.market.price_cache import Candle, MarketPriceCache, PriceTick
from src.percolator.settings import SimulatorConfig
from src.percolator.stream.hub import BroadcastHub, Subscription


class PaperTradingService:
    """
    Operation contracts exposed to the request layer.

    Owns the wiring: every tape insertion (fill or ambient print) is pushed
    to the hub as a trade event.
    """

    def __init__(
        self,
        *,
        instruments: InstrumentRegistry,
        prices: MarketPriceCache,
        ledger: Ledger,
        tape: TradeTape,
        hub: BroadcastHub,
        rng: random.Random | None = None,
        trades_default_limit: int = 120,
        logger: logging.Logger | None = None,
    ) -> None:
        self.instruments = instruments
        self.prices = prices
        self.ledger = ledger
        self.tape = tape
        self.hub = hub
        self.rng = rng or random.Random()
        self.trades_default_limit = int(trades_default_limit)
        self.logger = logger or logging.getLogger("src.percolator.service")

        self.engine = ExecutionEngine(ledger=ledger, tape=tape, hub=hub)
        tape.add_listener(hub.publish_trade)

    # ------------------------------------------------------------------
    @classmethod
    def from_config(
        cls,
        cfg: SimulatorConfig,
        *,
        prices: MarketPriceCache,
        rng: random.Random | None = None,
    ) -> "PaperTradingService":
        instruments = InstrumentRegistry(cfg.instruments)
        ledger = Ledger(
            instruments=instruments,
            prices=prices,
            cash=cfg.ledger.cash,
            leverage=cfg.ledger.leverage,
            initial_margin_rate=cfg.ledger.initial_margin_rate,
            maintenance_margin_rate=cfg.ledger.maintenance_margin_rate,
        )
        hub = BroadcastHub(
            snapshot_fn=ledger.snapshot,
            snapshot_interval_sec=cfg.stream.snapshot_interval_sec,
            max_queue=cfg.stream.queue_size,
        )
        return cls(
            instruments=instruments,
            prices=prices,
            ledger=ledger,
            tape=TradeTape(cfg.tape_capacity),
            hub=hub,
            rng=rng,
            trades_default_limit=cfg.trades_default_limit,
        )

    # ------------------------------------------------------------------
    # orders / portfolio
    # ------------------------------------------------------------------
    def place_order(self, symbol: str, side: object, qty: object) -> OrderResult:
        try:
            return self.engine.execute_order(symbol, side, qty)
        except PaperTradingError as e:
            self.logger.info("[ORDER] rejected %s %s qty=%r: %s", symbol, side, qty, e)
            raise

    def get_snapshot(self) -> Snapshot:
        return self.ledger.snapshot()

    # ------------------------------------------------------------------
    # market views
    # ------------------------------------------------------------------
    def get_order_book(self, symbol: str) -> OrderBook:
        inst = self.instruments.get(symbol)
        tick = self.prices.current_price(symbol)
        return generate_book(inst, tick.price if tick is not None else None, rng=self.rng)

    def get_trades(self, symbol: Optional[str] = None, limit: Optional[int] = None) -> List[Trade]:
        if symbol:
            self.instruments.get(symbol)
        return self.tape.recent(symbol, self.trades_default_limit if limit is None else limit)

    def get_tickers(self) -> Dict[str, Optional[PriceTick]]:
        return self.prices.tickers(self.instruments.symbols)

    def get_candles(self, symbol: str) -> List[Candle]:
        self.instruments.get(symbol)
        return self.prices.candles(symbol)

    # ------------------------------------------------------------------
    # streaming
    # ------------------------------------------------------------------
    def subscribe(self) -> Subscription:
        return self.hub.subscribe()

    def unsubscribe(self, sub: Subscription) -> None:
        self.hub.unsubscribe(sub)
