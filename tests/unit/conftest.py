import random

import pytest

from src.percolator.core.engine.execution import ExecutionEngine
from src.percolator.core.instruments import InstrumentRegistry
from src.percolator.core.ledger import Ledger
from src.percolator.core.tape.trade_tape import TradeTape
from src.percolator.market.price_cache import MarketPriceCache
from src.percolator.service import PaperTradingService
from src.percolator.stream.hub import BroadcastHub


@pytest.fixture
def instruments() -> InstrumentRegistry:
    return InstrumentRegistry()


@pytest.fixture
def prices() -> MarketPriceCache:
    """BTC at 50000, ETH at 3000."""
    cache = MarketPriceCache()
    cache.update_price("BTCUSDT", 50_000.0)
    cache.update_price("ETHUSDT", 3_000.0)
    return cache


@pytest.fixture
def ledger(instruments: InstrumentRegistry, prices: MarketPriceCache) -> Ledger:
    return Ledger(instruments=instruments, prices=prices, cash=10_000.0, leverage=10.0)


@pytest.fixture
def tape() -> TradeTape:
    return TradeTape(400)


@pytest.fixture
def hub(ledger: Ledger) -> BroadcastHub:
    # long interval: after the initial snapshot only queued events come out
    return BroadcastHub(snapshot_fn=ledger.snapshot, snapshot_interval_sec=60.0)


@pytest.fixture
def engine(ledger: Ledger, tape: TradeTape, hub: BroadcastHub) -> ExecutionEngine:
    tape.add_listener(hub.publish_trade)
    return ExecutionEngine(ledger=ledger, tape=tape, hub=hub)


@pytest.fixture
def service(
    instruments: InstrumentRegistry,
    prices: MarketPriceCache,
    ledger: Ledger,
    tape: TradeTape,
    hub: BroadcastHub,
) -> PaperTradingService:
    return PaperTradingService(
        instruments=instruments,
        prices=prices,
        ledger=ledger,
        tape=tape,
        hub=hub,
        rng=random.Random(7),
    )
