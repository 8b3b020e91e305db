"""
Tests for ambient prints
"""

import random
import time

import pytest

from src.percolator.core.instruments import InstrumentRegistry
from src.percolator.core.ledger import Ledger
from src.percolator.core.models.enums import TradeSource
from src.percolator.core.prints.ambient_prints import AmbientPrintGenerator, make_print
from src.percolator.core.tape.trade_tape import TradeTape
from src.percolator.market.price_cache import MarketPriceCache


def test_print_within_three_ticks(instruments: InstrumentRegistry) -> None:
    btc = instruments.get("BTCUSDT")
    rng = random.Random(11)

    for _ in range(500):
        tr = make_print(btc, 50_000.0, rng)
        assert abs(tr.price - 50_000.0) <= 3 * btc.tick + 1e-9
        assert btc.print_qty_min <= tr.qty <= btc.print_qty_max
        assert tr.source is TradeSource.AMBIENT


def test_both_sides_show_up(instruments: InstrumentRegistry) -> None:
    eth = instruments.get("ETHUSDT")
    rng = random.Random(3)
    sides = {make_print(eth, 3_000.0, rng).side for _ in range(100)}
    assert len(sides) == 2


def test_run_once_skips_symbols_without_price(instruments: InstrumentRegistry) -> None:
    cache = MarketPriceCache()
    cache.update_price("ETHUSDT", 3_000.0)
    tape = TradeTape(10)
    gen = AmbientPrintGenerator(instruments=instruments, prices=cache, tape=tape, rng=random.Random(1))

    out = gen.run_once()

    assert [t.symbol for t in out] == ["ETHUSDT"]
    assert len(tape) == 1


def test_no_prices_no_prints(instruments: InstrumentRegistry) -> None:
    tape = TradeTape(10)
    gen = AmbientPrintGenerator(instruments=instruments, prices=MarketPriceCache(), tape=tape)
    assert gen.run_once() == []
    assert len(tape) == 0


def test_prints_never_touch_the_ledger(
    instruments: InstrumentRegistry, prices: MarketPriceCache, ledger: Ledger, tape: TradeTape
) -> None:
    gen = AmbientPrintGenerator(instruments=instruments, prices=prices, tape=tape, rng=random.Random(9))
    for _ in range(20):
        gen.run_once()

    assert len(tape) == 40
    assert ledger.cash == 10_000.0
    assert all(p.qty == 0 for p in ledger.positions.values())


def test_thread_starts_and_stops(instruments: InstrumentRegistry, prices: MarketPriceCache) -> None:
    tape = TradeTape(100)
    gen = AmbientPrintGenerator(instruments=instruments, prices=prices, tape=tape, period_sec=0.01)

    gen.start()
    deadline = time.monotonic() + 2.0
    while len(tape) == 0 and time.monotonic() < deadline:
        time.sleep(0.01)
    gen.stop()
    gen.join(timeout=2.0)

    assert not gen.is_alive()
    assert len(tape) > 0


@pytest.mark.parametrize("mark", [0.5, 123_456.78])
def test_print_price_rounded(instruments: InstrumentRegistry, mark: float) -> None:
    btc = instruments.get("BTCUSDT")
    tr = make_print(btc, mark, random.Random(4))
    assert tr.price == round(tr.price, btc.price_decimals)
