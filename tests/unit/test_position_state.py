"""
Tests for PositionState.apply_fill

Checks:
1. Flat -> open sets entry to the fill price
2. Same-direction adds keep a notional-weighted entry
3. Partial closes realize PnL and keep the entry
4. Flattening resets entry; flips re-open at the fill price
"""

import pytest

from src.percolator.core.models.enums import Side
from src.percolator.core.position import PositionState


class TestOpenAndAdd:
    def test_flat_to_open_long(self) -> None:
        pos = PositionState(symbol="BTCUSDT")
        realized = pos.apply_fill(side=Side.BUY, qty=0.1, price=50_000.0)

        assert realized == 0.0
        assert pos.qty == pytest.approx(0.1)
        assert pos.entry_price == 50_000.0
        assert pos.side == "LONG"

    def test_flat_to_open_short(self) -> None:
        pos = PositionState(symbol="ETHUSDT")
        pos.apply_fill(side=Side.SELL, qty=2.0, price=3_000.0)

        assert pos.qty == -2.0
        assert pos.entry_price == 3_000.0
        assert pos.side == "SHORT"

    def test_same_direction_add_is_weighted(self) -> None:
        pos = PositionState(symbol="BTCUSDT")
        pos.apply_fill(side=Side.BUY, qty=1.0, price=100.0)
        pos.apply_fill(side=Side.BUY, qty=3.0, price=200.0)

        # (1*100 + 3*200) / 4
        assert pos.qty == 4.0
        assert pos.entry_price == pytest.approx(175.0)

    @pytest.mark.parametrize("side", [Side.BUY, Side.SELL])
    def test_weighted_entry_over_many_fills(self, side: Side) -> None:
        fills = [(0.5, 101.0), (1.25, 99.5), (0.25, 104.0), (2.0, 100.25)]
        pos = PositionState(symbol="BTCUSDT")
        for qty, px in fills:
            pos.apply_fill(side=side, qty=qty, price=px)

        total_qty = sum(q for q, _ in fills)
        expected = sum(q * p for q, p in fills) / total_qty
        assert abs(pos.qty) == pytest.approx(total_qty)
        assert pos.entry_price == pytest.approx(expected)


class TestReduceAndFlip:
    def test_partial_close_long_realizes_and_keeps_entry(self) -> None:
        pos = PositionState(symbol="BTCUSDT")
        pos.apply_fill(side=Side.BUY, qty=2.0, price=100.0)

        realized = pos.apply_fill(side=Side.SELL, qty=0.5, price=120.0)

        assert realized == pytest.approx((120.0 - 100.0) * 1 * 0.5)
        assert pos.qty == pytest.approx(1.5)
        assert pos.entry_price == 100.0
        assert pos.realized_pnl == pytest.approx(10.0)

    def test_partial_close_short_realizes_with_sign(self) -> None:
        pos = PositionState(symbol="ETHUSDT")
        pos.apply_fill(side=Side.SELL, qty=2.0, price=100.0)

        realized = pos.apply_fill(side=Side.BUY, qty=1.0, price=90.0)

        assert realized == pytest.approx((90.0 - 100.0) * -1 * 1.0)
        assert pos.qty == pytest.approx(-1.0)
        assert pos.entry_price == 100.0

    def test_flatten_resets_entry(self) -> None:
        pos = PositionState(symbol="BTCUSDT")
        pos.apply_fill(side=Side.BUY, qty=0.1, price=50_000.0)

        realized = pos.apply_fill(side=Side.SELL, qty=0.1, price=51_000.0)

        assert realized == pytest.approx(100.0)
        assert pos.qty == 0.0
        assert pos.entry_price == 0.0
        assert pos.side == "FLAT"
        assert pos.is_flat

    def test_fill_after_flatten_behaves_as_open(self) -> None:
        pos = PositionState(symbol="BTCUSDT")
        pos.apply_fill(side=Side.BUY, qty=0.1, price=50_000.0)
        pos.apply_fill(side=Side.SELL, qty=0.1, price=51_000.0)

        realized = pos.apply_fill(side=Side.SELL, qty=0.2, price=60_000.0)

        assert realized == 0.0
        assert pos.qty == pytest.approx(-0.2)
        assert pos.entry_price == 60_000.0

    def test_flip_realizes_closed_part_and_reopens_at_fill(self) -> None:
        pos = PositionState(symbol="BTCUSDT")
        pos.apply_fill(side=Side.BUY, qty=1.0, price=100.0)

        realized = pos.apply_fill(side=Side.SELL, qty=3.0, price=110.0)

        assert realized == pytest.approx(10.0)
        assert pos.qty == pytest.approx(-2.0)
        assert pos.entry_price == 110.0

    def test_float_dust_snaps_to_flat(self) -> None:
        pos = PositionState(symbol="BTCUSDT")
        pos.apply_fill(side=Side.BUY, qty=0.1, price=100.0)
        pos.apply_fill(side=Side.BUY, qty=0.2, price=100.0)

        pos.apply_fill(side=Side.SELL, qty=0.3, price=100.0)

        assert pos.qty == 0.0
        assert pos.entry_price == 0.0

    def test_timestamp_recorded(self) -> None:
        pos = PositionState(symbol="BTCUSDT")
        pos.apply_fill(side=Side.BUY, qty=1.0, price=1.0, ts_ms=1_700_000_000_000)
        assert pos.last_ts_ms == 1_700_000_000_000
