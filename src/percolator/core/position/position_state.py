# src/percolator/core/position/position_state.py
from __future__ import annotations

from dataclasses import dataclass

from src.percolator.core.models.enums import Side

# below this |qty| a position is considered flat (float dust after closes)
QTY_EPSILON = 1e-12


def _sign(x: float) -> int:
    if x > 0:
        return 1
    if x < 0:
        return -1
    return 0


@dataclass(slots=True)
class PositionState:
    symbol: str

    # signed quantity: +LONG / -SHORT
    qty: float = 0.0

    # entry price (avg); 0 while flat
    entry_price: float = 0.0

    # cumulative realized PnL on this symbol
    realized_pnl: float = 0.0

    last_ts_ms: int = 0

    @property
    def side(self) -> str:
        if self.qty > 0:
            return "LONG"
        if self.qty < 0:
            return "SHORT"
        return "FLAT"

    @property
    def is_flat(self) -> bool:
        return self.qty == 0

    # ------------------------------------------------------------------
    def apply_fill(self, *, side: Side, qty: float, price: float, ts_ms: int = 0) -> float:
        """
        Apply a market fill at `price` and return the PnL it realized.

        Caller validates qty > 0 and price; this only moves the position.
        """
        signed_qty = side.direction * qty

        prev_qty = self.qty
        prev_entry = self.entry_price
        new_qty = prev_qty + signed_qty
        if abs(new_qty) < QTY_EPSILON:
            new_qty = 0.0

        realized = 0.0

        # ------------------------------------------------------------
        # Flat -> open
        # ------------------------------------------------------------
        if prev_qty == 0:
            self.entry_price = price
            self.qty = new_qty

        # ------------------------------------------------------------
        # Same direction (increase)
        # ------------------------------------------------------------
        elif _sign(prev_qty) == _sign(new_qty):
            if _sign(signed_qty) == _sign(prev_qty):
                notional = abs(prev_qty) * prev_entry + qty * price
                self.entry_price = notional / abs(new_qty)
            # a reduce that leaves the same side keeps its entry
            else:
                closed_qty = min(qty, abs(prev_qty))
                realized = (price - prev_entry) * _sign(prev_qty) * closed_qty
            self.qty = new_qty

        # ------------------------------------------------------------
        # Reduce to flat / flip
        # ------------------------------------------------------------
        else:
            closed_qty = min(qty, abs(prev_qty))
            realized = (price - prev_entry) * _sign(prev_qty) * closed_qty
            self.qty = new_qty

            if self.qty == 0:
                self.entry_price = 0.0
            elif qty > closed_qty:  # flipped
                self.entry_price = price

        self.realized_pnl += realized
        if ts_ms:
            self.last_ts_ms = int(ts_ms)
        return realized
