# src/percolator/core/engine/execution.py
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Optional

from src.percolator.core.errors import InsufficientMargin, InvalidQuantity, InvalidSide
from src.percolator.core.ledger import Ledger, Snapshot
from src.percolator.core.models.enums import Side, TradeSource
from src.percolator.core.models.trade import Fill, Trade
from src.percolator.core.tape.trade_tape import TradeTape
from src.percolator.stream.hub import BroadcastHub


def _ts_ms() -> int:
    return int(time.time() * 1000)


def _parse_side(side: object) -> Side:
    if isinstance(side, Side):
        return side
    if isinstance(side, str):
        try:
            return Side(side.strip().lower())
        except ValueError:
            pass
    raise InvalidSide(side)


def _parse_qty(qty: object) -> float:
    # bool is an int subclass; "true" is not a size
    if isinstance(qty, bool) or not isinstance(qty, (int, float)):
        raise InvalidQuantity(qty)
    q = float(qty)
    if not math.isfinite(q) or q <= 0:
        raise InvalidQuantity(qty)
    return q


@dataclass(frozen=True, slots=True)
class OrderResult:
    """Fill plus the snapshot taken in the same critical section."""

    fill: Fill
    snapshot: Snapshot


class ExecutionEngine:
    """
    Market orders against the ledger at the current mark.

    validate -> mutate -> tape append -> snapshot run as one unit under
    ledger.lock, so two orders can never both pass the margin check on
    the same cash. All-or-nothing: a failed check mutates nothing and
    publishes nothing.
    """

    def __init__(
        self,
        *,
        ledger: Ledger,
        tape: TradeTape,
        hub: Optional[BroadcastHub] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.ledger = ledger
        self.tape = tape
        self.hub = hub
        self.logger = logger or logging.getLogger(__name__)

    def execute(self, symbol: str, side: object, qty: object) -> Fill:
        return self.execute_order(symbol, side, qty).fill

    def execute_order(self, symbol: str, side: object, qty: object) -> OrderResult:
        ledger = self.ledger

        with ledger.lock:
            # ---------------- preconditions (in order) ----------------
            pos = ledger.position(symbol)          # UnsupportedSymbol
            s = _parse_side(side)                  # InvalidSide
            q = _parse_qty(qty)                    # InvalidQuantity
            px = ledger.mark_price(symbol)         # PriceUnavailable

            # raw cash, not free margin net of existing exposure
            required = ledger.required_margin(q, px)
            if required > ledger.cash:
                raise InsufficientMargin(required=required, cash=ledger.cash)

            # ---------------- mutate ----------------
            ts = _ts_ms()
            realized = pos.apply_fill(side=s, qty=q, price=px, ts_ms=ts)
            ledger.cash += realized

            fill = Fill(symbol=symbol, side=s, price=px, qty=q, realized_pnl=realized, ts_ms=ts)

            # trade event goes out through the tape listener
            self.tape.insert(
                Trade(symbol=symbol, side=s, price=px, qty=q, ts_ms=ts, source=TradeSource.FILL)
            )
            snap = ledger.snapshot()
            new_qty, new_entry = pos.qty, pos.entry_price

        self.logger.info(
            "[ENGINE] fill %s %s qty=%s px=%.2f realized=%.2f -> pos=%s entry=%.2f cash=%.2f",
            symbol,
            s.value,
            q,
            px,
            realized,
            new_qty,
            new_entry,
            snap.cash,
        )

        if self.hub is not None:
            self.hub.publish_snapshot(snap)

        return OrderResult(fill=fill, snapshot=snap)
