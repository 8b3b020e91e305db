# src/percolator/core/ledger/ledger.py
from __future__ import annotations

import threading
import time
from typing import Dict, Optional

from src.percolator.core.errors import PriceUnavailable
from src.percolator.core.instruments import InstrumentRegistry
from src.percolator.core.ledger.snapshot import PositionView, Snapshot
from src.percolator.core.position import PositionState
from src.percolator.market.price_cache import MarketPriceCache


def _ts_ms() -> int:
    return int(time.time() * 1000)


class Ledger:
    """
    Cash + one PositionState per symbol, marked against the price cache.

    Responsibilities:
      ✔ margin / equity / liquidation reads
      ✔ consistent snapshots (taken under `lock`)
      ✖ NO order validation (ExecutionEngine)
      ✖ NO persistence

    `lock` is the single exclusion scope for mutations; ExecutionEngine holds it
    across validate -> mutate -> tape append -> snapshot.
    """

    def __init__(
        self,
        *,
        instruments: InstrumentRegistry,
        prices: MarketPriceCache,
        cash: float = 10_000.0,
        leverage: float = 10.0,
        initial_margin_rate: float = 0.1,
        maintenance_margin_rate: float = 0.05,
    ) -> None:
        if leverage <= 0:
            raise ValueError("leverage must be > 0")
        for name, rate in (
            ("initial_margin_rate", initial_margin_rate),
            ("maintenance_margin_rate", maintenance_margin_rate),
        ):
            if not (0 < rate < 1):
                raise ValueError(f"{name} must be in (0, 1)")

        self.instruments = instruments
        self.prices = prices
        self.cash = float(cash)
        self.leverage = float(leverage)
        self.initial_margin_rate = float(initial_margin_rate)
        self.maintenance_margin_rate = float(maintenance_margin_rate)

        self.lock = threading.RLock()
        self.positions: Dict[str, PositionState] = {
            s: PositionState(symbol=s) for s in instruments.symbols
        }

    # ------------------------------------------------------------------
    # marks
    # ------------------------------------------------------------------
    def position(self, symbol: str) -> PositionState:
        self.instruments.get(symbol)
        return self.positions[symbol]

    def mark_price(self, symbol: str) -> float:
        self.instruments.get(symbol)
        tick = self.prices.current_price(symbol)
        if tick is None:
            raise PriceUnavailable(symbol)
        return tick.price

    def _open_marks(self) -> Dict[str, float]:
        """Marks of every non-flat symbol; raises if one is missing."""
        return {s: self.mark_price(s) for s, p in self.positions.items() if not p.is_flat}

    # ------------------------------------------------------------------
    # per-symbol reads
    # ------------------------------------------------------------------
    def unrealized_pnl(self, symbol: str) -> float:
        with self.lock:
            pos = self.position(symbol)
            # flat => 0 whatever entry_price says
            if pos.is_flat:
                return 0.0
            return (self.mark_price(symbol) - pos.entry_price) * pos.qty

    def notional(self, symbol: str) -> float:
        with self.lock:
            pos = self.position(symbol)
            if pos.is_flat:
                return 0.0
            return abs(pos.qty) * self.mark_price(symbol)

    def liquidation_price(self, symbol: str) -> Optional[float]:
        """
        Mark at which equity == maintenance_margin_rate * total notional,
        other symbols' marks held fixed. Approximate: the solved-for symbol's
        own notional is taken at the current mark.
        """
        with self.lock:
            pos = self.position(symbol)
            if pos.is_flat:
                return None
            return self._liquidation_price(symbol, self._open_marks())

    def _liquidation_price(self, symbol: str, marks: Dict[str, float]) -> Optional[float]:
        pos = self.positions[symbol]
        if pos.is_flat:
            return None

        other_upnl = 0.0
        total_notional = 0.0
        for s, p in self.positions.items():
            if p.is_flat:
                continue
            total_notional += abs(p.qty) * marks[s]
            if s != symbol:
                other_upnl += (marks[s] - p.entry_price) * p.qty

        target_equity = self.maintenance_margin_rate * total_notional
        need_upnl_self = target_equity - (self.cash + other_upnl)
        return pos.entry_price + need_upnl_self / pos.qty

    # ------------------------------------------------------------------
    # portfolio reads
    # ------------------------------------------------------------------
    def _used_margin(self, marks: Dict[str, float]) -> float:
        return sum(abs(self.positions[s].qty) * m for s, m in marks.items()) / self.leverage

    def _equity(self, marks: Dict[str, float]) -> float:
        return self.cash + sum(
            (m - self.positions[s].entry_price) * self.positions[s].qty for s, m in marks.items()
        )

    def used_margin(self) -> float:
        with self.lock:
            return self._used_margin(self._open_marks())

    def equity(self) -> float:
        with self.lock:
            return self._equity(self._open_marks())

    def margin_ratio(self) -> float:
        with self.lock:
            marks = self._open_marks()
            used = self._used_margin(marks)
            if used == 0:
                return float("inf")
            return self._equity(marks) / used

    def required_margin(self, qty: float, price: float) -> float:
        return abs(qty) * price / self.leverage

    # ------------------------------------------------------------------
    # snapshot
    # ------------------------------------------------------------------
    def snapshot(self) -> Snapshot:
        """
        Never raises PriceUnavailable: each price is read once and missing
        marks degrade the affected fields to None.
        """
        with self.lock:
            prices: Dict[str, Optional[float]] = {}
            for s in self.positions:
                tick = self.prices.current_price(s)
                prices[s] = tick.price if tick is not None else None

            marks: Dict[str, float] = {}
            missing = False
            for s, p in self.positions.items():
                if p.is_flat:
                    continue
                if prices[s] is None:
                    missing = True
                else:
                    marks[s] = prices[s]

            views: Dict[str, PositionView] = {}
            for s, p in self.positions.items():
                if p.is_flat:
                    upnl, notional = 0.0, 0.0
                elif s in marks:
                    upnl = (marks[s] - p.entry_price) * p.qty
                    notional = abs(p.qty) * marks[s]
                else:
                    upnl, notional = None, None

                views[s] = PositionView(
                    quantity=p.qty,
                    entry_price=p.entry_price,
                    side=p.side,
                    realized_pnl=p.realized_pnl,
                    unrealized_pnl=upnl,
                    notional=notional,
                    liquidation_price=None if missing else self._liquidation_price(s, marks),
                )

            if missing:
                equity = used = ratio = None
            else:
                equity = self._equity(marks)
                used = self._used_margin(marks)
                ratio = float("inf") if used == 0 else equity / used

            return Snapshot(
                ts_ms=_ts_ms(),
                prices=prices,
                cash=self.cash,
                equity=equity,
                used_margin=used,
                margin_ratio=ratio,
                leverage=self.leverage,
                positions=views,
            )
