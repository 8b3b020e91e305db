# src/percolator/core/tape/trade_tape.py
from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable, Deque, List, Optional

from src.percolator.core.models.trade import Trade

DEFAULT_CAPACITY = 400

log = logging.getLogger("src.percolator.core.tape")

TradeListener = Callable[[Trade], None]


class TradeTape:
    """
    Bounded newest-first record of fills and ambient prints.

    Listeners are called after every insertion, outside the tape lock.
    A failing listener is logged and does not affect the insert.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("tape capacity must be > 0")
        self.capacity = int(capacity)
        self._trades: Deque[Trade] = deque(maxlen=self.capacity)
        self._lock = threading.Lock()
        self._listeners: List[TradeListener] = []

    def add_listener(self, cb: TradeListener) -> None:
        with self._lock:
            self._listeners.append(cb)

    # ------------------------------------------------------------------
    def insert(self, trade: Trade) -> None:
        with self._lock:
            # appendleft on a full deque drops the rightmost (oldest) entry
            self._trades.appendleft(trade)
            listeners = list(self._listeners)

        for cb in listeners:
            try:
                cb(trade)
            except Exception:
                log.exception("[TAPE] listener failed for %s", trade.symbol)

    def recent(self, symbol: Optional[str] = None, limit: int = 120) -> List[Trade]:
        """Newest first, at most `limit` entries (optionally one symbol)."""
        limit = max(0, min(int(limit), self.capacity))
        with self._lock:
            if symbol:
                rows = [t for t in self._trades if t.symbol == symbol]
            else:
                rows = list(self._trades)
        return rows[:limit]

    def __len__(self) -> int:
        with self._lock:
            return len(self._trades)
