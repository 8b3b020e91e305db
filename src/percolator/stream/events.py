# src/percolator/stream/events.py
from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.percolator.core.ledger.snapshot import Snapshot
from src.percolator.core.models.trade import Trade


class EventType(str, Enum):
    SNAPSHOT = "snapshot"
    TRADE = "trade"


@dataclass(frozen=True, slots=True)
class StreamEvent:
    """
    Immutable unit pushed to subscribers. `data` is already a JSON-ready payload.
    """

    type: EventType
    data: dict[str, Any]

    @classmethod
    def snapshot(cls, snap: Snapshot) -> "StreamEvent":
        return cls(type=EventType.SNAPSHOT, data=snap.to_payload())

    @classmethod
    def trade(cls, trade: Trade) -> "StreamEvent":
        return cls(type=EventType.TRADE, data=trade.to_payload())

    def to_sse(self) -> str:
        body = json.dumps({"type": self.type.value, "data": self.data}, separators=(",", ":"))
        return f"data: {body}\n\n"
