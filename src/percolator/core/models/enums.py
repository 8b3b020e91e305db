from __future__ import annotations
from enum import Enum

class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"

    @property
    def direction(self) -> int:
        return 1 if self is Side.BUY else -1

class TradeSource(str, Enum):
    FILL = "fill"        # executed against the ledger
    AMBIENT = "ambient"  # cosmetic tape print
