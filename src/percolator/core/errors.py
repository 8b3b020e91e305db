# src/percolator/core/errors.py
from __future__ import annotations


class PaperTradingError(Exception):
    """
    Base for request-local, recoverable errors.

    None of them leave the ledger or the tape partially mutated.
    """


class PriceUnavailable(PaperTradingError):
    def __init__(self, symbol: str):
        super().__init__(f"No price for {symbol}")
        self.symbol = symbol


class InvalidQuantity(PaperTradingError):
    def __init__(self, qty: object):
        super().__init__(f"qty must be > 0 (got {qty!r})")
        self.qty = qty


class InvalidSide(PaperTradingError):
    def __init__(self, side: object):
        super().__init__(f"side must be buy/sell (got {side!r})")
        self.side = side


class InsufficientMargin(PaperTradingError):
    def __init__(self, *, required: float, cash: float):
        super().__init__(f"Insufficient margin: required={required:.2f} cash={cash:.2f}")
        self.required = float(required)
        self.cash = float(cash)


class UnsupportedSymbol(PaperTradingError):
    def __init__(self, symbol: object):
        super().__init__(f"Unsupported symbol: {symbol!r}")
        self.symbol = symbol
