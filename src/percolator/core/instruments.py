# src/percolator/core/instruments.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List

from src.percolator.core.errors import UnsupportedSymbol


@dataclass(frozen=True, slots=True)
class Instrument:
    symbol: str

    # price step for the synthetic book and ambient prints
    tick: float

    # order book level base size
    base_qty: float

    # ambient print size range
    print_qty_min: float
    print_qty_max: float
    print_qty_decimals: int = 4

    price_decimals: int = 2

    def __post_init__(self) -> None:
        if not self.symbol:
            raise ValueError("instrument symbol is empty")
        if self.tick <= 0:
            raise ValueError(f"{self.symbol}: tick must be > 0")
        if self.base_qty <= 0:
            raise ValueError(f"{self.symbol}: base_qty must be > 0")
        if not (0 < self.print_qty_min <= self.print_qty_max):
            raise ValueError(f"{self.symbol}: bad print qty range")


DEFAULT_INSTRUMENTS: tuple[Instrument, ...] = (
    Instrument(
        symbol="BTCUSDT",
        tick=0.5,
        base_qty=0.01,
        print_qty_min=0.0004,
        print_qty_max=0.0064,
        print_qty_decimals=6,
    ),
    Instrument(
        symbol="ETHUSDT",
        tick=0.05,
        base_qty=0.2,
        print_qty_min=0.01,
        print_qty_max=0.26,
        print_qty_decimals=4,
    ),
)


class InstrumentRegistry:
    """
    Fixed set of tradable symbols. Built once at boot, read-only afterwards.
    """

    def __init__(self, instruments: Iterable[Instrument] = DEFAULT_INSTRUMENTS) -> None:
        self._by_symbol: Dict[str, Instrument] = {}
        for inst in instruments:
            if inst.symbol in self._by_symbol:
                raise ValueError(f"duplicate instrument: {inst.symbol}")
            self._by_symbol[inst.symbol] = inst
        if not self._by_symbol:
            raise ValueError("at least one instrument is required")

    @property
    def symbols(self) -> List[str]:
        return list(self._by_symbol)

    def __iter__(self) -> Iterator[Instrument]:
        return iter(self._by_symbol.values())

    def get(self, symbol: object) -> Instrument:
        inst = self._by_symbol.get(symbol) if isinstance(symbol, str) else None
        if inst is None:
            raise UnsupportedSymbol(symbol)
        return inst
