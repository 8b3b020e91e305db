# src/percolator/core/ledger/__init__.py
from .ledger import Ledger
from .snapshot import PositionView, Snapshot

__all__ = ["Ledger", "PositionView", "Snapshot"]
