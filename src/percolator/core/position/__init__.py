# src/percolator/core/position/__init__.py
from .position_state import PositionState, QTY_EPSILON

__all__ = ["PositionState", "QTY_EPSILON"]
