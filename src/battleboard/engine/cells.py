"""Single-character cell encoding shared by the board and its configuration."""

from __future__ import annotations

from enum import Enum

EMPTY = "."
BLOCKED = "#"
HIT = "X"
MISS = "o"

RESERVED_SYMBOLS = frozenset({EMPTY, BLOCKED, HIT, MISS})


class CellState(Enum):
    """Semantic state of a board cell."""

    EMPTY = "empty"
    BLOCKED = "blocked"
    SHIP = "ship"
    HIT = "hit"
    MISS = "miss"

    @classmethod
    def of(cls, symbol: str) -> CellState:
        """Classify a raw cell symbol; anything not reserved is a ship."""
        if symbol == EMPTY:
            return cls.EMPTY
        if symbol == BLOCKED:
            return cls.BLOCKED
        if symbol == HIT:
            return cls.HIT
        if symbol == MISS:
            return cls.MISS
        return cls.SHIP

    @property
    def is_water(self) -> bool:
        """Water cells record a miss when attacked."""
        return self in (CellState.EMPTY, CellState.BLOCKED)

    @property
    def is_shot(self) -> bool:
        """Cells that have already been targeted."""
        return self in (CellState.HIT, CellState.MISS)
