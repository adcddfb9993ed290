"""Grid geometry value types for the Battleboard engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Direction(Enum):
    """Allowed ship directions, always extending from the top-left anchor."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

    @classmethod
    def parse(cls, text: str) -> Direction:
        """Parse user-facing direction text such as ``h`` or ``Vertical``."""
        cleaned = text.strip().lower()
        if cleaned in {"h", "hor", "horizontal"}:
            return cls.HORIZONTAL
        if cleaned in {"v", "ver", "vertical"}:
            return cls.VERTICAL
        raise ValueError(f"Unknown direction: {text!r}")


@dataclass(frozen=True)
class Point:
    """Immutable grid point, zero-based."""

    row: int
    col: int

    def offset(self, direction: Direction, steps: int) -> Point:
        """Return the point ``steps`` cells away along ``direction``."""
        if direction is Direction.HORIZONTAL:
            return Point(self.row, self.col + steps)
        return Point(self.row + steps, self.col)


@dataclass(frozen=True)
class Placement:
    """A ship ID anchored at its top-left cell and pointing one way."""

    ship_id: int
    top_left: Point
    direction: Direction

    def cells(self, length: int) -> list[Point]:
        """Return the ordered points covered by a ship of ``length`` cells."""
        return [self.top_left.offset(self.direction, offset) for offset in range(length)]

    def end(self, length: int) -> Point:
        """Return the last point covered, i.e. the bottom-right cell."""
        return self.top_left.offset(self.direction, length - 1)
