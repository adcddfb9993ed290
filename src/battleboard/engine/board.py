"""Single-player board state for the Battleboard engine."""

from __future__ import annotations

import logging
import random
import sys
from dataclasses import dataclass, field
from typing import TextIO

import numpy as np
import numpy.typing as npt

from battleboard.telemetry import get_meter, get_tracer

from .cells import BLOCKED, EMPTY, HIT, MISS, RESERVED_SYMBOLS, CellState
from .config import GameConfiguration
from .geometry import Direction, Placement, Point
from .random_source import DEFAULT_BLOCK_CHOICES, RandomSource

logger = logging.getLogger(__name__)
tracer = get_tracer("battleboard.engine.board")
meter = get_meter("battleboard.engine.board")

PLACEMENT_COUNTER = meter.create_counter(
    "battleboard_ship_placements",
    unit="1",
    description="Number of attempted ship placements",
)

REMOVAL_COUNTER = meter.create_counter(
    "battleboard_ship_removals",
    unit="1",
    description="Number of attempted ship removals",
)

ATTACK_COUNTER = meter.create_counter(
    "battleboard_attacks",
    unit="1",
    description="Attacks received by a board",
)

Grid = npt.NDArray[np.str_]


@dataclass(frozen=True)
class AttackResult:
    """Outcome of :meth:`Board.attack`; other fields are meaningless unless ``success``."""

    success: bool
    hit: bool = False
    destroyed: bool = False
    ship_id: int | None = None


@dataclass(eq=False)
class Board:
    """A player's grid of cell symbols.

    The grid shape comes from ``config`` once and never changes. Placement,
    removal and attacks report failure through their return values and leave
    the grid untouched when they fail.
    """

    config: GameConfiguration
    rng: RandomSource = field(default_factory=random.Random)
    owner: str = "unknown"
    _grid: Grid = field(init=False, repr=False)

    def __post_init__(self) -> None:
        rows, cols = self.config.rows(), self.config.cols()
        if rows <= 0 or cols <= 0:
            raise ValueError(f"Board dimensions must be positive, got {rows}x{cols}.")
        self._grid = np.full((rows, cols), EMPTY, dtype="<U1")

    @property
    def rows(self) -> int:
        return self._grid.shape[0]

    @property
    def cols(self) -> int:
        return self._grid.shape[1]

    def is_valid_point(self, point: Point) -> bool:
        """Check whether a point lies inside the board boundaries."""
        return 0 <= point.row < self.rows and 0 <= point.col < self.cols

    def cell(self, point: Point) -> str:
        """Return the raw symbol stored at ``point``."""
        if not self.is_valid_point(point):
            raise IndexError(f"Point {point} is outside the {self.rows}x{self.cols} board.")
        return str(self._grid[point.row, point.col])

    def cell_state(self, point: Point) -> CellState:
        return CellState.of(self.cell(point))

    def snapshot(self) -> Grid:
        """Return a read-only copy of the grid."""
        view = self._grid.copy()
        view.flags.writeable = False
        return view

    def clear(self) -> None:
        """Reset every cell to empty water."""
        with tracer.start_as_current_span("board.clear") as span:
            span.set_attribute("board.owner", self.owner)
            self._grid.fill(EMPTY)
            logger.debug("board_cleared", extra={"owner": self.owner})

    def block(self) -> None:
        """Obstruct each empty cell with probability one half."""
        with tracer.start_as_current_span("board.block") as span:
            span.set_attribute("board.owner", self.owner)
            blocked = 0
            for row in range(self.rows):
                for col in range(self.cols):
                    # One draw per cell, whether or not the cell can be blocked.
                    if self.rng.randrange(DEFAULT_BLOCK_CHOICES) == 0 and self._grid[row, col] == EMPTY:
                        self._grid[row, col] = BLOCKED
                        blocked += 1
            span.set_attribute("board.blocked_cells", blocked)
            logger.debug("board_blocked", extra={"owner": self.owner, "blocked": blocked})

    def unblock(self) -> None:
        """Turn every blocked cell back into empty water."""
        with tracer.start_as_current_span("board.unblock") as span:
            span.set_attribute("board.owner", self.owner)
            self._grid[self._grid == BLOCKED] = EMPTY
            logger.debug("board_unblocked", extra={"owner": self.owner})

    def render(self, show_shots: bool) -> str:
        """Render the board as text.

        With ``show_shots`` the viewer is the opponent: live ship cells are
        drawn as water and only shot results are revealed.
        """
        lines = ["  " + "".join(str(col) for col in range(self.cols))]
        for row in range(self.rows):
            symbols = []
            for symbol in self._grid[row]:
                if show_shots and CellState.of(symbol) is CellState.SHIP:
                    symbols.append(EMPTY)
                else:
                    symbols.append(str(symbol))
            lines.append(f"{row} " + "".join(symbols))
        return "\n".join(lines)

    def display(self, show_shots: bool, stream: TextIO | None = None) -> None:
        print(self.render(show_shots), file=stream or sys.stdout)

    def can_place_ship(self, top_left: Point, ship_id: int, direction: Direction) -> bool:
        """Determine whether a ship can be placed without violating rules."""
        return self._placement_error(Placement(ship_id, top_left, direction)) is None

    def place_ship(self, top_left: Point, ship_id: int, direction: Direction) -> bool:
        """Mark the ship's cells if every placement rule holds."""
        placement = Placement(ship_id, top_left, direction)
        with tracer.start_as_current_span("board.place_ship") as span:
            span.set_attribute("ship.id", ship_id)
            span.set_attribute("ship.direction", direction.name)
            span.set_attribute("ship.top_left.row", top_left.row)
            span.set_attribute("ship.top_left.col", top_left.col)
            span.set_attribute("board.owner", self.owner)

            error = self._placement_error(placement)
            if error is not None:
                span.set_attribute("ship.rejected", error)
                PLACEMENT_COUNTER.add(1, attributes={"result": "failed", "reason": error, "owner": self.owner})
                logger.warning(
                    "ship_placement_failed",
                    extra={
                        "owner": self.owner,
                        "ship_id": ship_id,
                        "direction": direction.name,
                        "row": top_left.row,
                        "col": top_left.col,
                        "reason": error,
                    },
                )
                return False

            symbol = self.config.ship_symbol(ship_id)
            for point in placement.cells(self.config.ship_length(ship_id)):
                self._grid[point.row, point.col] = symbol
            PLACEMENT_COUNTER.add(1, attributes={"result": "success", "owner": self.owner})
            logger.info(
                "ship_placed",
                extra={
                    "owner": self.owner,
                    "ship_id": ship_id,
                    "symbol": symbol,
                    "direction": direction.name,
                    "row": top_left.row,
                    "col": top_left.col,
                },
            )
            return True

    def remove_ship(self, top_left: Point, ship_id: int, direction: Direction) -> bool:
        """Take a placed ship off the board."""
        placement = Placement(ship_id, top_left, direction)
        with tracer.start_as_current_span("board.remove_ship") as span:
            span.set_attribute("ship.id", ship_id)
            span.set_attribute("ship.direction", direction.name)
            span.set_attribute("board.owner", self.owner)

            length = self.config.ship_length(ship_id)
            symbol = self.config.ship_symbol(ship_id)
            cells = placement.cells(length)
            present = (
                length > 0
                and all(self.is_valid_point(point) for point in cells)
                and all(self._grid[point.row, point.col] == symbol for point in cells)
            )
            if not present:
                REMOVAL_COUNTER.add(1, attributes={"result": "failed", "owner": self.owner})
                logger.warning(
                    "ship_removal_failed",
                    extra={"owner": self.owner, "ship_id": ship_id, "row": top_left.row, "col": top_left.col},
                )
                return False

            # Sweep the whole grid so no stray copy of the symbol survives.
            self._grid[self._grid == symbol] = EMPTY
            REMOVAL_COUNTER.add(1, attributes={"result": "success", "owner": self.owner})
            logger.info(
                "ship_removed",
                extra={"owner": self.owner, "ship_id": ship_id, "row": top_left.row, "col": top_left.col},
            )
            return True

    def attack(self, point: Point) -> AttackResult:
        """Resolve a shot at ``point``."""
        with tracer.start_as_current_span("board.attack") as span:
            span.set_attribute("shot.row", point.row)
            span.set_attribute("shot.col", point.col)
            span.set_attribute("board.owner", self.owner)

            if not self.is_valid_point(point):
                return self._reject_attack(span, point, "out_of_bounds")
            symbol = str(self._grid[point.row, point.col])
            state = CellState.of(symbol)
            if state.is_shot:
                return self._reject_attack(span, point, "already_targeted")

            if state.is_water:
                self._grid[point.row, point.col] = MISS
                span.set_attribute("shot.outcome", "miss")
                ATTACK_COUNTER.add(1, attributes={"outcome": "miss", "owner": self.owner})
                logger.info("shot_miss", extra={"row": point.row, "col": point.col, "owner": self.owner})
                return AttackResult(success=True, hit=False)

            self._grid[point.row, point.col] = HIT
            if np.any(self._grid == symbol):
                span.set_attribute("shot.outcome", "hit")
                ATTACK_COUNTER.add(1, attributes={"outcome": "hit", "owner": self.owner})
                logger.info(
                    "shot_hit",
                    extra={"row": point.row, "col": point.col, "symbol": symbol, "owner": self.owner},
                )
                return AttackResult(success=True, hit=True)

            ship_id = self._ship_id_for(symbol)
            span.set_attribute("shot.outcome", "destroyed")
            ATTACK_COUNTER.add(1, attributes={"outcome": "destroyed", "owner": self.owner})
            logger.info(
                "ship_destroyed",
                extra={"row": point.row, "col": point.col, "symbol": symbol, "ship_id": ship_id, "owner": self.owner},
            )
            return AttackResult(success=True, hit=True, destroyed=True, ship_id=ship_id)

    def all_destroyed(self) -> bool:
        """Check whether no live ship cell remains."""
        return not np.any(~np.isin(self._grid, list(RESERVED_SYMBOLS)))

    def _placement_error(self, placement: Placement) -> str | None:
        """Return why ``placement`` is illegal, or ``None`` if it is legal."""
        length = self.config.ship_length(placement.ship_id)
        if length <= 0:
            return "unknown_ship"
        if not self.is_valid_point(placement.top_left):
            return "out_of_bounds"
        if not self.is_valid_point(placement.end(length)):
            return "off_grid"
        if np.any(self._grid == self.config.ship_symbol(placement.ship_id)):
            return "already_placed"
        if any(self._grid[point.row, point.col] != EMPTY for point in placement.cells(length)):
            return "overlap"
        return None

    def _ship_id_for(self, symbol: str) -> int | None:
        for ship_id in range(self.config.n_ships()):
            if self.config.ship_symbol(ship_id) == symbol:
                return ship_id
        return None

    def _reject_attack(self, span, point: Point, reason: str) -> AttackResult:
        span.set_attribute("shot.outcome", "rejected")
        span.set_attribute("shot.rejected", reason)
        ATTACK_COUNTER.add(1, attributes={"outcome": "rejected", "owner": self.owner})
        logger.warning(
            "shot_rejected",
            extra={"row": point.row, "col": point.col, "owner": self.owner, "reason": reason},
        )
        return AttackResult(success=False)
