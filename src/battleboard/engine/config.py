"""Game configuration consumed by the board: grid size and ship catalog."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any, Dict, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .cells import RESERVED_SYMBOLS
from .geometry import Point

logger = logging.getLogger(__name__)

MAX_ROWS = 10
MAX_COLS = 10

STANDARD_FLEET: tuple[tuple[int, str, str], ...] = (
    (5, "A", "Aircraft carrier"),
    (4, "B", "Battleship"),
    (3, "D", "Destroyer"),
    (3, "S", "Submarine"),
    (2, "P", "Patrol boat"),
)


@runtime_checkable
class GameConfiguration(Protocol):
    """Read-only view of the game setup that a board needs."""

    def rows(self) -> int: ...

    def cols(self) -> int: ...

    def ship_length(self, ship_id: int) -> int: ...

    def ship_symbol(self, ship_id: int) -> str | None: ...

    def n_ships(self) -> int: ...


class ShipSpec(BaseModel):
    """One entry of the ship catalog."""

    model_config = ConfigDict(frozen=True)

    length: int = Field(gt=0)
    symbol: str = Field(min_length=1, max_length=1)
    name: str = Field(min_length=1)

    @field_validator("symbol")
    @classmethod
    def _check_symbol(cls, value: str) -> str:
        if not value.isprintable() or value.isspace():
            raise ValueError("ship symbol must be a printable, non-space character")
        if value in RESERVED_SYMBOLS:
            raise ValueError(f"ship symbol {value!r} is reserved for board markers")
        return value


class GameConfig(BaseModel):
    """Concrete game configuration with a validated ship catalog.

    Ship IDs are positions in ``ships``. Symbols are unique so that a symbol
    found on the board maps back to exactly one ship ID.
    """

    n_rows: int = Field(default=MAX_ROWS, ge=1, le=MAX_ROWS)
    n_cols: int = Field(default=MAX_COLS, ge=1, le=MAX_COLS)
    ships: list[ShipSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_fleet(self) -> GameConfig:
        symbols: set[str] = set()
        cells = 0
        for ship in self.ships:
            if not self._fits(ship.length):
                raise ValueError(f"ship {ship.name!r} of length {ship.length} does not fit the grid")
            if ship.symbol in symbols:
                raise ValueError(f"ship symbol {ship.symbol!r} is used more than once")
            symbols.add(ship.symbol)
            cells += ship.length
        if cells > self.n_rows * self.n_cols:
            raise ValueError("fleet needs more cells than the grid has")
        return self

    @classmethod
    def standard(cls, rows: int = MAX_ROWS, cols: int = MAX_COLS) -> GameConfig:
        """Return the classic five-ship fleet on a ``rows`` x ``cols`` grid."""
        ships = [ShipSpec(length=length, symbol=symbol, name=name) for length, symbol, name in STANDARD_FLEET]
        return cls(n_rows=rows, n_cols=cols, ships=ships)

    @classmethod
    def from_env(cls, **overrides: Any) -> GameConfig:
        """Construct config from ``BATTLEBOARD_ROWS``/``_COLS``/``_FLEET``."""

        data: Dict[str, Any] = {}
        rows = os.getenv("BATTLEBOARD_ROWS")
        cols = os.getenv("BATTLEBOARD_COLS")
        if rows:
            data["n_rows"] = rows.strip()
        if cols:
            data["n_cols"] = cols.strip()

        fleet = os.getenv("BATTLEBOARD_FLEET")
        if fleet:
            data["ships"] = [_parse_fleet_entry(part) for part in fleet.split(",") if part.strip()]
        else:
            data["ships"] = [
                {"length": length, "symbol": symbol, "name": name} for length, symbol, name in STANDARD_FLEET
            ]

        data.update(overrides)
        return cls(**data)

    def rows(self) -> int:
        return self.n_rows

    def cols(self) -> int:
        return self.n_cols

    def n_ships(self) -> int:
        return len(self.ships)

    def ship_length(self, ship_id: int) -> int:
        """Return the ship's length, or 0 when the ID is unknown."""
        if not 0 <= ship_id < len(self.ships):
            return 0
        return self.ships[ship_id].length

    def ship_symbol(self, ship_id: int) -> str | None:
        """Return the ship's board symbol, or ``None`` when the ID is unknown."""
        if not 0 <= ship_id < len(self.ships):
            return None
        return self.ships[ship_id].symbol

    def ship_name(self, ship_id: int) -> str | None:
        if not 0 <= ship_id < len(self.ships):
            return None
        return self.ships[ship_id].name

    def is_valid(self, point: Point) -> bool:
        """Check whether a point lies inside the configured grid."""
        return 0 <= point.row < self.n_rows and 0 <= point.col < self.n_cols

    def add_ship(self, length: int, symbol: str, name: str) -> bool:
        """Register another ship; returns ``False`` and changes nothing if invalid."""
        try:
            spec = ShipSpec(length=length, symbol=symbol, name=name)
        except ValidationError as exc:
            logger.warning(
                "ship_rejected",
                extra={"symbol": symbol, "length": length, "reason": "invalid", "errors": exc.error_count()},
            )
            return False

        reason: str | None = None
        if not self._fits(spec.length):
            reason = "too_long"
        elif any(ship.symbol == spec.symbol for ship in self.ships):
            reason = "duplicate_symbol"
        elif sum(ship.length for ship in self.ships) + spec.length > self.n_rows * self.n_cols:
            reason = "fleet_too_large"

        if reason is not None:
            logger.warning("ship_rejected", extra={"symbol": symbol, "length": length, "reason": reason})
            return False

        self.ships.append(spec)
        logger.debug("ship_added", extra={"ship_id": len(self.ships) - 1, "symbol": symbol, "length": length})
        return True

    def _fits(self, length: int) -> bool:
        return length <= self.n_rows or length <= self.n_cols


def _parse_fleet_entry(entry: str) -> Dict[str, Any]:
    """Parse ``symbol:length[:name]`` into ``ShipSpec`` fields."""
    parts = [part.strip() for part in entry.split(":")]
    if len(parts) not in (2, 3) or not parts[0]:
        raise ValueError(f"Fleet entry must look like 'A:5:Aircraft carrier', got {entry!r}")
    symbol, length = parts[0], parts[1]
    name = parts[2] if len(parts) == 3 and parts[2] else f"Ship {symbol}"
    return {"symbol": symbol, "length": length, "name": name}


@lru_cache(maxsize=1)
def load_game_config() -> GameConfig:
    """Load and cache the game config from the environment."""

    return GameConfig.from_env()
