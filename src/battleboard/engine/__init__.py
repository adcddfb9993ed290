"""Board-state engine exports."""

from .board import AttackResult, Board
from .cells import CellState
from .config import GameConfig, GameConfiguration, ShipSpec, load_game_config
from .geometry import Direction, Placement, Point
from .random_source import RandomSource

__all__ = [
    "AttackResult",
    "Board",
    "CellState",
    "Direction",
    "GameConfig",
    "GameConfiguration",
    "Placement",
    "Point",
    "RandomSource",
    "ShipSpec",
    "load_game_config",
]
