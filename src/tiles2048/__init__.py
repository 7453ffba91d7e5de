"""
2048 tile game: board model, move resolution and thin front ends.

Modules:
- core.py: Tile, Board, GameState, GameEngine and the slide/merge helpers
- snapshot.py: save/restore of a GameState as dict or JSON
- api.py: stateless FastAPI app
- cli_driver.py: terminal game loop
"""
from .core import (
    DIRECTION,
    Board,
    GameEngine,
    GameProgressState,
    GameState,
    InvalidDimensions,
    InvalidDirection,
    MoveResult,
    Tile,
    TileUpdate,
)
from .snapshot import InvalidSnapshot

__version__ = "1.0.0"
