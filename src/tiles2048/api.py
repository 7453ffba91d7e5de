import logging
import os
from typing import Dict, List, Optional, Tuple

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from . import core, snapshot

logger = logging.getLogger(__name__)

RATE_LIMIT = os.environ.get("TILES2048_RATE_LIMIT", "100/minute")
MAX_DIMENSION = 16
DEFAULT_WIN_TILE = core.tile_value(core.DEFAULT_WIN_RANK)

SNAPSHOT_FIELDS = {"rows", "columns", "score", "progress", "next_tile_id", "tiles"}

# Initialize the rate limiter
limiter = Limiter(key_func=get_remote_address)
app = FastAPI(
    title="2048 Tiles API",
    description="A stateless API for playing the 2048 game. "
                "The client keeps the game snapshot and posts it back with every move; "
                "tile ids are always assigned by the server.",
    version="1.0.0"
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# --- Pydantic Models for API requests and responses ---

TileEntry = Tuple[int, int, int, int]  # row, column, tile id, rank


class NewGameSettings(BaseModel):
    """Settings for creating a new game."""
    rows: int = Field(
        default=core.DEFAULT_SIZE,
        gt=1,
        le=MAX_DIMENSION,
        description="Number of rows on the board."
    )
    columns: int = Field(
        default=core.DEFAULT_SIZE,
        gt=1,
        le=MAX_DIMENSION,
        description="Number of columns on the board."
    )
    win_tile: int = Field(
        default=DEFAULT_WIN_TILE,
        gt=0,
        description="The tile value to achieve for winning the game (a power of two, e.g. 2048)."
    )
    keep_playing: bool = Field(
        default=False,
        description="Allow moves after the win tile appears; the game then ends only when stuck."
    )
    seed: Optional[int] = Field(default=None, description="Random seed for reproducible spawns.")


class GameSnapshotData(BaseModel):
    """The game snapshot a client holds between requests."""
    rows: int = Field(..., gt=1, le=MAX_DIMENSION, description="Number of rows on the board.")
    columns: int = Field(..., gt=1, le=MAX_DIMENSION, description="Number of columns on the board.")
    score: int = Field(..., ge=0, description="Current score of the game.")
    progress: core.GameProgressState = Field(
        ...,
        description="Current progress state of the game (IN_PROGRESS, GAME_WON, GAME_OVER)."
    )
    next_tile_id: int = Field(..., ge=0, description="Id the server will give the next spawned tile.")
    tiles: List[TileEntry] = Field(..., max_length=MAX_DIMENSION * MAX_DIMENSION, description="Occupied cells as [row, column, tile_id, rank].")
    win_tile: int = Field(..., gt=0, description="The tile value required to win this game instance.")
    keep_playing: bool = Field(default=False, description="Whether moves are allowed after a win.")


class GameStateData(GameSnapshotData):
    """Snapshot plus a value grid for display."""
    board: List[List[int]] = Field(..., description="Tile values by cell, 0 for empty cells.")


class MoveRequestData(GameSnapshotData):
    """Data required to make a move."""
    direction: str = Field(..., description="Direction of the move (UP, DOWN, LEFT, RIGHT or W/A/S/D).")
    seed: Optional[int] = Field(default=None, description="Random seed for the spawn after this move.")


class MoveResponseData(GameStateData):
    """Response after a move, including the new game state and move effectiveness."""
    move_was_effective: bool = Field(
        ...,
        description="True if the move resulted in a change to the board state, False otherwise."
    )
    score_gained: int = Field(..., ge=0, description="Points earned by merges in this move.")
    updates: Dict[int, core.TileUpdate] = Field(..., description="Transition tag of every tile on the new board.")
    merged_away: Dict[int, int] = Field(
        default_factory=dict,
        description="Removed tile id -> id of the tile it merged into."
    )
    spawned: Optional[Tuple[int, int]] = Field(default=None, description="Cell of the tile spawned by this move.")
    message: Optional[str] = Field(
        default=None,
        description="An optional message, e.g., if a move was not effective or the game ended."
    )


def _engine_for(win_tile: int, keep_playing: bool, seed: Optional[int]) -> core.GameEngine:
    return core.GameEngine(seed=seed, win_rank=core.rank_for_value(win_tile), stop_on_win=not keep_playing)


def _state_payload(state: core.GameState, win_tile: int, keep_playing: bool) -> dict:
    payload = snapshot.state_to_dict(state)
    payload.update(win_tile=win_tile, keep_playing=keep_playing, board=state.board.values())
    return payload

# --- API Endpoints ---


@app.post("/game/new", response_model=GameStateData, summary="Start a New 2048 Game")
@limiter.limit(RATE_LIMIT)
async def start_new_game(request: Request, settings: NewGameSettings):
    """
    Initializes a new game based on the provided settings.

    - **rows**, **columns**: Board dimensions. Default is 4x4.
    - **win_tile**: Tile value to reach to win (e.g., 2048).
    - **keep_playing**: Keep accepting moves after a win.
    - **seed**: Optional seed for reproducible tile spawns.

    Returns the initial game state with two random tiles and score 0.
    """
    try:
        engine = _engine_for(settings.win_tile, settings.keep_playing, settings.seed)
        state = engine.new_game(settings.rows, settings.columns)
    except ValueError as e:
        # Invalid dimensions or win tile
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Unexpected error in /game/new")
        raise HTTPException(status_code=500, detail=f"An unexpected error occurred during game creation: {str(e)}")

    return GameStateData(**_state_payload(state, settings.win_tile, settings.keep_playing))


@app.post("/game/move", response_model=MoveResponseData, summary="Make a Move in the Game")
@limiter.limit(RATE_LIMIT)
async def make_move(request: Request, request_data: MoveRequestData):
    """
    Processes a player's move in the game.

    Requires the snapshot returned by the previous call and the `direction`.

    The API will:
    1. Slide and merge tiles in that direction.
    2. If the move changed the board, spawn a new random tile (2 or 4).
    3. Determine the new game status (IN_PROGRESS, GAME_WON, GAME_OVER).

    Returns the updated game state, per-tile transition tags and an optional message.
    """
    try:
        state = snapshot.state_from_dict(request_data.model_dump(include=SNAPSHOT_FIELDS))
        direction = core.parse_direction(request_data.direction)
        engine = _engine_for(request_data.win_tile, request_data.keep_playing, request_data.seed)
        result = engine.apply_move(state, direction)
    except ValueError as e:
        # Bad snapshot, unknown direction or win tile
        raise HTTPException(status_code=400, detail=f"Error processing move: {str(e)}")
    except Exception as e:
        logger.exception("Unexpected error in /game/move")
        raise HTTPException(status_code=500, detail=f"An unexpected server error occurred while processing the move: {str(e)}")

    message: Optional[str] = None
    if result.progress == core.GameProgressState.GAME_OVER:
        message = "Game Over. No more valid moves."
    elif result.progress == core.GameProgressState.GAME_WON and state.progress != core.GameProgressState.GAME_WON:
        message = "Congratulations! You won!"
    elif not result.moved:
        message = "Move was not effective; board state unchanged by slide."

    return MoveResponseData(
        **_state_payload(result.state, request_data.win_tile, request_data.keep_playing),
        move_was_effective=result.moved,
        score_gained=result.score_gained,
        updates=result.updates,
        merged_away=result.merged_away,
        spawned=result.spawned,
        message=message,
    )
