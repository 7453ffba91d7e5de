# core.py
# Board model and move resolution for the 2048 tile game.
# Nothing here touches global state: a GameEngine owns its random source and
# every GameState it hands out is an immutable snapshot.

import logging
import random
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

Coord = Tuple[int, int]

DEFAULT_SIZE = 4
DEFAULT_WIN_RANK = 11  # 2^11 == 2048
HIGH_SPAWN_PROBABILITY = 0.1
MIN_DIMENSION = 2


class GameProgressState(Enum):
    """Represents the current progress state of the game."""
    IN_PROGRESS = "IN_PROGRESS"
    GAME_WON = "GAME_WON"
    GAME_OVER = "GAME_OVER"  # Lost


class DIRECTION(Enum):
    """Represents the possible move directions."""
    UP = "UP"
    DOWN = "DOWN"
    LEFT = "LEFT"
    RIGHT = "RIGHT"


class TileUpdate(Enum):
    """What happened to a tile during the last move. Output only."""
    NONE = "NONE"
    SPAWNED = "SPAWNED"
    MERGED = "MERGED"
    MOVED_UP = "MOVED_UP"
    MOVED_DOWN = "MOVED_DOWN"
    MOVED_LEFT = "MOVED_LEFT"
    MOVED_RIGHT = "MOVED_RIGHT"

    @property
    def symbol(self) -> str:
        return _UPDATE_SYMBOLS[self]


_UPDATE_SYMBOLS = {
    TileUpdate.NONE: " ",
    TileUpdate.SPAWNED: "+",
    TileUpdate.MERGED: "×",
    TileUpdate.MOVED_UP: "↑",
    TileUpdate.MOVED_DOWN: "↓",
    TileUpdate.MOVED_LEFT: "←",
    TileUpdate.MOVED_RIGHT: "→",
}

_MOVED_TAGS = {
    DIRECTION.UP: TileUpdate.MOVED_UP,
    DIRECTION.DOWN: TileUpdate.MOVED_DOWN,
    DIRECTION.LEFT: TileUpdate.MOVED_LEFT,
    DIRECTION.RIGHT: TileUpdate.MOVED_RIGHT,
}

# (row delta, column delta) of one step in each direction
_STEPS = {
    DIRECTION.UP: (-1, 0),
    DIRECTION.DOWN: (1, 0),
    DIRECTION.LEFT: (0, -1),
    DIRECTION.RIGHT: (0, 1),
}

_KEY_ALIASES = {
    "W": DIRECTION.UP,
    "A": DIRECTION.LEFT,
    "S": DIRECTION.DOWN,
    "D": DIRECTION.RIGHT,
}


# --- Errors ---

class InvalidDimensions(ValueError):
    """Raised when a board would have fewer than two rows or columns."""


class InvalidDirection(ValueError):
    """Raised for a move input that is not one of the four directions."""


# --- Values and directions ---

def tile_value(rank: int) -> int:
    """
    Face value of a tile of the given rank.
    Args:
        rank (int): Tile rank; 0 stands for an empty cell.
    Returns:
        int: 2**rank, or 0 for rank 0.
    """
    return 2 ** rank if rank > 0 else 0


def rank_for_value(value: int) -> int:
    """
    Inverse of tile_value for real tiles.
    Args:
        value (int): A power of two, at least 2.
    Returns:
        int: The rank whose value is `value`.
    Raises:
        ValueError: If value is not a power of two >= 2.
    """
    if not isinstance(value, int) or value < 2 or value & (value - 1):
        raise ValueError(f"Tile value must be a power of two >= 2, got {value!r}.")
    return value.bit_length() - 1


def parse_direction(value: Union[str, DIRECTION]) -> DIRECTION:
    """
    Turns user input into a DIRECTION.
    Accepts DIRECTION members, their names in any case, and the W/A/S/D keys.
    Raises:
        InvalidDirection: If the input names no direction.
    """
    if isinstance(value, DIRECTION):
        return value
    if isinstance(value, str):
        key = value.strip().upper()
        if key in DIRECTION.__members__:
            return DIRECTION[key]
        if key in _KEY_ALIASES:
            return _KEY_ALIASES[key]
    raise InvalidDirection(f"Unrecognized move direction: {value!r}")


# --- Board model ---

@dataclass(frozen=True)
class Tile:
    """A numbered tile. The id is stable for the tile's whole life."""
    id: int
    rank: int

    @property
    def value(self) -> int:
        return tile_value(self.rank)


Cell = Optional[Tile]  # None is an empty cell


@dataclass(frozen=True)
class Board:
    """A rows x columns grid where each cell holds at most one tile."""
    rows: int
    columns: int
    cells: Tuple[Tuple[Cell, ...], ...]

    def __post_init__(self):
        _check_dimensions(self.rows, self.columns)
        if len(self.cells) != self.rows or any(len(row) != self.columns for row in self.cells):
            raise ValueError(f"Cell grid does not match a {self.rows}x{self.columns} board.")
        seen = set()
        for _, _, tile in self.tiles():
            if tile.rank < 1:
                raise ValueError(f"Tile {tile.id} has invalid rank {tile.rank}.")
            if tile.id in seen:
                raise ValueError(f"Tile id {tile.id} appears in more than one cell.")
            seen.add(tile.id)

    @classmethod
    def empty(cls, rows: int = DEFAULT_SIZE, columns: int = DEFAULT_SIZE) -> "Board":
        _check_dimensions(rows, columns)
        return cls(rows, columns, tuple((None,) * columns for _ in range(rows)))

    @classmethod
    def from_tiles(cls, rows: int, columns: int, placements: Iterable[Tuple[int, int, Tile]]) -> "Board":
        """
        Builds a board from (row, column, tile) placements.
        Raises:
            InvalidDimensions: If rows or columns < 2.
            ValueError: If a placement is out of bounds or lands on an occupied cell.
        """
        _check_dimensions(rows, columns)
        grid: List[List[Cell]] = [[None] * columns for _ in range(rows)]
        for row, col, tile in placements:
            if not (0 <= row < rows and 0 <= col < columns):
                raise ValueError(f"Cell ({row}, {col}) is outside the {rows}x{columns} board.")
            if grid[row][col] is not None:
                raise ValueError(f"Cell ({row}, {col}) holds more than one tile.")
            grid[row][col] = tile
        return cls(rows, columns, tuple(tuple(r) for r in grid))

    def get(self, row: int, col: int) -> Cell:
        return self.cells[row][col]

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.columns

    def tiles(self) -> Iterator[Tuple[int, int, Tile]]:
        """Yields (row, column, tile) for occupied cells in row-major order."""
        for r, row in enumerate(self.cells):
            for c, tile in enumerate(row):
                if tile is not None:
                    yield r, c, tile

    def empty_cells(self) -> List[Coord]:
        return [(r, c) for r, row in enumerate(self.cells) for c, tile in enumerate(row) if tile is None]

    def max_rank(self) -> int:
        return max((tile.rank for _, _, tile in self.tiles()), default=0)

    def ranks(self) -> List[List[int]]:
        """Rank grid with 0 for empty cells."""
        return [[tile.rank if tile else 0 for tile in row] for row in self.cells]

    def values(self) -> List[List[int]]:
        """Face value grid with 0 for empty cells."""
        return [[tile.value if tile else 0 for tile in row] for row in self.cells]

    def with_tile(self, row: int, col: int, tile: Cell) -> "Board":
        grid = [list(r) for r in self.cells]
        grid[row][col] = tile
        return Board(self.rows, self.columns, tuple(tuple(r) for r in grid))


def _check_dimensions(rows: int, columns: int) -> None:
    if not isinstance(rows, int) or not isinstance(columns, int) \
            or rows < MIN_DIMENSION or columns < MIN_DIMENSION:
        raise InvalidDimensions(
            f"Board must be at least {MIN_DIMENSION}x{MIN_DIMENSION}, got {rows!r}x{columns!r}."
        )


@dataclass(frozen=True)
class GameState:
    """Read-only snapshot of a game: board, score, progress and the id counter."""
    board: Board
    score: int = 0
    progress: GameProgressState = GameProgressState.IN_PROGRESS
    next_tile_id: int = 0

    def __post_init__(self):
        if self.score < 0:
            raise ValueError("Score cannot be negative.")
        if any(tile.id >= self.next_tile_id or tile.id < 0 for _, _, tile in self.board.tiles()):
            raise ValueError("Tile ids must be non-negative and below next_tile_id.")


@dataclass(frozen=True)
class MoveResult:
    """
    Outcome of GameEngine.apply_move.
    `updates` tags every tile on the resulting board; `merged_away` maps each
    removed tile id to the id it merged into; `origins` gives each pre-move
    tile's cell.
    """
    state: GameState
    direction: DIRECTION
    moved: bool
    score_gained: int = 0
    updates: Dict[int, TileUpdate] = field(default_factory=dict)
    merged_away: Dict[int, int] = field(default_factory=dict)
    origins: Dict[int, Coord] = field(default_factory=dict)
    spawned: Optional[Coord] = None

    @property
    def board(self) -> Board:
        return self.state.board

    @property
    def score(self) -> int:
        return self.state.score

    @property
    def progress(self) -> GameProgressState:
        return self.state.progress


# --- Line Manipulation (Core Move Logic Helpers) ---

def slide_line(line: Sequence[Cell]) -> Tuple[List[Cell], List[Tuple[int, int]], int]:
    """
    Slides a single line toward index 0, merging equal neighbours once.
    Args:
        line (Sequence[Cell]): Cells ordered from the leading edge.
    Returns:
        Tuple[List[Cell], List[Tuple[int, int]], int]: The new line (same length),
            the merges as (surviving id, absorbed id) pairs, and the score gained.
    """
    packed: List[Tile] = []
    merged_ids = set()
    merges: List[Tuple[int, int]] = []
    score_gained = 0

    for tile in line:
        if tile is None:
            continue
        leader = packed[-1] if packed else None
        if leader is not None and leader.rank == tile.rank and leader.id not in merged_ids:
            survivor = Tile(id=leader.id, rank=leader.rank + 1)
            packed[-1] = survivor
            merged_ids.add(survivor.id)
            merges.append((survivor.id, tile.id))
            score_gained += survivor.value
        else:
            packed.append(tile)

    return packed + [None] * (len(line) - len(packed)), merges, score_gained


def _line_coords(rows: int, columns: int, direction: DIRECTION) -> List[List[Coord]]:
    """Cell coordinates of each line parallel to `direction`, leading edge first."""
    if direction == DIRECTION.LEFT:
        return [[(r, c) for c in range(columns)] for r in range(rows)]
    if direction == DIRECTION.RIGHT:
        return [[(r, c) for c in reversed(range(columns))] for r in range(rows)]
    if direction == DIRECTION.UP:
        return [[(r, c) for r in range(rows)] for c in range(columns)]
    if direction == DIRECTION.DOWN:
        return [[(r, c) for r in reversed(range(rows))] for c in range(columns)]
    raise InvalidDirection(f"Unrecognized move direction: {direction!r}")


# --- Core Game Move Processing ---

@dataclass(frozen=True)
class SlideOutcome:
    board: Board
    score_gained: int
    moved: bool
    updates: Dict[int, TileUpdate]
    merged_away: Dict[int, int]
    origins: Dict[int, Coord]


def process_move(board: Board, direction: DIRECTION) -> SlideOutcome:
    """
    Slides and merges every line of the board in one direction. Does not spawn.
    Args:
        board (Board): The board before the move.
        direction (DIRECTION): The direction to move.
    Returns:
        SlideOutcome: The new board, score gained, whether anything changed and
            the per-tile bookkeeping.
    Raises:
        InvalidDirection: If direction is not a DIRECTION.
    """
    direction = parse_direction(direction)
    origins = {tile.id: (r, c) for r, c, tile in board.tiles()}
    grid: List[List[Cell]] = [[None] * board.columns for _ in range(board.rows)]
    merged_away: Dict[int, int] = {}
    score_gained = 0

    for coords in _line_coords(board.rows, board.columns, direction):
        new_line, merges, gained = slide_line([board.get(r, c) for r, c in coords])
        for (r, c), tile in zip(coords, new_line):
            grid[r][c] = tile
        for survivor_id, absorbed_id in merges:
            merged_away[absorbed_id] = survivor_id
        score_gained += gained

    new_board = Board(board.rows, board.columns, tuple(tuple(r) for r in grid))
    survivors = set(merged_away.values())
    updates: Dict[int, TileUpdate] = {}
    for r, c, tile in new_board.tiles():
        if tile.id in survivors:
            updates[tile.id] = TileUpdate.MERGED
        elif origins[tile.id] != (r, c):
            updates[tile.id] = _MOVED_TAGS[direction]
        else:
            updates[tile.id] = TileUpdate.NONE

    moved = bool(merged_away) or any(tag != TileUpdate.NONE for tag in updates.values())
    return SlideOutcome(new_board, score_gained, moved, updates, merged_away, origins)


# --- Game State Checks ---

def check_for_win(board: Board, win_rank: int = DEFAULT_WIN_RANK) -> bool:
    """True if any tile has reached `win_rank`."""
    return board.max_rank() >= win_rank


def is_move_possible_in_direction(board: Board, direction: DIRECTION) -> bool:
    """
    Check if any tile can move or merge in the given specific direction.
    Args:
        board (Board): The game board.
        direction (DIRECTION): The direction to check.
    Returns:
       bool: True if at least one tile can slide into an empty neighbour or
             onto an equal-ranked one in that direction.
    """
    dr, dc = _STEPS[parse_direction(direction)]
    for r, c, tile in board.tiles():
        nr, nc = r + dr, c + dc
        if not board.in_bounds(nr, nc):
            continue
        neighbour = board.get(nr, nc)
        if neighbour is None or neighbour.rank == tile.rank:
            return True
    return False


def is_any_move_possible(board: Board) -> bool:
    return any(is_move_possible_in_direction(board, d) for d in DIRECTION)


def determine_game_status(board: Board, win_rank: int = DEFAULT_WIN_RANK,
                          stop_on_win: bool = True) -> GameProgressState:
    """
    Determines the current progress state of the game based on the board.
    Args:
        board (Board): The current game board.
        win_rank (int): The rank that signifies a win. Default is 11 (2048).
        stop_on_win (bool): When True a win outranks a stuck board; otherwise a
            stuck board is GAME_OVER even after the win tile appeared.
    Returns:
        GameProgressState: The current state (IN_PROGRESS, GAME_WON, GAME_OVER).
    """
    won = check_for_win(board, win_rank)
    if won and stop_on_win:
        return GameProgressState.GAME_WON
    if not is_any_move_possible(board):
        return GameProgressState.GAME_OVER
    return GameProgressState.GAME_WON if won else GameProgressState.IN_PROGRESS


# --- Engine ---

class GameEngine:
    """
    Runs games: spawns tiles, applies moves and tracks progress.

    One engine holds one random source; use a separate engine per game session
    when sessions must not influence each other's spawns. Calls on one engine
    must be serialized by the caller.
    """

    def __init__(self, seed: Optional[int] = None, win_rank: int = DEFAULT_WIN_RANK,
                 stop_on_win: bool = True, high_spawn_probability: float = HIGH_SPAWN_PROBABILITY):
        if not isinstance(win_rank, int) or win_rank < 2:
            raise ValueError("win_rank must be an integer >= 2.")
        if not 0.0 <= high_spawn_probability <= 1.0:
            raise ValueError("high_spawn_probability must be between 0 and 1.")
        self.win_rank = win_rank
        self.stop_on_win = stop_on_win
        self.high_spawn_probability = high_spawn_probability
        self._rng = random.Random(seed)

    def new_game(self, rows: int = DEFAULT_SIZE, columns: int = DEFAULT_SIZE) -> GameState:
        """
        Creates an empty board and spawns two starting tiles.
        Raises:
            InvalidDimensions: If rows or columns < 2.
        """
        board = Board.empty(rows, columns)
        next_id = 0
        for _ in range(2):
            board, next_id, _ = self._spawn(board, next_id)
        progress = determine_game_status(board, self.win_rank, self.stop_on_win)
        logger.debug("New %dx%d game: %s", rows, columns, board.ranks())
        return GameState(board=board, score=0, progress=progress, next_tile_id=next_id)

    def is_terminal(self, state: GameState) -> bool:
        if state.progress == GameProgressState.GAME_OVER:
            return True
        return state.progress == GameProgressState.GAME_WON and self.stop_on_win

    def apply_move(self, state: GameState, direction: Union[str, DIRECTION]) -> MoveResult:
        """
        Applies one move: slide, merge, then spawn if anything changed.
        Args:
            state (GameState): The snapshot to move from. Never mutated.
            direction: A DIRECTION or anything parse_direction accepts.
        Returns:
            MoveResult: moved=False with the board untouched for a no-op or a
                terminal state; otherwise the new state with one spawned tile.
        Raises:
            InvalidDirection: If direction is not recognized.
        """
        direction = parse_direction(direction)

        if self.is_terminal(state):
            logger.debug("Ignoring %s on finished game (%s)", direction.name, state.progress.name)
            return self._no_op(state, direction)

        # the board decides, not the progress a caller handed in
        checked = replace(state, progress=determine_game_status(state.board, self.win_rank, self.stop_on_win))
        if self.is_terminal(checked):
            logger.info("Game finished: %s", checked.progress.name)
            return self._no_op(checked, direction)

        outcome = process_move(state.board, direction)
        if not outcome.moved:
            return self._no_op(checked, direction)

        board, next_id, spawned = self._spawn(outcome.board, state.next_tile_id)
        updates = dict(outcome.updates)
        if spawned is not None:
            updates[next_id - 1] = TileUpdate.SPAWNED

        progress = determine_game_status(board, self.win_rank, self.stop_on_win)
        new_state = GameState(
            board=board,
            score=state.score + outcome.score_gained,
            progress=progress,
            next_tile_id=next_id,
        )
        logger.debug("Moved %s: +%d points, spawned at %s", direction.name, outcome.score_gained, spawned)
        if progress != state.progress:
            logger.info("Game progress changed to %s with score %d", progress.name, new_state.score)

        return MoveResult(
            state=new_state,
            direction=direction,
            moved=True,
            score_gained=outcome.score_gained,
            updates=updates,
            merged_away=dict(outcome.merged_away),
            origins=dict(outcome.origins),
            spawned=spawned,
        )

    def _spawn(self, board: Board, next_id: int) -> Tuple[Board, int, Optional[Coord]]:
        """Places one new tile on a random empty cell; a full board is returned as is."""
        empty_cells = board.empty_cells()
        if not empty_cells:
            return board, next_id, None
        row, col = self._rng.choice(empty_cells)
        rank = 2 if self._rng.random() < self.high_spawn_probability else 1
        return board.with_tile(row, col, Tile(id=next_id, rank=rank)), next_id + 1, (row, col)

    @staticmethod
    def _no_op(state: GameState, direction: DIRECTION) -> MoveResult:
        origins = {tile.id: (r, c) for r, c, tile in state.board.tiles()}
        return MoveResult(
            state=state,
            direction=direction,
            moved=False,
            updates={tile_id: TileUpdate.NONE for tile_id in origins},
            origins=origins,
        )
