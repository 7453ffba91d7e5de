# snapshot.py
# Save/restore format for a GameState: dimensions, score, progress, the next
# tile id and an ordered list of [row, column, tile_id, rank] entries.

import json
import logging
from typing import Any, Dict, List

from . import core

logger = logging.getLogger(__name__)

# Far above anything reachable in play; keeps restored values small
MAX_RANK = 64


class InvalidSnapshot(ValueError):
    """Raised when a snapshot cannot be turned back into a consistent GameState."""


def state_to_dict(state: core.GameState) -> Dict[str, Any]:
    """
    Serializes a game state to plain JSON-compatible data.
    Args:
        state (core.GameState): The state to serialize.
    Returns:
        Dict[str, Any]: Snapshot with tiles listed in row-major order.
    """
    board = state.board
    return {
        "rows": board.rows,
        "columns": board.columns,
        "score": state.score,
        "progress": state.progress.value,
        "next_tile_id": state.next_tile_id,
        "tiles": [[r, c, tile.id, tile.rank] for r, c, tile in board.tiles()],
    }


def state_from_dict(data: Dict[str, Any]) -> core.GameState:
    """
    Rebuilds a game state from `state_to_dict` output.
    Raises:
        core.InvalidDimensions: If rows or columns are below the minimum.
        InvalidSnapshot: For missing keys, wrong types or inconsistent tiles.
    """
    try:
        rows = data["rows"]
        columns = data["columns"]
        score = data["score"]
        progress = core.GameProgressState(data["progress"])
        next_tile_id = data["next_tile_id"]
        entries: List = list(data["tiles"])
    except KeyError as e:
        raise InvalidSnapshot(f"Snapshot is missing field {e.args[0]!r}.") from e
    except (TypeError, ValueError) as e:
        raise InvalidSnapshot(f"Snapshot is malformed: {e}") from e

    for name, value in (("rows", rows), ("columns", columns), ("score", score), ("next_tile_id", next_tile_id)):
        if not isinstance(value, int) or isinstance(value, bool):
            raise InvalidSnapshot(f"Snapshot field {name!r} must be an integer.")

    placements = []
    for entry in entries:
        if not isinstance(entry, (list, tuple)) or len(entry) != 4 or not all(isinstance(v, int) and not isinstance(v, bool) for v in entry):
            raise InvalidSnapshot(f"Tile entry {entry!r} must be [row, column, tile_id, rank].")
        row, col, tile_id, rank = entry
        if not 1 <= rank <= MAX_RANK:
            raise InvalidSnapshot(f"Tile {tile_id} has rank {rank}; ranks must be between 1 and {MAX_RANK}.")
        placements.append((row, col, core.Tile(id=tile_id, rank=rank)))

    try:
        board = core.Board.from_tiles(rows, columns, placements)
        return core.GameState(board=board, score=score, progress=progress, next_tile_id=next_tile_id)
    except core.InvalidDimensions:
        raise
    except ValueError as e:
        raise InvalidSnapshot(str(e)) from e


def dumps(state: core.GameState) -> str:
    return json.dumps(state_to_dict(state), indent=2)


def loads(text: str) -> core.GameState:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidSnapshot(f"Snapshot is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidSnapshot("Snapshot must be a JSON object.")
    return state_from_dict(data)


def save(state: core.GameState, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(dumps(state))
    logger.info("Saved game snapshot to %s", path)


def load(path: str) -> core.GameState:
    with open(path, "r", encoding="utf-8") as f:
        state = loads(f.read())
    logger.info("Loaded game snapshot from %s", path)
    return state
