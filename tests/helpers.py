from tiles2048.core import Board, GameProgressState, GameState, Tile


def mk_state(rows, score=0, progress=GameProgressState.IN_PROGRESS):
    """Builds a state from a rank grid (0 = empty); ids count up in row-major order."""
    placements = []
    next_id = 0
    for r, row in enumerate(rows):
        assert len(row) == len(rows[0])
        for c, rank in enumerate(row):
            if rank:
                placements.append((r, c, Tile(id=next_id, rank=rank)))
                next_id += 1
    board = Board.from_tiles(len(rows), len(rows[0]), placements)
    return GameState(board=board, score=score, progress=progress, next_tile_id=next_id)


STUCK_RANKS = [
    [1, 2, 1, 2],
    [2, 1, 2, 1],
    [1, 2, 1, 2],
    [2, 1, 2, 1],
]
