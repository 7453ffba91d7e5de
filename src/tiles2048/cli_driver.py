# cli_driver.py
# Play the 2048 game in a terminal.

import argparse
import logging
from typing import Dict, List, Optional

from . import core, snapshot

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    core.GameProgressState.IN_PROGRESS: "Status: IN_PROGRESS",
    core.GameProgressState.GAME_WON: "YOU WON!",
    core.GameProgressState.GAME_OVER: "GAME OVER!",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Play 2048 in the terminal')
    parser.add_argument('--rows', type=int, default=None, help='Number of board rows (default 4)')
    parser.add_argument('--columns', type=int, default=None, help='Number of board columns (default 4)')
    parser.add_argument('--seed', type=int, default=None, help='RNG seed for tile spawns')
    parser.add_argument('--win-tile', type=int, default=core.tile_value(core.DEFAULT_WIN_RANK),
                        help='Tile value that wins the game (for testing, try 32 or 64)')
    parser.add_argument('--keep-playing', action='store_true', help='Keep playing after reaching the win tile')
    parser.add_argument('--load', metavar='PATH', default=None, help='Resume from a saved snapshot')
    parser.add_argument('--save', metavar='PATH', default=None, help='Write the final snapshot here on exit')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log every move')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s %(message)s',
    )

    # 1. Initialize game
    try:
        engine = core.GameEngine(
            seed=args.seed,
            win_rank=core.rank_for_value(args.win_tile),
            stop_on_win=not args.keep_playing,
        )
        if args.load:
            if args.rows is not None or args.columns is not None:
                parser.error('--rows/--columns cannot be combined with --load; the snapshot sets the size')
            state = snapshot.load(args.load)
        else:
            state = engine.new_game(
                core.DEFAULT_SIZE if args.rows is None else args.rows,
                core.DEFAULT_SIZE if args.columns is None else args.columns,
            )
    except ValueError as e:
        parser.error(str(e))
    updates: Dict[int, core.TileUpdate] = {
        tile.id: core.TileUpdate.SPAWNED for _, _, tile in state.board.tiles()
    }
    display_board_state(state, updates)

    # 2. Game Loop
    while not engine.is_terminal(state):
        move_input = input("Enter move (W/A/S/D for Up/Left/Down/Right, Q to quit): ").strip().upper()

        if move_input == 'Q':
            print("Quitting game.")
            break

        try:
            direction = core.parse_direction(move_input)
        except core.InvalidDirection:
            print("Invalid input. Use W, A, S, D.")
            continue

        # 3. Process the move; the engine spawns and re-evaluates progress
        result = engine.apply_move(state, direction)
        state = result.state
        updates = result.updates
        if not result.moved and not engine.is_terminal(state):
            print("Move did not change the board. Try a different direction.")

        display_board_state(state, updates)

    # 4. Game Ended
    print("\n--- Final Board State ---")
    display_board_state(state, {})
    if state.progress == core.GameProgressState.GAME_WON:
        print(f"Congratulations! You reached the {args.win_tile} tile!")
    elif state.progress == core.GameProgressState.GAME_OVER:
        print("No more moves possible. Better luck next time!")

    if args.save:
        snapshot.save(state, args.save)
        print(f"Game saved to {args.save}")
    return 0


# --- Display Functions ---

def render_board(board: core.Board, updates: Dict[int, core.TileUpdate]) -> str:
    """Formats the board one row per line, each tile prefixed by its transition symbol."""
    width = len(str(core.tile_value(board.max_rank())))
    lines = []
    for row in board.cells:
        cells = []
        for tile in row:
            if tile is None:
                cells.append(" " + ".".rjust(width))
            else:
                symbol = updates.get(tile.id, core.TileUpdate.NONE).symbol
                cells.append(symbol + str(tile.value).rjust(width))
        lines.append("  ".join(cells))
    return "\n".join(lines)


def display_board_state(state: core.GameState, updates: Dict[int, core.TileUpdate]):
    """Prints the board, score, and game status to the console."""
    print(f"\nScore: {state.score}")
    print(STATUS_MESSAGES.get(state.progress, f"Status: {state.progress.name}"))
    print(render_board(state.board, updates))
    print("-" * (state.board.columns * 6))


if __name__ == "__main__":
    raise SystemExit(main())
