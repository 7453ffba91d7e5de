import unittest

from tiles2048.core import (
    DIRECTION,
    Board,
    GameProgressState,
    InvalidDimensions,
    InvalidDirection,
    Tile,
    TileUpdate,
    check_for_win,
    determine_game_status,
    is_any_move_possible,
    is_move_possible_in_direction,
    parse_direction,
    process_move,
    rank_for_value,
    slide_line,
    tile_value,
)

from helpers import STUCK_RANKS, mk_state


class TestSlideLine(unittest.TestCase):
    def test_given_gap_before_third_equal_tile_when_sliding_then_only_leading_pair_merges(self):
        line = [Tile(0, 1), Tile(1, 1), None, Tile(2, 1)]
        new_line, merges, gained = slide_line(line)
        self.assertEqual(new_line, [Tile(0, 2), Tile(2, 1), None, None])
        self.assertEqual(merges, [(0, 1)])
        self.assertEqual(gained, 4)

    def test_given_four_equal_tiles_when_sliding_then_two_pairs_and_no_chain(self):
        line = [Tile(0, 1), Tile(1, 1), Tile(2, 1), Tile(3, 1)]
        new_line, merges, gained = slide_line(line)
        self.assertEqual(new_line, [Tile(0, 2), Tile(2, 2), None, None])
        self.assertEqual(merges, [(0, 1), (2, 3)])
        self.assertEqual(gained, 8)

    def test_given_merged_tile_equal_to_next_when_sliding_then_it_does_not_merge_again(self):
        new_line, merges, _ = slide_line([Tile(0, 1), Tile(1, 1), Tile(2, 2)])
        self.assertEqual(new_line, [Tile(0, 2), Tile(2, 2), None])
        self.assertEqual(merges, [(0, 1)])

    def test_given_larger_leader_when_sliding_then_trailing_pair_merges(self):
        new_line, merges, gained = slide_line([Tile(0, 2), None, Tile(1, 1), Tile(2, 1)])
        self.assertEqual(new_line, [Tile(0, 2), Tile(1, 2), None, None])
        self.assertEqual(merges, [(1, 2)])
        self.assertEqual(gained, 4)

    def test_given_empty_line_when_sliding_then_nothing_changes(self):
        self.assertEqual(slide_line([None, None]), ([None, None], [], 0))


class TestProcessMove(unittest.TestCase):
    def test_given_row_when_moving_right_then_trailing_edge_merges_and_rest_slides(self):
        state = mk_state([
            [1, 1, 0, 1],
            [0, 0, 0, 0],
            [0, 0, 0, 0],
            [0, 0, 0, 0],
        ])
        out = process_move(state.board, DIRECTION.RIGHT)
        self.assertTrue(out.moved)
        self.assertEqual(out.board.ranks()[0], [0, 0, 1, 2])
        self.assertEqual(out.board.get(0, 3).id, 2)
        self.assertEqual(out.board.get(0, 2).id, 0)
        self.assertEqual(out.merged_away, {1: 2})
        self.assertEqual(out.updates, {2: TileUpdate.MERGED, 0: TileUpdate.MOVED_RIGHT})
        self.assertEqual(out.origins, {0: (0, 0), 1: (0, 1), 2: (0, 3)})
        self.assertEqual(out.score_gained, 4)

    def test_given_column_when_moving_up_and_down_then_survivor_is_leading_tile(self):
        state = mk_state([
            [0, 0],
            [1, 0],
            [0, 0],
            [1, 0],
        ])
        up = process_move(state.board, DIRECTION.UP)
        self.assertEqual(up.board.get(0, 0), Tile(0, 2))
        self.assertEqual(up.merged_away, {1: 0})
        self.assertEqual(up.updates, {0: TileUpdate.MERGED})

        down = process_move(state.board, DIRECTION.DOWN)
        self.assertEqual(down.board.get(3, 0), Tile(1, 2))
        self.assertEqual(down.merged_away, {0: 1})
        self.assertEqual(down.updates, {1: TileUpdate.MERGED})

    def test_given_packed_row_when_moving_toward_packed_edge_then_not_moved(self):
        state = mk_state([
            [1, 2, 0],
            [0, 0, 0],
        ])
        out = process_move(state.board, DIRECTION.LEFT)
        self.assertFalse(out.moved)
        self.assertEqual(out.board, state.board)
        self.assertEqual(set(out.updates.values()), {TileUpdate.NONE})

    def test_given_string_direction_when_processing_then_parsed(self):
        state = mk_state([[0, 1], [0, 0]])
        out = process_move(state.board, "left")
        self.assertEqual(out.updates, {0: TileUpdate.MOVED_LEFT})


class TestGameStatus(unittest.TestCase):
    def test_given_stuck_full_board_when_checking_moves_then_none_possible(self):
        board = mk_state(STUCK_RANKS).board
        for direction in DIRECTION:
            self.assertFalse(is_move_possible_in_direction(board, direction))
        self.assertFalse(is_any_move_possible(board))
        self.assertEqual(determine_game_status(board), GameProgressState.GAME_OVER)

    def test_given_full_board_with_equal_neighbours_when_checking_then_only_that_axis_moves(self):
        ranks = [row[:] for row in STUCK_RANKS]
        ranks[0][0] = 3
        ranks[0][1] = 3
        board = mk_state(ranks).board
        self.assertTrue(is_move_possible_in_direction(board, DIRECTION.LEFT))
        self.assertTrue(is_move_possible_in_direction(board, DIRECTION.RIGHT))
        self.assertFalse(is_move_possible_in_direction(board, DIRECTION.UP))
        self.assertEqual(determine_game_status(board), GameProgressState.IN_PROGRESS)

    def test_given_win_rank_tile_when_determining_status_then_won(self):
        board = mk_state([[11, 0], [0, 0]]).board
        self.assertTrue(check_for_win(board))
        self.assertFalse(check_for_win(board, win_rank=12))
        self.assertEqual(determine_game_status(board), GameProgressState.GAME_WON)

    def test_given_stuck_board_with_win_tile_when_keep_playing_then_lost(self):
        ranks = [row[:] for row in STUCK_RANKS]
        ranks[0][0] = 11
        board = mk_state(ranks).board
        self.assertEqual(determine_game_status(board, stop_on_win=True), GameProgressState.GAME_WON)
        self.assertEqual(determine_game_status(board, stop_on_win=False), GameProgressState.GAME_OVER)


class TestModel(unittest.TestCase):
    def test_given_direction_inputs_when_parsing_then_names_and_keys_accepted(self):
        self.assertEqual(parse_direction("left"), DIRECTION.LEFT)
        self.assertEqual(parse_direction(" Up "), DIRECTION.UP)
        self.assertEqual(parse_direction("w"), DIRECTION.UP)
        self.assertEqual(parse_direction("D"), DIRECTION.RIGHT)
        self.assertIs(parse_direction(DIRECTION.DOWN), DIRECTION.DOWN)
        for bad in ("north", "", 3, None):
            with self.assertRaises(InvalidDirection):
                parse_direction(bad)

    def test_given_invalid_direction_error_when_caught_as_value_error_then_matches(self):
        with self.assertRaises(ValueError):
            parse_direction("sideways")

    def test_given_ranks_when_converting_values_then_powers_of_two(self):
        self.assertEqual(tile_value(0), 0)
        self.assertEqual(tile_value(1), 2)
        self.assertEqual(tile_value(11), 2048)
        self.assertEqual(rank_for_value(2048), 11)
        self.assertEqual(rank_for_value(2), 1)
        for bad in (0, 1, 3, 100):
            with self.assertRaises(ValueError):
                rank_for_value(bad)

    def test_given_small_dimensions_when_building_board_then_invalid_dimensions(self):
        with self.assertRaises(InvalidDimensions):
            Board.empty(1, 4)
        with self.assertRaises(InvalidDimensions):
            Board.empty(4, 0)
        board = Board.empty(2, 3)
        self.assertEqual(len(board.empty_cells()), 6)

    def test_given_same_tile_twice_when_building_board_then_rejected(self):
        with self.assertRaises(ValueError):
            Board.from_tiles(2, 2, [(0, 0, Tile(0, 1)), (1, 1, Tile(0, 1))])
        with self.assertRaises(ValueError):
            Board.from_tiles(2, 2, [(0, 0, Tile(0, 1)), (0, 0, Tile(1, 1))])
        with self.assertRaises(ValueError):
            Board.from_tiles(2, 2, [(2, 0, Tile(0, 1))])

    def test_given_board_when_reading_grids_then_ranks_and_values_match(self):
        board = mk_state([[1, 0], [0, 3]]).board
        self.assertEqual(board.ranks(), [[1, 0], [0, 3]])
        self.assertEqual(board.values(), [[2, 0], [0, 8]])
        self.assertEqual(board.max_rank(), 3)
        self.assertEqual(board.empty_cells(), [(0, 1), (1, 0)])

    def test_given_update_tags_when_rendering_then_symbols(self):
        self.assertEqual(TileUpdate.SPAWNED.symbol, "+")
        self.assertEqual(TileUpdate.MERGED.symbol, "×")
        self.assertEqual(TileUpdate.MOVED_LEFT.symbol, "←")
        self.assertEqual(TileUpdate.NONE.symbol, " ")


if __name__ == "__main__":
    unittest.main()
