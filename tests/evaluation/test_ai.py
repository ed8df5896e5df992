"""Tests for the heuristic AI player."""

import pytest

from backgammon_engine.core.board import apply_move, board_from_layout, compute_legal_moves
from backgammon_engine.core.cube import initial_cube
from backgammon_engine.core.types import BAR, OFF, CubeOwner, CubeState, MatchState, Move, Player
from backgammon_engine.evaluation.ai import (
    choose_move,
    move_features,
    score_moves,
    shooters,
    should_accept_double,
    should_offer_double,
)
from backgammon_engine.evaluation.weights import FACTOR_INDEX


def with_dice(board, dice, player=Player.WHITE):
    board.current_player = player
    board.dice_values = list(dice)
    board.remaining_moves = list(dice)
    return board


def feature(vec, name):
    return vec[FACTOR_INDEX[name]]


class TestMoveFeatures:
    def test_quiet_move(self, start_board):
        vec = move_features(with_dice(start_board, [6, 5]), Move(12, 7, 5))
        assert feature(vec, "pip_advance") == 5.0
        assert feature(vec, "make_point") == 0.0
        assert feature(vec, "blot_exposure") == 0.0
        assert feature(vec, "hit") == 0.0

    def test_running_leaves_blots(self, start_board):
        vec = move_features(with_dice(start_board, [6, 5]), Move(23, 17, 6))
        assert feature(vec, "blot_exposure") > 0
        assert feature(vec, "break_point") == 1.0

    def test_make_golden_point(self):
        board = board_from_layout({4: 1, 7: 3, 5: 4, 12: 5, 23: 2}, {0: 2, 11: 5, 16: 3, 18: 5})
        vec = move_features(with_dice(board, [3, 1]), Move(7, 4, 3))
        assert feature(vec, "make_point") == 1.0
        assert feature(vec, "golden_point") == 1.0
        assert feature(vec, "prime_extension") == 4.0  # points 4 and 5

    def test_anchor(self):
        board = board_from_layout({23: 2, 20: 1, 12: 5, 5: 7}, {0: 2, 11: 5, 16: 3, 18: 5})
        vec = move_features(with_dice(board, [3, 1]), Move(23, 20, 3))
        assert feature(vec, "anchor") == 1.0
        assert feature(vec, "best_anchor") == 1.0

    def test_bear_off_high_point(self):
        board = with_dice(board_from_layout({5: 1, 0: 1}, {18: 15}), [6, 1])
        high = move_features(board, Move(5, OFF, 6))
        low = move_features(board, Move(0, OFF, 1))
        assert feature(high, "bear_off") == 1.0
        assert feature(high, "bear_off_high_point") > feature(low, "bear_off_high_point")

    def test_overstack(self):
        board = board_from_layout({5: 5, 7: 1, 12: 9}, {18: 15})
        vec = move_features(with_dice(board, [2, 1]), Move(7, 5, 2))
        assert feature(vec, "overstack") == 2.0

    def test_bar_entry(self):
        board = with_dice(board_from_layout({5: 14}, {0: 15}, white_bar=1), [3, 1])
        vec = move_features(board, Move(BAR, 21, 3))
        assert feature(vec, "bar_entry") == 1.0

    def test_shooters(self, start_board):
        board = apply_move(start_board, Move(23, 17, 6)).board
        # Black 16 (1 away) and 11 (6 away), two counted from each
        assert shooters(board, 17, Player.WHITE) == 4.0


class TestScoreMoves:
    def test_one_entry_per_legal_move(self, start_board):
        board = with_dice(start_board, [4, 2])
        scored = score_moves(board)
        assert [s.move for s in scored] == compute_legal_moves(board, [4, 2])

    def test_breakdown_lists_nonzero_factors(self, start_board):
        scored = score_moves(with_dice(start_board, [6, 5]))
        for s in scored:
            assert all(value != 0.0 for value in s.features.values())
            assert "pip_advance" in s.features


class TestChooseMove:
    """Move choice, including isolated factors via injected weights."""

    def test_no_legal_move(self):
        black = {p: 2 for p in range(18, 24)}
        black[0] = 3
        board = with_dice(board_from_layout({5: 14}, black, white_bar=1), [4, 2])
        assert choose_move(board) is None

    def test_book_move(self, start_board):
        assert choose_move(with_dice(start_board, [3, 1])) == Move(7, 4, 3)

    def test_tie_goes_to_first_move(self, start_board):
        board = with_dice(start_board, [6, 5])
        assert choose_move(board, base_weights={}, use_book=False) == Move(7, 1, 6)

    def test_hit_factor_alone(self):
        board = board_from_layout(
            {12: 5, 7: 3, 5: 5, 23: 2},
            {9: 1, 0: 2, 11: 4, 16: 3, 18: 5},
        )
        board = with_dice(board, [3, 1])
        move = choose_move(board, base_weights={"hit": 1.0}, use_book=False, adjust=False)
        assert move == Move(12, 9, 3)

    def test_make_point_factor_alone(self):
        board = board_from_layout({4: 1, 7: 3, 5: 4, 12: 5, 23: 2}, {0: 2, 11: 5, 16: 3, 18: 5})
        board = with_dice(board, [3, 1])
        move = choose_move(board, base_weights={"make_point": 1.0}, use_book=False, adjust=False)
        assert move == Move(5, 4, 1)

    def test_bears_off_in_bear_off_phase(self):
        board = with_dice(board_from_layout({5: 2, 3: 2}, {18: 15}), [6, 2])
        move = choose_move(board)
        assert move.to_point == OFF

    def test_hits_in_blitz(self):
        board = board_from_layout(
            {1: 2, 2: 2, 3: 2, 7: 4, 12: 5},
            {4: 1, 11: 5, 16: 4, 18: 4},
            black_bar=1,
        )
        move = choose_move(with_dice(board, [3, 1]), use_book=False)
        assert move.to_point == 4

    def test_does_not_mutate(self, start_board):
        board = with_dice(start_board, [6, 4])
        before = board.copy()
        choose_move(board)
        score_moves(board)
        assert board == before

    def test_always_legal(self, start_board):
        for dice in ([1, 2], [5, 5, 5, 5], [6, 4], [2, 3]):
            board = with_dice(start_board.copy(), dice)
            assert choose_move(board, use_book=False) in compute_legal_moves(board, dice)


class TestCubeDecisions:
    def race_lead(self):
        return board_from_layout({0: 3}, {18: 15})

    def test_offer_when_far_ahead(self):
        assert should_offer_double(self.race_lead(), Player.WHITE, initial_cube())

    def test_no_offer_without_cube_access(self):
        cube = CubeState(value=2, owner=CubeOwner.BLACK)
        assert not should_offer_double(self.race_lead(), Player.WHITE, cube)

    def test_no_offer_in_crawford_game(self):
        match = MatchState(target_points=5, black_score=4, crawford=True)
        assert not should_offer_double(self.race_lead(), Player.WHITE, initial_cube(), match)

    def test_no_offer_at_start(self, start_board):
        assert not should_offer_double(start_board, Player.WHITE, initial_cube())

    def test_take_and_pass(self, start_board):
        assert should_accept_double(start_board, Player.BLACK)
        assert not should_accept_double(self.race_lead(), Player.BLACK)


@pytest.mark.parametrize("dice", [[6, 5], [4, 4, 4, 4]])
def test_black_choices_are_legal(start_board, dice):
    board = with_dice(start_board, dice, Player.BLACK)
    assert choose_move(board) in compute_legal_moves(board, dice)
