"""Tests for the turn controller state machine."""

import numpy as np
import pytest

from backgammon_engine.core.board import board_from_layout, initial_board, is_valid_board
from backgammon_engine.core.types import (
    OFF,
    AIConfig,
    CubeOwner,
    GameConfig,
    MatchState,
    Move,
    MoveRecord,
    Player,
    TurnState,
)
from backgammon_engine.game.controller import CommandResult, GameController
from backgammon_engine.game.events import (
    CheckerHit,
    CubeAccepted,
    CubeDeclined,
    CubeOffered,
    DiceRolled,
    GameStarted,
    GameWon,
    MatchWon,
    MoveApplied,
    MoveUndone,
    NoLegalMoves,
    OpeningRoll,
    OpeningRollTied,
    TurnEnded,
)


def closed_out_board():
    """White on the bar facing a closed Black home board."""
    black = {p: 2 for p in range(18, 24)}
    black[0] = 3
    return board_from_layout({5: 14}, black, white_bar=1)


def last_checker_board():
    """White needs one more checker off; Black has borne off none."""
    return board_from_layout({0: 1}, {18: 15})


class TestOpeningRoll:
    def test_starts_in_opening_roll(self):
        controller = GameController(GameConfig(seed=1))
        assert controller.turn_state == TurnState.OPENING_ROLL

    def test_tie_rolls_again(self):
        controller = GameController(GameConfig(seed=1))
        result = controller.roll_dice([3, 3])
        assert result.success
        assert result.events == (OpeningRollTied(3),)
        assert controller.turn_state == TurnState.OPENING_ROLL
        assert controller.board.remaining_moves == []

    def test_higher_die_moves_first(self):
        controller = GameController(GameConfig(seed=1))
        result = controller.roll_dice([3, 1])
        assert result.events == (OpeningRoll(3, 1, Player.WHITE), DiceRolled(Player.WHITE, (3, 1)))
        assert controller.turn_state == TurnState.ROLLED_DICE
        assert controller.board.remaining_moves == [3, 1]

    def test_black_can_win_the_opening_roll(self):
        controller = GameController(GameConfig(seed=1))
        controller.roll_dice([2, 5])
        assert controller.board.current_player == Player.BLACK
        assert controller.board.remaining_moves == [2, 5]
        assert Move(11, 16, 5) in controller.get_legal_moves()

    def test_random_opening_roll(self):
        controller = GameController(GameConfig(seed=11))
        for _ in range(20):
            if controller.turn_state != TurnState.OPENING_ROLL:
                break
            controller.roll_dice()
        assert controller.turn_state == TurnState.ROLLED_DICE
        assert len(controller.board.remaining_moves) == 2


class TestRollDice:
    def test_roll(self, controller):
        result = controller.roll_dice([6, 5])
        assert result == CommandResult(True, "", (DiceRolled(Player.WHITE, (6, 5)),))
        assert controller.turn_state == TurnState.ROLLED_DICE

    def test_doubles_give_four_moves(self, controller):
        controller.roll_dice([4, 4])
        assert controller.board.remaining_moves == [4, 4, 4, 4]

    def test_seeded_rolls_repeat(self):
        rolls = []
        for _ in range(2):
            controller = GameController(GameConfig(opening_roll=False, seed=42))
            controller.roll_dice()
            rolls.append(list(controller.board.dice_values))
        assert rolls[0] == rolls[1]

    def test_cannot_roll_twice(self, controller):
        controller.roll_dice([6, 5])
        result = controller.roll_dice([2, 1])
        assert not result.success
        assert result.reason == "the dice have already been rolled"
        assert controller.board.remaining_moves == [6, 5]

    def test_malformed_values(self, controller):
        with pytest.raises(ValueError):
            controller.roll_dice([7, 1])
        with pytest.raises(ValueError):
            controller.roll_dice([1])
        assert controller.turn_state == TurnState.WAITING_FOR_ROLL

    def test_no_legal_moves_ends_turn(self, controller):
        """A closed-out checker forfeits the roll; no die is consumed."""
        controller.board = closed_out_board()
        result = controller.roll_dice([4, 2])
        assert result.success
        assert [e.type for e in result.events] == ["DiceRolled", "NoLegalMoves", "TurnEnded"]
        assert result.events[1] == NoLegalMoves(Player.WHITE, (4, 2))
        assert controller.turn_state == TurnState.WAITING_FOR_ROLL
        assert controller.board.current_player == Player.BLACK
        assert controller.board.bar[Player.WHITE] == 1

    def test_no_legal_moves_without_auto_end(self):
        controller = GameController(GameConfig(opening_roll=False, auto_end_turn=False))
        controller.board = closed_out_board()
        result = controller.roll_dice([4, 2])
        assert result.events[-1].type == "NoLegalMoves"
        assert controller.turn_state == TurnState.ROLLED_DICE
        assert controller.end_turn().events == (TurnEnded(Player.WHITE, Player.BLACK),)


class TestRequestMove:
    def test_must_roll_first(self, controller):
        result = controller.request_move(23, 17)
        assert not result.success
        assert result.reason == "roll the dice first"

    def test_first_move(self, controller):
        controller.roll_dice([6, 5])
        result = controller.request_move(23, 17)
        assert result.success
        assert result.events == (MoveApplied(23, 17, Player.WHITE, 6),)
        assert controller.turn_state == TurnState.SELECTING_MOVE
        assert controller.board.remaining_moves == [5]
        assert controller.history == [MoveRecord(23, 17, Player.WHITE, 6)]

    def test_last_die_ends_turn(self, controller):
        controller.roll_dice([6, 5])
        controller.request_move(23, 17)
        result = controller.request_move(17, 12)
        assert [e.type for e in result.events] == ["MoveApplied", "TurnEnded"]
        assert controller.turn_state == TurnState.WAITING_FOR_ROLL
        assert controller.board.current_player == Player.BLACK
        assert controller.board.dice_values == []
        assert len(controller.history) == 2

    @pytest.mark.parametrize("from_point,to_point,reason", [
        (23, 18, "point 18 is blocked"),
        (0, 6, "no white checker on point 0"),
        (12, 14, "checkers cannot move backward"),
        (12, 8, "no remaining die plays a distance of 4"),
        (5, OFF, "all checkers must be in the home board to bear off"),
    ])
    def test_rejected_moves_leave_state_unchanged(self, controller, from_point, to_point, reason):
        controller.roll_dice([6, 5])
        before = controller.get_game_state()
        result = controller.request_move(from_point, to_point)
        assert not result.success
        assert result.reason == reason
        assert result.events == ()
        assert controller.get_game_state() == before

    def test_hit(self, controller):
        controller.board = board_from_layout(
            {12: 5, 7: 3, 5: 5, 23: 2},
            {9: 1, 0: 2, 11: 4, 16: 3, 18: 5},
        )
        controller.roll_dice([3, 1])
        result = controller.request_move(12, 9)
        assert result.events == (
            MoveApplied(12, 9, Player.WHITE, 3, hit_point=9),
            CheckerHit(9, Player.BLACK),
        )
        assert controller.board.bar[Player.BLACK] == 1
        assert controller.history[-1].hit_point == 9

    def test_bar_must_enter_first(self, controller):
        controller.board = board_from_layout({5: 5, 7: 3, 12: 5, 23: 1}, {0: 2, 11: 5, 16: 3, 18: 5}, white_bar=1)
        controller.roll_dice([3, 1])
        result = controller.request_move(12, 9)
        assert result.reason == "checkers on the bar must re-enter first"

    def test_bear_off_wins_the_game(self, controller):
        controller.board = last_checker_board()
        controller.roll_dice([1, 2])
        result = controller.request_move(0, OFF)
        assert result.success
        assert result.events == (
            MoveApplied(0, OFF, Player.WHITE, 1),
            GameWon(Player.WHITE, 2, 1, 2),
            MatchWon(Player.WHITE, 2, 0),
        )
        assert controller.turn_state == TurnState.GAME_OVER
        assert controller.outcome.winner == Player.WHITE
        assert controller.outcome.is_gammon
        assert controller.match_over

    def test_last_checker_from_point_two(self, controller):
        controller.board = board_from_layout({2: 1}, {18: 14}, black_off=1)
        controller.roll_dice([3, 1])
        result = controller.request_move(2, OFF)
        assert result.events[0] == MoveApplied(2, OFF, Player.WHITE, 3)
        assert result.events[1] == GameWon(Player.WHITE, 1, 1, 1)
        assert controller.board.borne_off[Player.WHITE] == 15
        assert controller.turn_state == TurnState.GAME_OVER

    def test_nothing_works_after_game_over(self, controller):
        controller.board = last_checker_board()
        controller.roll_dice([1, 2])
        controller.request_move(0, OFF)
        assert controller.roll_dice().reason == "the game is over"
        assert controller.request_move(5, 3).reason == "the game is over"
        assert controller.end_turn().reason == "the game is over"
        assert controller.undo_move().reason == "nothing to undo"
        assert controller.get_legal_moves() == []


class TestEndTurn:
    def test_rejected_while_moves_remain(self, controller):
        controller.roll_dice([6, 5])
        result = controller.end_turn()
        assert not result.success
        assert result.reason == "legal moves remain"

    def test_rejected_before_rolling(self, controller):
        assert controller.end_turn().reason == "no turn in progress"

    def test_manual_end_turn(self):
        controller = GameController(GameConfig(opening_roll=False, auto_end_turn=False))
        controller.roll_dice([6, 5])
        controller.request_move(23, 17)
        controller.request_move(17, 12)
        assert controller.turn_state == TurnState.SELECTING_MOVE
        result = controller.end_turn()
        assert result.events == (TurnEnded(Player.WHITE, Player.BLACK),)
        assert controller.board.current_player == Player.BLACK


class TestUndo:
    def test_nothing_to_undo(self, controller):
        assert controller.undo_move().reason == "nothing to undo"

    def test_undo_restores_board(self, controller):
        controller.roll_dice([6, 5])
        before = controller.board.copy()
        controller.request_move(23, 17)
        result = controller.undo_move()
        assert result.events == (MoveUndone(23, 17, Player.WHITE, 6),)
        assert controller.board == before
        assert controller.turn_state == TurnState.ROLLED_DICE
        assert controller.history == []

    def test_undo_one_of_several(self, controller):
        controller.roll_dice([2, 2])
        controller.request_move(12, 10)
        controller.request_move(10, 8)
        controller.undo_move()
        assert controller.turn_state == TurnState.SELECTING_MOVE
        assert controller.board.remaining_moves == [2, 2, 2]
        assert controller.history == [MoveRecord(12, 10, Player.WHITE, 2)]
        assert controller.board.get_checkers(Player.WHITE, 10) == 1

    def test_undo_puts_hit_checker_back(self, controller):
        controller.board = board_from_layout(
            {12: 5, 7: 3, 5: 5, 23: 2},
            {9: 1, 0: 2, 11: 4, 16: 3, 18: 5},
        )
        controller.roll_dice([3, 1])
        controller.request_move(12, 9)
        controller.undo_move()
        assert controller.board.bar[Player.BLACK] == 0
        assert controller.board.get_checkers(Player.BLACK, 9) == 1

    def test_no_undo_across_turns(self, controller):
        controller.roll_dice([6, 5])
        controller.request_move(23, 17)
        controller.request_move(17, 12)
        assert not controller.undo_move().success

    def test_undo_depth(self):
        controller = GameController(GameConfig(opening_roll=False, undo_depth=1))
        controller.roll_dice([2, 2])
        controller.request_move(12, 10)
        controller.request_move(10, 8)
        assert controller.undo_move().success
        assert controller.undo_move().reason == "nothing to undo"


class TestDoublingCube:
    def test_decline_awards_game(self, controller):
        """Declining gives the offerer the game at the current cube value."""
        offered = controller.offer_double()
        assert offered.events == (CubeOffered(Player.WHITE, 1),)
        assert controller.cube.is_offered

        result = controller.decline_double()
        assert result.events == (
            CubeDeclined(Player.BLACK),
            GameWon(Player.WHITE, 1, 1, 1, declined=True),
            MatchWon(Player.WHITE, 1, 0),
        )
        assert controller.turn_state == TurnState.GAME_OVER
        assert controller.outcome.declined
        assert controller.match.white_score == 1

    def test_accept_doubles_and_transfers(self, controller):
        controller.offer_double()
        result = controller.accept_double()
        assert result.events == (CubeAccepted(Player.BLACK, 2),)
        assert controller.cube.value == 2
        assert controller.cube.owner == CubeOwner.BLACK
        assert not controller.cube.is_offered
        assert controller.roll_dice([6, 5]).success

    def test_owner_only_may_redouble(self, controller):
        controller.offer_double()
        controller.accept_double()
        assert controller.offer_double().reason == "white cannot double now"

    def test_pending_double_blocks_roll(self, controller):
        controller.offer_double()
        assert controller.roll_dice().reason == "a double is waiting for an answer"

    def test_only_before_rolling(self, controller):
        controller.roll_dice([6, 5])
        assert controller.offer_double().reason == "a double can only be offered before rolling"

    def test_not_during_opening_roll(self):
        controller = GameController(GameConfig(seed=3))
        assert not controller.offer_double().success

    def test_only_player_to_move(self, controller):
        assert controller.offer_double(Player.BLACK).reason == "it is white's turn"

    def test_disabled(self):
        controller = GameController(GameConfig(opening_roll=False, cube_enabled=False))
        assert controller.offer_double().reason == "the doubling cube is disabled"

    def test_answer_without_offer(self, controller):
        assert controller.accept_double().reason == "no double has been offered"
        assert controller.decline_double().reason == "no double has been offered"

    def test_cube_scales_points(self, controller):
        controller.offer_double()
        controller.accept_double()
        controller.board = last_checker_board()
        controller.roll_dice([1, 2])
        result = controller.request_move(0, OFF)
        assert GameWon(Player.WHITE, 2, 2, 4) in result.events
        assert controller.match.white_score == 4


class TestMatchPlay:
    def match_controller(self, length=3, **kwargs):
        return GameController(GameConfig(opening_roll=False, match_length=length, **kwargs))

    def test_crawford_game_blocks_doubling(self):
        controller = self.match_controller()
        controller.match = MatchState(target_points=3, black_score=2, crawford=True)
        assert controller.offer_double().reason == "white cannot double now"

    def test_crawford_rule_can_be_disabled(self):
        controller = self.match_controller(crawford=False)
        controller.match = MatchState(target_points=3, black_score=2, crawford=True)
        assert controller.offer_double().success

    def test_reaching_match_point_starts_crawford(self):
        controller = self.match_controller()
        controller.match = MatchState(target_points=3, white_score=1, games_played=1)
        controller.offer_double()
        result = controller.decline_double()
        assert "MatchWon" not in [e.type for e in result.events]
        assert controller.match.white_score == 2
        assert controller.match.crawford

    def test_next_game(self):
        controller = self.match_controller()
        assert controller.next_game().reason == "the current game is not over"
        controller.offer_double()
        controller.decline_double()
        result = controller.next_game()
        assert result.success
        assert result.events[0].type == "GameStarted"
        assert result.events[0].game_number == 2
        assert controller.turn_state == TurnState.WAITING_FOR_ROLL
        assert controller.board == initial_board()
        assert controller.cube.value == 1
        assert controller.history == []
        assert controller.match.white_score == 1

    def test_no_next_game_after_match(self, controller):
        controller.offer_double()
        controller.decline_double()
        assert controller.next_game().reason == "the match is over"

    def test_new_game_resets_match(self, controller):
        controller.offer_double()
        controller.decline_double()
        result = controller.new_game(match_length=5)
        assert isinstance(result.events[0], GameStarted)
        assert result.events[0].first_player == Player.WHITE
        assert controller.match == MatchState(target_points=5)
        assert controller.outcome is None

    def test_new_game_waits_for_opening_roll(self):
        controller = GameController(GameConfig(seed=2))
        result = controller.new_game()
        assert result.events[0].first_player is None
        assert result.events[0].board["current_player"] == "white"

    def test_invalid_match_length(self, controller):
        with pytest.raises(ValueError):
            controller.new_game(match_length=0)


class TestListeners:
    def test_listener_sees_every_event(self, controller, event_sink):
        controller.subscribe(event_sink)
        roll = controller.roll_dice([6, 5])
        move = controller.request_move(23, 17)
        assert list(roll.events + move.events) == event_sink
        assert event_sink.types() == ["DiceRolled", "MoveApplied"]

    def test_rejections_emit_nothing(self, controller, event_sink):
        controller.subscribe(event_sink)
        controller.request_move(23, 17)
        assert event_sink == []

    def test_unsubscribe(self, controller, event_sink):
        controller.subscribe(event_sink)
        controller.unsubscribe(event_sink)
        controller.roll_dice([6, 5])
        assert event_sink == []


class TestQueries:
    def test_legal_moves_before_roll(self, controller):
        assert controller.get_legal_moves() == []

    def test_legal_moves_after_roll(self, controller):
        controller.roll_dice([6, 5])
        assert controller.get_legal_moves() == [
            Move(7, 1, 6), Move(7, 2, 5), Move(12, 6, 6), Move(12, 7, 5), Move(23, 17, 6),
        ]

    def test_snapshot_is_detached(self, controller):
        snapshot = controller.get_game_state()
        snapshot.board.set_checkers(Player.WHITE, 23, 0)
        assert controller.board.get_checkers(Player.WHITE, 23) == 2
        assert snapshot.current_player == Player.WHITE
        assert snapshot.turn_state == TurnState.WAITING_FOR_ROLL

    def test_snapshot_config_is_detached(self, controller):
        snapshot = controller.get_game_state()
        snapshot.config.undo_depth = 0
        snapshot.config.cube_enabled = False
        snapshot.config.ai.enabled = True
        assert controller.config.undo_depth == 20
        assert controller.config.cube_enabled
        assert not controller.config.ai.enabled
        assert controller.offer_double().success

    def test_pip_count(self, controller):
        assert controller.calculate_pip_count(Player.WHITE) == 167
        assert controller.calculate_pip_count(Player.BLACK) == 167


class TestComputerOpponent:
    def ai_controller(self, **kwargs):
        ai = AIConfig(enabled=True, player=Player.BLACK, difficulty="hard")
        return GameController(GameConfig(opening_roll=False, seed=3, ai=ai, **kwargs))

    def test_disabled(self, controller):
        assert controller.ai_step().reason == "the computer opponent is disabled"

    def test_waits_for_human(self):
        controller = self.ai_controller()
        assert not controller.ai_has_control()
        assert controller.ai_step().reason == "it is not the computer's turn"

    def test_plays_full_turn(self):
        controller = self.ai_controller()
        controller.roll_dice([6, 5])
        controller.request_move(23, 17)
        controller.request_move(17, 12)
        assert controller.ai_has_control()

        result = controller.play_ai_turn()
        assert result.success
        assert isinstance(result.events[0], DiceRolled)
        assert result.events[0].player == Player.BLACK
        assert result.events[-1] == TurnEnded(Player.BLACK, Player.WHITE)
        assert controller.board.current_player == Player.WHITE
        assert not controller.ai_has_control()

    def test_answers_double(self):
        controller = self.ai_controller()
        controller.offer_double()
        assert controller.ai_has_control()
        result = controller.ai_step()
        assert result.events == (CubeAccepted(Player.BLACK, 2),)

    def test_rolls_opening(self):
        ai = AIConfig(enabled=True, player=Player.BLACK, difficulty="easy")
        controller = GameController(GameConfig(seed=5, ai=ai))
        assert controller.ai_has_control()
        result = controller.ai_step()
        assert result.success
        assert result.events[0].type in ("OpeningRoll", "OpeningRollTied")

    def test_agent_follows_difficulty(self):
        ai = AIConfig(enabled=True, difficulty="medium")
        controller = GameController(GameConfig(ai=ai))
        assert controller.agent.name == "Medium"


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_random_game_keeps_board_valid(seed):
    """Play random legal moves to the end, checking the board after each."""
    controller = GameController(GameConfig(opening_roll=False, seed=seed, cube_enabled=False))
    rng = np.random.default_rng(seed)
    for _ in range(10000):
        if controller.turn_state == TurnState.GAME_OVER:
            break
        if controller.turn_state == TurnState.WAITING_FOR_ROLL:
            assert controller.roll_dice().success
        else:
            moves = controller.get_legal_moves()
            move = moves[int(rng.integers(len(moves)))]
            assert controller.request_move(move.from_point, move.to_point).success
        assert is_valid_board(controller.board)[0]

    assert controller.turn_state == TurnState.GAME_OVER
    winner = controller.outcome.winner
    assert controller.board.borne_off[winner] == 15
    assert controller.outcome.multiplier in (1, 2, 3)
