"""Turn controller: the game state machine.

The controller owns the single mutable game state (board, cube, match
score, history) and serializes every change through its command methods:

    OPENING_ROLL → ROLLED_DICE → SELECTING_MOVE → WAITING_FOR_ROLL → ...
                                              ↘ GAME_OVER

Commands never raise on rule violations. They return a `CommandResult`
with a human-readable reason and leave the state untouched. Successful
commands report the domain events they produced, which are also pushed to
every subscribed listener.
"""

import logging
from collections import deque
from dataclasses import dataclass, replace
from typing import Deque, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from backgammon_engine.core.board import (
    apply_move,
    board_to_dict,
    calculate_pip_count,
    calculate_win_multiplier,
    compute_legal_moves,
    game_winner,
    has_any_legal_move,
    initial_board,
    validate_move,
)
from backgammon_engine.core.cube import (
    accept_double,
    can_double_in_match,
    decline_double,
    game_points,
    initial_cube,
    is_match_over,
    match_winner,
    new_match,
    offer_double,
    update_match_score,
)
from backgammon_engine.core.dice import dice_values, make_rng, roll_dice, roll_opening, validate_dice
from backgammon_engine.core.types import (
    BoardState,
    CubeState,
    GameConfig,
    GameOutcome,
    MatchState,
    Move,
    MoveRecord,
    Player,
    Point,
    TurnState,
)
from backgammon_engine.evaluation.agents import Agent, agent_for_difficulty
from backgammon_engine.evaluation.ai import should_accept_double, should_offer_double
from backgammon_engine.game.events import (
    CheckerHit,
    CubeAccepted,
    CubeDeclined,
    CubeOffered,
    DiceRolled,
    EventListener,
    GameEvent,
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


logger = logging.getLogger(__name__)

MAX_AI_STEPS = 64  # one AI turn never needs more (4 moves + roll + cube)


class CommandResult(NamedTuple):
    """Outcome of a controller command."""
    success: bool
    reason: str = ""
    events: Tuple[GameEvent, ...] = ()


@dataclass(frozen=True)
class GameSnapshot:
    """Read-only view of the controller state.

    The board is a detached copy; changing it does not affect the game.
    """
    board: BoardState
    turn_state: TurnState
    cube: CubeState
    match: MatchState
    history: Tuple[MoveRecord, ...]
    outcome: Optional[GameOutcome]
    config: GameConfig

    @property
    def current_player(self) -> Player:
        return self.board.current_player


def _fail(reason: str) -> CommandResult:
    logger.debug("Command rejected: %s", reason)
    return CommandResult(False, reason)


class GameController:
    """Drives one match of backgammon, game by game.

    Args:
        config: Game configuration (defaults if None)
        rng: Random generator for dice (seeded from config.seed if None)
    """

    def __init__(self, config: Optional[GameConfig] = None, rng: Optional[np.random.Generator] = None):
        self.config = config if config is not None else GameConfig()
        self.rng = rng if rng is not None else make_rng(self.config.seed)
        self._listeners: List[EventListener] = []
        self._agent: Optional[Agent] = None

        self.match = new_match(self.config.match_length)
        self._setup_game()

    # ==========================================================================
    # LISTENERS
    # ==========================================================================

    def subscribe(self, listener: EventListener) -> None:
        """Register a callback invoked with every event, in emission order."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _publish(self, events: Sequence[GameEvent]) -> CommandResult:
        for event in events:
            for listener in list(self._listeners):
                listener(event)
        return CommandResult(True, "", tuple(events))

    # ==========================================================================
    # GAME LIFECYCLE
    # ==========================================================================

    def _setup_game(self) -> None:
        """Reset all per-game state to a fresh starting position."""
        self.board = initial_board()
        self.cube = initial_cube()
        self.history: List[MoveRecord] = []
        self.outcome: Optional[GameOutcome] = None
        self._undo: Deque[Tuple[BoardState, TurnState, int]] = deque(maxlen=self.config.undo_depth)
        if self.config.opening_roll:
            self.turn_state = TurnState.OPENING_ROLL
        else:
            self.turn_state = TurnState.WAITING_FOR_ROLL

    def _game_started(self) -> GameStarted:
        first = None if self.turn_state == TurnState.OPENING_ROLL else self.board.current_player
        return GameStarted(
            game_number=self.match.games_played + 1,
            first_player=first,
            board=board_to_dict(self.board),
        )

    def new_game(self, match_length: Optional[int] = None) -> CommandResult:
        """Discard everything in flight and start a new match.

        Args:
            match_length: Points to win the match (config.match_length if None)
        """
        if match_length is not None:
            if match_length < 1:
                raise ValueError(f"match_length must be >= 1, got {match_length}")
            self.config.match_length = match_length
        self.match = new_match(self.config.match_length)
        self._setup_game()
        logger.info("New match to %d point(s)", self.match.target_points)
        return self._publish([self._game_started()])

    def next_game(self) -> CommandResult:
        """Start the next game of a running match."""
        if self.turn_state != TurnState.GAME_OVER:
            return _fail("the current game is not over")
        if is_match_over(self.match):
            return _fail("the match is over")
        self._setup_game()
        logger.info("Game %d of the match", self.match.games_played + 1)
        return self._publish([self._game_started()])

    # ==========================================================================
    # COMMANDS
    # ==========================================================================

    def roll_dice(self, values: Optional[Sequence[int]] = None) -> CommandResult:
        """Roll for the current turn, or the opening roll.

        Args:
            values: Fixed dice to use instead of random ones. During the
                opening roll these are (white_die, black_die).

        Raises:
            ValueError: If `values` is not two dice in 1-6
        """
        if self.turn_state == TurnState.GAME_OVER:
            return _fail("the game is over")
        if self.cube.is_offered:
            return _fail("a double is waiting for an answer")
        if self.turn_state == TurnState.OPENING_ROLL:
            return self._opening_roll(values)
        if self.turn_state != TurnState.WAITING_FOR_ROLL:
            return _fail("the dice have already been rolled")

        dice = validate_dice(values) if values is not None else roll_dice(self.rng)
        events: List[GameEvent] = []
        self._start_turn(dice, events)
        return self._publish(events)

    def _opening_roll(self, values: Optional[Sequence[int]]) -> CommandResult:
        white_die, black_die = validate_dice(values) if values is not None else roll_opening(self.rng)
        if white_die == black_die:
            logger.info("Opening roll tied at %d, rolling again", white_die)
            return self._publish([OpeningRollTied(white_die)])

        first = Player.WHITE if white_die > black_die else Player.BLACK
        self.board.current_player = first
        logger.info("Opening roll %d-%d, %s starts", white_die, black_die, first)
        events: List[GameEvent] = [OpeningRoll(white_die, black_die, first)]
        self._start_turn((white_die, black_die), events)
        return self._publish(events)

    def _start_turn(self, dice: Tuple[int, int], events: List[GameEvent]) -> None:
        player = self.board.current_player
        self.board.dice_values = dice_values(dice)
        self.board.remaining_moves = list(self.board.dice_values)
        self.turn_state = TurnState.ROLLED_DICE
        logger.info("%s rolled %d-%d", player, dice[0], dice[1])
        events.append(DiceRolled(player, tuple(self.board.dice_values)))

        if not has_any_legal_move(self.board, self.board.remaining_moves):
            logger.info("%s has no legal move", player)
            events.append(NoLegalMoves(player, tuple(self.board.remaining_moves)))
            if self.config.auto_end_turn:
                self._end_turn(events)

    def request_move(self, from_point: Point, to_point: Point) -> CommandResult:
        """Move one checker for the current player.

        The die is chosen by the rules (exact match, or the overshoot die
        when bearing off). On success the turn ends automatically once no
        remaining die can be played, and the game ends when the mover has
        borne off all 15 checkers.
        """
        if self.turn_state not in (TurnState.ROLLED_DICE, TurnState.SELECTING_MOVE):
            if self.turn_state == TurnState.GAME_OVER:
                return _fail("the game is over")
            return _fail("roll the dice first")

        check = validate_move(self.board, self.board.remaining_moves, from_point, to_point)
        if not check.legal:
            return _fail(check.reason)

        player = self.board.current_player
        move = Move(from_point, to_point, check.die)
        self._undo.append((self.board.copy(), self.turn_state, len(self.history)))

        result = apply_move(self.board, move)
        self.board = result.board
        self.board.remaining_moves.remove(check.die)
        self.history.append(MoveRecord(from_point, to_point, player, check.die, result.hit_point))
        self.turn_state = TurnState.SELECTING_MOVE
        logger.info("%s moved %s", player, move)

        events: List[GameEvent] = [MoveApplied(from_point, to_point, player, check.die, result.hit_point)]
        if result.hit_point is not None:
            events.append(CheckerHit(result.hit_point, player.opponent()))

        if game_winner(self.board) == player:
            multiplier = calculate_win_multiplier(self.board, player)
            self._finish_game(GameOutcome(player, multiplier, self.cube.value), events)
        elif self.config.auto_end_turn and not has_any_legal_move(self.board, self.board.remaining_moves):
            self._end_turn(events)
        return self._publish(events)

    def end_turn(self) -> CommandResult:
        """End the current turn. Rejected while a die can still be played."""
        if self.turn_state not in (TurnState.ROLLED_DICE, TurnState.SELECTING_MOVE):
            if self.turn_state == TurnState.GAME_OVER:
                return _fail("the game is over")
            return _fail("no turn in progress")
        if has_any_legal_move(self.board, self.board.remaining_moves):
            return _fail("legal moves remain")
        events: List[GameEvent] = []
        self._end_turn(events)
        return self._publish(events)

    def _end_turn(self, events: List[GameEvent]) -> None:
        player = self.board.current_player
        self.board.dice_values = []
        self.board.remaining_moves = []
        self.board.current_player = player.opponent()
        self._undo.clear()
        self.turn_state = TurnState.WAITING_FOR_ROLL
        logger.info("%s ended the turn", player)
        events.append(TurnEnded(player, player.opponent()))

    def undo_move(self) -> CommandResult:
        """Take back the last move played this turn."""
        if self.turn_state == TurnState.GAME_OVER or not self._undo:
            return _fail("nothing to undo")

        board, _, history_len = self._undo.pop()
        record = self.history[history_len]
        self.board = board
        del self.history[history_len:]
        if len(board.remaining_moves) == len(board.dice_values):
            self.turn_state = TurnState.ROLLED_DICE
        else:
            self.turn_state = TurnState.SELECTING_MOVE
        logger.info("%s undid %d/%d", record.player, record.from_point, record.to_point)
        return self._publish([MoveUndone(record.from_point, record.to_point, record.player, record.die)])

    # ==========================================================================
    # DOUBLING CUBE
    # ==========================================================================

    def offer_double(self, player: Optional[Player] = None) -> CommandResult:
        """Offer a double. Only the player to move may double, before rolling."""
        if player is None:
            player = self.board.current_player
        if not self.config.cube_enabled:
            return _fail("the doubling cube is disabled")
        if self.turn_state != TurnState.WAITING_FOR_ROLL:
            return _fail("a double can only be offered before rolling")
        if player != self.board.current_player:
            return _fail(f"it is {self.board.current_player}'s turn")
        if not can_double_in_match(self.cube, player, self.match, self.config.crawford):
            return _fail(f"{player} cannot double now")

        ok, cube = offer_double(self.cube, player)
        if not ok:
            return _fail(f"{player} cannot double now")
        self.cube = cube
        logger.info("%s offers a double at cube value %d", player, cube.value)
        return self._publish([CubeOffered(player, cube.value)])

    def accept_double(self) -> CommandResult:
        """Accept the pending double on behalf of the opponent of the offerer."""
        if not self.cube.is_offered:
            return _fail("no double has been offered")
        responder = self.cube.offering_player.opponent()
        ok, cube = accept_double(self.cube, responder)
        if not ok:
            return _fail("no double has been offered")
        self.cube = cube
        logger.info("%s accepts, cube now %d", responder, cube.value)
        return self._publish([CubeAccepted(responder, cube.value)])

    def decline_double(self) -> CommandResult:
        """Decline the pending double: the offerer wins at the current value."""
        if not self.cube.is_offered:
            return _fail("no double has been offered")
        offerer = self.cube.offering_player
        ok, cube = decline_double(self.cube)
        if not ok:
            return _fail("no double has been offered")
        self.cube = cube
        logger.info("%s declines the double", offerer.opponent())
        events: List[GameEvent] = [CubeDeclined(offerer.opponent())]
        self._finish_game(GameOutcome(offerer, 1, cube.value, declined=True), events)
        return self._publish(events)

    def _finish_game(self, outcome: GameOutcome, events: List[GameEvent]) -> None:
        self.outcome = outcome
        self.turn_state = TurnState.GAME_OVER
        self._undo.clear()
        points = game_points(outcome.multiplier, self.cube)
        self.match = update_match_score(self.match, outcome.winner, points)
        logger.info(
            "%s wins %d point(s) (multiplier %d, cube %d)",
            outcome.winner, points, outcome.multiplier, outcome.cube_value,
        )
        events.append(GameWon(outcome.winner, outcome.multiplier, outcome.cube_value, points, outcome.declined))

        if is_match_over(self.match):
            winner = match_winner(self.match)
            logger.info("%s wins the match %d-%d", winner, self.match.white_score, self.match.black_score)
            events.append(MatchWon(winner, self.match.white_score, self.match.black_score))

    # ==========================================================================
    # QUERIES
    # ==========================================================================

    def get_legal_moves(self) -> List[Move]:
        """Legal moves for the current player (empty before rolling)."""
        if self.turn_state not in (TurnState.ROLLED_DICE, TurnState.SELECTING_MOVE):
            return []
        return compute_legal_moves(self.board, self.board.remaining_moves)

    def get_game_state(self) -> GameSnapshot:
        return GameSnapshot(
            board=self.board.copy(),
            turn_state=self.turn_state,
            cube=self.cube,
            match=self.match,
            history=tuple(self.history),
            outcome=self.outcome,
            config=replace(self.config, ai=replace(self.config.ai)),
        )

    def calculate_pip_count(self, player: Player) -> int:
        return calculate_pip_count(self.board, player)

    @property
    def match_over(self) -> bool:
        return is_match_over(self.match)

    # ==========================================================================
    # COMPUTER OPPONENT
    # ==========================================================================

    @property
    def agent(self) -> Agent:
        if self._agent is None:
            self._agent = agent_for_difficulty(self.config.ai.difficulty, self.config.seed)
        return self._agent

    def ai_has_control(self) -> bool:
        """True if the next action belongs to the computer player."""
        ai = self.config.ai
        if not ai.enabled or self.turn_state == TurnState.GAME_OVER:
            return False
        if self.cube.is_offered:
            return self.cube.offering_player != ai.player
        if self.turn_state == TurnState.OPENING_ROLL:
            return True
        return self.board.current_player == ai.player

    def ai_step(self) -> CommandResult:
        """Perform exactly one computer action.

        In priority order: answer a pending double, roll the opening roll,
        consider doubling, roll, then play one move (or end a blocked turn).
        """
        if not self.config.ai.enabled:
            return _fail("the computer opponent is disabled")
        if not self.ai_has_control():
            return _fail("it is not the computer's turn")

        ai_player = self.config.ai.player
        if self.cube.is_offered:
            if should_accept_double(self.board, ai_player):
                return self.accept_double()
            return self.decline_double()

        if self.turn_state == TurnState.OPENING_ROLL:
            return self.roll_dice()

        if self.turn_state == TurnState.WAITING_FOR_ROLL:
            if self.config.cube_enabled and should_offer_double(
                self.board, ai_player, self.cube, self.match, self.config.crawford
            ):
                return self.offer_double(ai_player)
            return self.roll_dice()

        move = self.agent.select_move(self.board)
        if move is None:
            return self.end_turn()
        return self.request_move(move.from_point, move.to_point)

    def play_ai_turn(self) -> CommandResult:
        """Run `ai_step` until control leaves the computer player."""
        if not self.ai_has_control():
            return self.ai_step()

        events: List[GameEvent] = []
        for _ in range(MAX_AI_STEPS):
            if not self.ai_has_control():
                break
            result = self.ai_step()
            events.extend(result.events)
            if not result.success:
                return CommandResult(False, result.reason, tuple(events))
        return CommandResult(True, "", tuple(events))
