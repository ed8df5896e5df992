"""Computer-vs-computer games.

Plays complete games between two agents through the turn controller, so
every rule (opening roll, bar priority, auto end of turn) is applied
exactly as in interactive play. Used by the `simulate` CLI command and by
the property tests.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from backgammon_engine.core.types import GameConfig, GameOutcome, MoveRecord, Player, TurnState
from backgammon_engine.evaluation.agents import Agent
from backgammon_engine.game.controller import GameController
from backgammon_engine.game.events import EventListener


logger = logging.getLogger(__name__)


@dataclass
class GameResult:
    """Result of a completed (or abandoned) game."""
    outcome: Optional[GameOutcome]  # None if max_moves was reached
    num_moves: int
    num_turns: int
    history: List[MoveRecord]


def play_game(
    white_agent: Agent,
    black_agent: Agent,
    config: Optional[GameConfig] = None,
    max_moves: int = 2000,
    rng: Optional[np.random.Generator] = None,
    listener: Optional[EventListener] = None,
) -> GameResult:
    """Play a single game between two agents.

    The doubling cube is not used.

    Args:
        white_agent: Agent playing white
        black_agent: Agent playing black
        config: Game configuration (AI and cube settings are ignored)
        max_moves: Maximum checker moves before abandoning the game
        rng: Random number generator for the dice
        listener: Optional event listener subscribed for the whole game

    Returns:
        GameResult with the outcome and move history
    """
    if config is None:
        config = GameConfig()
    controller = GameController(config, rng=rng)
    if listener is not None:
        controller.subscribe(listener)

    num_moves = 0
    num_turns = 0
    while controller.turn_state != TurnState.GAME_OVER and num_moves < max_moves:
        if controller.turn_state in (TurnState.OPENING_ROLL, TurnState.WAITING_FOR_ROLL):
            controller.roll_dice()
            if controller.turn_state == TurnState.WAITING_FOR_ROLL:
                num_turns += 1  # blocked turn, auto-ended
            continue

        board = controller.board
        agent = white_agent if board.current_player == Player.WHITE else black_agent
        move = agent.select_move(board)
        if move is None:
            result = controller.end_turn()
        else:
            result = controller.request_move(move.from_point, move.to_point)
            num_moves += 1
        if not result.success:
            raise RuntimeError(f"{agent.name} made a rejected command: {result.reason}")
        if controller.turn_state == TurnState.WAITING_FOR_ROLL:
            num_turns += 1

    if controller.outcome is None:
        logger.warning("Game abandoned after %d moves", num_moves)
    return GameResult(
        outcome=controller.outcome,
        num_moves=num_moves,
        num_turns=num_turns,
        history=list(controller.history),
    )


def play_games(
    num_games: int,
    white_agent: Agent,
    black_agent: Agent,
    config: Optional[GameConfig] = None,
    rng: Optional[np.random.Generator] = None,
    listener: Optional[EventListener] = None,
) -> List[GameResult]:
    """Play a batch of games sharing one dice generator."""
    if rng is None:
        seed = config.seed if config is not None else None
        rng = np.random.default_rng(seed)
    games = []
    for i in range(num_games):
        games.append(play_game(white_agent, black_agent, config, rng=rng, listener=listener))
        logger.debug("Game %d/%d finished", i + 1, num_games)
    return games


def compute_game_statistics(games: List[GameResult]) -> dict:
    """Compute statistics from a batch of games.

    Args:
        games: List of game results

    Returns:
        Dictionary of statistics
    """
    total_games = len(games)
    white_wins = sum(1 for g in games if g.outcome and g.outcome.winner == Player.WHITE)
    black_wins = sum(1 for g in games if g.outcome and g.outcome.winner == Player.BLACK)
    unfinished = sum(1 for g in games if g.outcome is None)

    avg_moves = float(np.mean([g.num_moves for g in games])) if games else 0.0

    gammons = sum(1 for g in games if g.outcome and g.outcome.multiplier == 2)
    backgammons = sum(1 for g in games if g.outcome and g.outcome.multiplier == 3)

    return {
        'total_games': total_games,
        'white_wins': white_wins,
        'black_wins': black_wins,
        'unfinished': unfinished,
        'white_win_rate': white_wins / total_games if total_games > 0 else 0.0,
        'avg_moves': avg_moves,
        'gammons': gammons,
        'backgammons': backgammons,
    }
