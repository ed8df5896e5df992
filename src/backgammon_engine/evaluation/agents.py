"""Player agents for the computer opponent and simulations.

Agents pick one checker move at a time from the legal moves:
- Random agent: selects moves uniformly at random
- Heuristic agent: weighted feature scoring (see `ai.choose_move`)

`agent_for_difficulty` maps the configured difficulty onto an agent.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence
import numpy as np

from backgammon_engine.core.board import compute_legal_moves
from backgammon_engine.core.types import DIFFICULTIES, BoardState, Move
from backgammon_engine.evaluation.ai import choose_move
from backgammon_engine.evaluation.weights import WeightTable


SelectMoveFn = Callable[[BoardState, Sequence[int], List[Move]], Optional[Move]]


# ==============================================================================
# AGENT BASE CLASS
# ==============================================================================


@dataclass
class Agent:
    """Agent that plays one side.

    Attributes:
        name: Agent name for identification
        select_move_fn: Function that selects a move from legal moves
    """
    name: str
    select_move_fn: SelectMoveFn

    def select_move(
        self,
        board: BoardState,
        remaining_dice: Optional[Sequence[int]] = None,
        legal_moves: Optional[List[Move]] = None,
    ) -> Optional[Move]:
        """Select the next move for `board.current_player`.

        Args:
            board: Current board state
            remaining_dice: Unused dice (board.remaining_moves if None)
            legal_moves: Legal moves (computed if None)

        Returns:
            Selected move, or None when no move is legal
        """
        if remaining_dice is None:
            remaining_dice = board.remaining_moves
        if legal_moves is None:
            legal_moves = compute_legal_moves(board, remaining_dice)
        if not legal_moves:
            return None
        return self.select_move_fn(board, remaining_dice, legal_moves)


# ==============================================================================
# RANDOM AGENT
# ==============================================================================


def random_agent(seed: Optional[int] = None) -> Agent:
    """Create an agent that selects moves uniformly at random.

    Args:
        seed: Random seed (optional, for reproducibility)

    Returns:
        Random agent
    """
    rng = np.random.default_rng(seed)

    def select_random_move(board: BoardState, remaining_dice: Sequence[int], legal_moves: List[Move]) -> Move:
        idx = rng.integers(0, len(legal_moves))
        return legal_moves[idx]

    return Agent(name="Random", select_move_fn=select_random_move)


# ==============================================================================
# HEURISTIC AGENT
# ==============================================================================


def heuristic_agent(
    base_weights: Optional[WeightTable] = None,
    use_book: bool = True,
    adjust: bool = True,
    name: str = "Heuristic",
) -> Agent:
    """Create an agent backed by the weighted move scorer.

    Args:
        base_weights: Base weight table (BASE_WEIGHTS if None)
        use_book: Play opening book moves when available
        adjust: Scale weights by detected phase and pattern

    Returns:
        Heuristic agent
    """
    def select_heuristic_move(board: BoardState, remaining_dice: Sequence[int], legal_moves: List[Move]) -> Optional[Move]:
        return choose_move(
            board,
            remaining_dice,
            base_weights=base_weights,
            use_book=use_book,
            adjust=adjust,
        )

    return Agent(name=name, select_move_fn=select_heuristic_move)


def agent_for_difficulty(difficulty: str, seed: Optional[int] = None) -> Agent:
    """Agent for a difficulty level.

    easy: random legal moves
    medium: heuristic scorer without the opening book or weight adjustment
    hard: full heuristic with opening book and phase/pattern weights

    Raises:
        ValueError: For an unknown difficulty
    """
    if difficulty == "easy":
        return random_agent(seed)
    if difficulty == "medium":
        return heuristic_agent(use_book=False, adjust=False, name="Medium")
    if difficulty == "hard":
        return heuristic_agent(name="Hard")
    raise ValueError(f"Unknown difficulty {difficulty!r}, expected one of {DIFFICULTIES}")
