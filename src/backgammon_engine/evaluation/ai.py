"""Heuristic AI player.

`choose_move` picks one checker move for the side to play:

1. Enumerate legal moves; return None if there are none.
2. In an opening position, play the opening book move if it is legal.
3. Otherwise classify the phase and tactical pattern, resolve the weight
   table for them, score every legal move and keep the best one. Ties go
   to the first move in enumeration order (ascending source, then
   destination).

The module also makes the AI's doubling cube decisions.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from backgammon_engine.core.board import (
    apply_move,
    calculate_pip_count,
    compute_legal_moves,
    direction,
    distance_for_move,
    home_board_range,
    pips_to_bear_off,
)
from backgammon_engine.core.cube import can_double_in_match
from backgammon_engine.core.types import (
    BAR,
    NUM_POINTS,
    OFF,
    BoardState,
    CubeState,
    MatchState,
    Move,
    Player,
    Point,
)
from backgammon_engine.evaluation.opening_book import book_move
from backgammon_engine.evaluation.patterns import (
    detect_pattern,
    detect_phase,
    prime_length_through,
)
from backgammon_engine.evaluation.race import position_equity
from backgammon_engine.evaluation.weights import (
    FACTOR_INDEX,
    FACTORS,
    WeightTable,
    resolve_weights,
    weight_vector,
)


logger = logging.getLogger(__name__)

# 5-point and bar-point of each side
GOLDEN_POINTS = {Player.WHITE: (4, 6), Player.BLACK: (19, 17)}
# Opponent's 5-point and 4-point, the strongest anchors
BEST_ANCHORS = {Player.WHITE: (19, 20), Player.BLACK: (4, 3)}

MAX_STACK = 4
DIRECT_RANGE = 6
INDIRECT_RANGE = 12
MIN_PRIME_TO_BREAK = 3

DOUBLE_THRESHOLD = 0.45
TAKE_THRESHOLD = -0.5


@dataclass(frozen=True)
class ScoredMove:
    """A legal move with its heuristic score and per-factor breakdown."""
    move: Move
    score: float
    features: Dict[str, float]


# ==============================================================================
# FEATURES
# ==============================================================================


def shooters(board: BoardState, point: Point, player: Player) -> float:
    """Opposing checkers within rolling distance of a blot of `player`.

    Checkers 1-6 pips away count fully, 7-12 pips away count half. At most
    two checkers per point are counted.
    """
    rival = player.opponent()
    exposure = 0.0
    for source, state in enumerate(board.points):
        if state.owner != rival:
            continue
        distance = (point - source) * direction(rival)
        weight = min(state.count, 2)
        if 1 <= distance <= DIRECT_RANGE:
            exposure += weight
        elif DIRECT_RANGE < distance <= INDIRECT_RANGE:
            exposure += 0.5 * weight

    if board.bar[rival] > 0 and point in home_board_range(player):
        if distance_for_move(BAR, point, rival) <= DIRECT_RANGE:
            exposure += min(board.bar[rival], 2)
    return exposure


def blot_cost(point: Point, player: Player) -> float:
    """How much a hit on `point` hurts: scales with the pips it would lose."""
    lost_pips = 25 - pips_to_bear_off(point, player)
    return 0.5 + lost_pips / 24.0


def move_features(board: BoardState, move: Move) -> np.ndarray:
    """Feature vector of a move, laid out in FACTORS order."""
    player = board.current_player
    result = apply_move(board, move)
    after = result.board
    features = np.zeros(len(FACTORS), dtype=np.float64)

    def put(name: str, value: float) -> None:
        features[FACTOR_INDEX[name]] = value

    if move.from_point == BAR:
        put("bar_entry", 1.0)

    if move.to_point == OFF:
        put("bear_off", 1.0)
        put("bear_off_high_point", pips_to_bear_off(move.from_point, player) / 6.0)
    else:
        to = move.to_point
        if after.points[to].is_made_by(player) and not board.points[to].is_made_by(player):
            put("make_point", 1.0)
            put("prime_extension", float(prime_length_through(after, player, to) ** 2))
            if to in GOLDEN_POINTS[player]:
                put("golden_point", 1.0)
            if to in home_board_range(player.opponent()):
                put("anchor", 1.0)
                if to in BEST_ANCHORS[player]:
                    put("best_anchor", 1.0)
        if result.hit_point is not None:
            put("hit", 1.0)
        stacked = after.points[to].count - MAX_STACK
        if stacked > 0:
            put("overstack", float(stacked))

    put("pip_advance", float(calculate_pip_count(board, player) - calculate_pip_count(after, player)))

    if move.from_point != BAR:
        src = move.from_point
        if board.points[src].is_made_by(player) and not after.points[src].is_made_by(player):
            put("break_point", 1.0)
            if src in GOLDEN_POINTS[player]:
                put("break_golden", 1.0)
            run = prime_length_through(board, player, src)
            if run >= MIN_PRIME_TO_BREAK:
                put("break_prime", float(run))

    exposure = 0.0
    for point in {move.from_point, move.to_point}:
        if 0 <= point < NUM_POINTS and after.points[point].is_blot_of(player):
            exposure += shooters(after, point, player) * blot_cost(point, player)
    put("blot_exposure", exposure)

    return features


# ==============================================================================
# MOVE SELECTION
# ==============================================================================


def score_moves(
    board: BoardState,
    remaining_dice: Optional[Sequence[int]] = None,
    base_weights: Optional[WeightTable] = None,
    adjust: bool = True,
) -> List[ScoredMove]:
    """Score every legal move for the side to play.

    Args:
        board: Current board (not mutated)
        remaining_dice: Unused dice (board.remaining_moves if None)
        base_weights: Base weight table (BASE_WEIGHTS if None)
        adjust: Scale weights for the detected phase and pattern

    Returns:
        Scored moves in enumeration order
    """
    if remaining_dice is None:
        remaining_dice = board.remaining_moves
    player = board.current_player

    if adjust:
        phase = detect_phase(board, player)
        pattern = detect_pattern(board, player)
        logger.debug("%s scoring in phase=%s pattern=%s", player, phase.value, pattern.value)
    else:
        phase = pattern = None
    weights = weight_vector(resolve_weights(phase, pattern, base_weights))

    scored = []
    for move in compute_legal_moves(board, remaining_dice):
        features = move_features(board, move)
        scored.append(ScoredMove(
            move=move,
            score=float(features @ weights),
            features={name: float(features[i]) for i, name in enumerate(FACTORS) if features[i]},
        ))
    return scored


def choose_move(
    board: BoardState,
    remaining_dice: Optional[Sequence[int]] = None,
    base_weights: Optional[WeightTable] = None,
    use_book: bool = True,
    adjust: bool = True,
) -> Optional[Move]:
    """Pick the move to play for the side to play.

    Args:
        board: Current board (not mutated)
        remaining_dice: Unused dice (board.remaining_moves if None)
        base_weights: Base weight table (BASE_WEIGHTS if None)
        use_book: Consult the opening book in opening positions
        adjust: Scale weights for the detected phase and pattern

    Returns:
        Chosen move, or None if no move is legal
    """
    if remaining_dice is None:
        remaining_dice = board.remaining_moves

    legal_moves = compute_legal_moves(board, remaining_dice)
    if not legal_moves:
        logger.debug("%s has no legal move with dice %s", board.current_player, list(remaining_dice))
        return None

    if use_book:
        move = book_move(board, remaining_dice, legal_moves)
        if move is not None:
            logger.debug("%s plays book move %s", board.current_player, move)
            return move

    scored = score_moves(board, remaining_dice, base_weights, adjust)
    best = scored[0]
    for candidate in scored[1:]:
        if candidate.score > best.score:
            best = candidate
    logger.debug("%s plays %s (score %.2f)", board.current_player, best.move, best.score)
    return best.move


# ==============================================================================
# CUBE DECISIONS
# ==============================================================================


def should_offer_double(
    board: BoardState,
    player: Player,
    cube: CubeState,
    match: Optional[MatchState] = None,
    crawford_rule: bool = True,
) -> bool:
    """Double when allowed and the position equity clears the threshold."""
    if not can_double_in_match(cube, player, match, crawford_rule):
        return False
    return position_equity(board, player) > DOUBLE_THRESHOLD


def should_accept_double(board: BoardState, player: Player) -> bool:
    """Take when the equity is no worse than the standard take point."""
    return position_equity(board, player) >= TAKE_THRESHOLD
