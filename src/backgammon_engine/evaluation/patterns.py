"""Game phase and tactical pattern detection.

The AI adjusts its scoring weights according to two classifications of the
position from the mover's point of view:

- Phase: opening (roughly the first 8 rolls), middle game, or bearing off
- Pattern: blitz, priming, holding, back game, pure race, or plain blocking

Also hosts the small position helpers (blots, anchors, primes, contact)
shared by the scorer and the cube logic.
"""

from enum import Enum
from typing import List

from backgammon_engine.core.board import (
    BLACK_START,
    WHITE_START,
    all_checkers_in_home,
    home_board_range,
    pips_to_bear_off,
)
from backgammon_engine.core.types import NUM_POINTS, BoardState, Player, Point


OPENING_ROLLS = 8  # rolls after which the opening phase ends
STRONG_HOME_BOARD = 3  # made home points needed to blitz
PRIME_LENGTH = 4  # consecutive made points that count as a prime
ADVANCED_CHECKERS = 10  # checkers on our side of the board for a holding game


class GamePhase(Enum):
    OPENING = "opening"
    MIDGAME = "midgame"
    BEARING_OFF = "bearing_off"


class TacticalPattern(Enum):
    BLITZ = "blitz"
    PRIMING = "priming"
    HOLDING = "holding"
    BACK_GAME = "back_game"
    BLOCKING = "blocking"
    RACE = "race"


# ==============================================================================
# POSITION HELPERS
# ==============================================================================


def count_blots(board: BoardState, player: Player) -> int:
    """Count number of blots (exposed checkers) for a player."""
    return sum(1 for state in board.points if state.is_blot_of(player))


def made_points(board: BoardState, player: Player) -> List[Point]:
    """Points holding 2+ of the player's checkers, ascending."""
    return [p for p, state in enumerate(board.points) if state.is_made_by(player)]


def anchors(board: BoardState, player: Player) -> List[Point]:
    """Made points the player holds inside the opponent's home board."""
    opp_home = home_board_range(player.opponent())
    return [p for p in made_points(board, player) if p in opp_home]


def has_anchor(board: BoardState, player: Player) -> bool:
    """Check if player has an anchor in opponent's home board."""
    return bool(anchors(board, player))


def prime_length_through(board: BoardState, player: Player, point: Point) -> int:
    """Length of the run of consecutive made points containing `point`."""
    if not board.points[point].is_made_by(player):
        return 0
    length = 1
    p = point - 1
    while p >= 0 and board.points[p].is_made_by(player):
        length += 1
        p -= 1
    p = point + 1
    while p < NUM_POINTS and board.points[p].is_made_by(player):
        length += 1
        p += 1
    return length


def longest_prime(board: BoardState, player: Player) -> int:
    """Longest run of consecutive made points."""
    best = 0
    current = 0
    for state in board.points:
        if state.is_made_by(player):
            current += 1
            best = max(best, current)
        else:
            current = 0
    return best


def is_past_contact(board: BoardState, player: Player) -> bool:
    """Check if player is past contact (pure race).

    Past contact means all of our checkers are ahead of all opponent
    checkers, so neither side can hit again.
    """
    rival = player.opponent()
    if board.bar[player] > 0 or board.bar[rival] > 0:
        return False

    ours = [p for p, s in enumerate(board.points) if s.owner == player]
    theirs = [p for p, s in enumerate(board.points) if s.owner == rival]
    if not ours or not theirs:
        return True

    if player == Player.WHITE:
        # White moves 23→0, so our furthest-back must be below their rearmost
        return max(ours) < min(theirs)
    return min(ours) > max(theirs)


def displaced_checkers(board: BoardState, player: Player) -> int:
    """How many of the player's checkers have left their starting points."""
    start = WHITE_START if player == Player.WHITE else BLACK_START
    displaced = board.bar[player] + board.borne_off[player]
    for point, count in start.items():
        displaced += max(0, count - board.get_checkers(player, point))
    return displaced


def rolls_elapsed(board: BoardState) -> int:
    """Estimate rolls played so far from checkers displaced since the start.

    A typical roll moves two checkers, so the estimate is half the total
    displacement of both sides, rounded up.
    """
    total = displaced_checkers(board, Player.WHITE) + displaced_checkers(board, Player.BLACK)
    return (total + 1) // 2


def advanced_checkers(board: BoardState, player: Player) -> int:
    """Checkers on the player's own half of the board, or already off."""
    advanced = board.borne_off[player]
    for point, state in enumerate(board.points):
        if state.owner == player and pips_to_bear_off(point, player) <= 12:
            advanced += state.count
    return advanced


def home_board_strength(board: BoardState, player: Player) -> int:
    """Made points in the player's own home board."""
    home = home_board_range(player)
    return sum(1 for p in made_points(board, player) if p in home)


# ==============================================================================
# CLASSIFICATION
# ==============================================================================


def detect_phase(board: BoardState, player: Player) -> GamePhase:
    """Classify the game phase from `player`'s point of view."""
    if all_checkers_in_home(board, player):
        return GamePhase.BEARING_OFF
    if rolls_elapsed(board) <= OPENING_ROLLS:
        return GamePhase.OPENING
    return GamePhase.MIDGAME


def _opponent_trapped(board: BoardState, player: Player) -> bool:
    rival = player.opponent()
    if board.bar[rival] > 0:
        return True
    return any(board.points[p].owner == rival for p in home_board_range(player))


def detect_pattern(board: BoardState, player: Player) -> TacticalPattern:
    """Classify the tactical pattern the player is in.

    Checked in order: race, blitz, priming, back game, holding, and
    blocking as the default.
    """
    if is_past_contact(board, player):
        return TacticalPattern.RACE

    if _opponent_trapped(board, player) and home_board_strength(board, player) >= STRONG_HOME_BOARD:
        return TacticalPattern.BLITZ

    if longest_prime(board, player) >= PRIME_LENGTH:
        return TacticalPattern.PRIMING

    held = anchors(board, player)
    if len(held) >= 2:
        return TacticalPattern.BACK_GAME
    if len(held) == 1 and advanced_checkers(board, player) >= ADVANCED_CHECKERS:
        return TacticalPattern.HOLDING

    return TacticalPattern.BLOCKING
