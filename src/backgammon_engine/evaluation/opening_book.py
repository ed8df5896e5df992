"""Opening book for the first roll of each side.

Entries are written from White's point of view with 0-based points (White's
24-point is index 23, its 13-point index 12, its 8-point index 7 and its
6-point index 5). Black's plays are the mirror image (index i ↔ 23 - i).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from backgammon_engine.core.types import BoardState, Move, Player
from backgammon_engine.evaluation.patterns import displaced_checkers, rolls_elapsed


BOOK_ROLLS = 3  # book only applies while at most this many rolls have been played


class OpeningIntent(Enum):
    MAKE_FIVE_POINT = "make the 5-point"
    MAKE_BAR_POINT = "make the bar-point"
    MAKE_POINT = "make a home point"
    RUN_BACK_CHECKER = "run a back checker"
    SPLIT_BACK_CHECKERS = "split the back checkers"
    BRING_DOWN_BUILDERS = "bring down builders"
    SLOT = "slot the 5-point"


Play = Tuple[int, int, int]  # (from, to, die), White's perspective


@dataclass(frozen=True)
class BookEntry:
    intent: OpeningIntent
    plays: Tuple[Play, ...]


OPENING_BOOK: Dict[Tuple[int, int], BookEntry] = {
    (1, 2): BookEntry(OpeningIntent.SLOT, ((12, 10, 2), (5, 4, 1))),
    (1, 3): BookEntry(OpeningIntent.MAKE_FIVE_POINT, ((7, 4, 3), (5, 4, 1))),
    (1, 4): BookEntry(OpeningIntent.SPLIT_BACK_CHECKERS, ((23, 22, 1), (12, 8, 4))),
    (1, 5): BookEntry(OpeningIntent.SPLIT_BACK_CHECKERS, ((23, 22, 1), (12, 7, 5))),
    (1, 6): BookEntry(OpeningIntent.MAKE_BAR_POINT, ((12, 6, 6), (7, 6, 1))),
    (2, 3): BookEntry(OpeningIntent.SPLIT_BACK_CHECKERS, ((23, 20, 3), (12, 10, 2))),
    (2, 4): BookEntry(OpeningIntent.MAKE_POINT, ((7, 3, 4), (5, 3, 2))),
    (2, 5): BookEntry(OpeningIntent.BRING_DOWN_BUILDERS, ((12, 7, 5), (12, 10, 2))),
    (2, 6): BookEntry(OpeningIntent.SPLIT_BACK_CHECKERS, ((23, 17, 6), (12, 10, 2))),
    (3, 4): BookEntry(OpeningIntent.BRING_DOWN_BUILDERS, ((12, 9, 3), (12, 8, 4))),
    (3, 5): BookEntry(OpeningIntent.MAKE_POINT, ((7, 2, 5), (5, 2, 3))),
    (3, 6): BookEntry(OpeningIntent.SPLIT_BACK_CHECKERS, ((23, 17, 6), (12, 9, 3))),
    (4, 5): BookEntry(OpeningIntent.SPLIT_BACK_CHECKERS, ((23, 19, 4), (12, 7, 5))),
    (4, 6): BookEntry(OpeningIntent.RUN_BACK_CHECKER, ((23, 17, 6), (17, 13, 4))),
    (5, 6): BookEntry(OpeningIntent.RUN_BACK_CHECKER, ((23, 17, 6), (17, 12, 5))),
    # Doubles can only come up on a side's first turn after the opening roll
    (1, 1): BookEntry(OpeningIntent.MAKE_FIVE_POINT, ((7, 6, 1), (7, 6, 1), (5, 4, 1), (5, 4, 1))),
    (2, 2): BookEntry(OpeningIntent.MAKE_POINT, ((12, 10, 2), (12, 10, 2), (5, 3, 2), (5, 3, 2))),
    (3, 3): BookEntry(OpeningIntent.MAKE_FIVE_POINT, ((7, 4, 3), (7, 4, 3), (5, 2, 3), (5, 2, 3))),
    (4, 4): BookEntry(OpeningIntent.SPLIT_BACK_CHECKERS, ((23, 19, 4), (23, 19, 4), (12, 8, 4), (12, 8, 4))),
    (5, 5): BookEntry(OpeningIntent.MAKE_POINT, ((12, 7, 5), (12, 7, 5), (7, 2, 5), (7, 2, 5))),
    (6, 6): BookEntry(OpeningIntent.MAKE_BAR_POINT, ((23, 17, 6), (23, 17, 6), (12, 6, 6), (12, 6, 6))),
}


def _mirror(point: int) -> int:
    return 23 - point


def book_entry(dice_values: Sequence[int]) -> Optional[BookEntry]:
    """Look up the book entry for a roll (2 values, or 4 for doubles)."""
    if not dice_values:
        return None
    key = (min(dice_values), max(dice_values))
    return OPENING_BOOK.get(key)


def book_plays(entry: BookEntry, player: Player) -> List[Move]:
    """The entry's plays as moves for `player`."""
    if player == Player.WHITE:
        return [Move(src, dst, die) for src, dst, die in entry.plays]
    return [Move(_mirror(src), _mirror(dst), die) for src, dst, die in entry.plays]


def is_opening_position(board: BoardState) -> bool:
    """True if the mover has not moved before this turn and the game is young."""
    player = board.current_player
    used_this_turn = len(board.dice_values) - len(board.remaining_moves)
    if displaced_checkers(board, player) > used_this_turn:
        return False
    return rolls_elapsed(board) <= BOOK_ROLLS


def book_move(
    board: BoardState,
    remaining_dice: Sequence[int],
    legal_moves: Sequence[Move],
) -> Optional[Move]:
    """Next book play for this turn, if the position and roll are in the book.

    Args:
        board: Current board with the turn's dice set
        remaining_dice: Unused die values
        legal_moves: Legal moves for the current player

    Returns:
        The book move if it is legal, otherwise None
    """
    if not is_opening_position(board):
        return None
    entry = book_entry(board.dice_values)
    if entry is None:
        return None
    played = len(board.dice_values) - len(remaining_dice)
    plays = book_plays(entry, board.current_player)
    if played >= len(plays):
        return None
    candidate = plays[played]
    return candidate if candidate in legal_moves else None
