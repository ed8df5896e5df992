"""Board representation and game rules.

This module implements the backgammon rules engine:
- Board initialization and validation
- Move legality checks and legal-move enumeration
- Move application (hits, bar re-entry, bearing off)
- Pip counting and win-multiplier calculation

Every function here is pure: boards passed in are never mutated, and rule
violations are returned as values rather than raised.

Board Layout (0-based point indices):
    White moves 23→0→off (home board: 0-5)
    Black moves 0→23→off (home board: 18-23)

    12 13 14 15 16 17    18 19 20 21 22 23
    +------------------+------------------+
    |                  |                  |  Black home
    |                  |                  |
    |                  |                  |
    |                  |                  |  White home
    +------------------+------------------+
    11 10  9  8  7  6     5  4  3  2  1  0
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from backgammon_engine.core.types import (
    BAR,
    CHECKERS_PER_PLAYER,
    EMPTY_POINT,
    NUM_POINTS,
    OFF,
    BoardInvariantError,
    BoardState,
    GameOutcome,
    Move,
    MoveCheck,
    MoveResult,
    Player,
    Point,
    PointState,
)


WHITE_START = {23: 2, 12: 5, 7: 3, 5: 5}
BLACK_START = {0: 2, 11: 5, 16: 3, 18: 5}

BAR_PIPS = 25  # worst-case distance charged for a checker on the bar


# ==============================================================================
# BOARD CONSTRUCTION
# ==============================================================================

def initial_board() -> BoardState:
    """Create the standard backgammon starting position.

    Standard setup:
    - White: 2 on 23, 5 on 12, 3 on 7, 5 on 5
    - Black: 2 on 0, 5 on 11, 3 on 16, 5 on 18

    Returns:
        Board in starting position with White to move
    """
    return board_from_layout(WHITE_START, BLACK_START)


def empty_board() -> BoardState:
    """Create an empty board with no checkers (not a valid game position)."""
    return BoardState()


def board_from_layout(
    white: Dict[Point, int],
    black: Dict[Point, int],
    white_bar: int = 0,
    black_bar: int = 0,
    white_off: Optional[int] = None,
    black_off: Optional[int] = None,
    current_player: Player = Player.WHITE,
) -> BoardState:
    """Build a board from point → count mappings.

    Borne-off counts default to whatever makes each side total 15 checkers.

    Args:
        white: White checker counts keyed by point index
        black: Black checker counts keyed by point index
        white_bar: White checkers on the bar
        black_bar: Black checkers on the bar
        white_off: White checkers borne off (derived if None)
        black_off: Black checkers borne off (derived if None)
        current_player: Player to move

    Returns:
        New board
    """
    board = BoardState(current_player=current_player)
    for player, layout, on_bar, off in (
        (Player.WHITE, white, white_bar, white_off),
        (Player.BLACK, black, black_bar, black_off),
    ):
        for point, count in layout.items():
            board.set_checkers(player, point, count)
        board.bar[player] = on_bar
        if off is None:
            off = CHECKERS_PER_PLAYER - sum(layout.values()) - on_bar
        board.borne_off[player] = off
    return board


def copy_board(board: BoardState) -> BoardState:
    """Clone a board."""
    return board.copy()


# ==============================================================================
# DIRECTION AND GEOMETRY
# ==============================================================================

def opponent(player: Player) -> Player:
    """Return the other player."""
    return player.opponent()


def direction(player: Player) -> int:
    """Index delta for one pip of movement: -1 for White, +1 for Black."""
    return -1 if player == Player.WHITE else 1


def home_board_range(player: Player) -> range:
    """Get the range of points in a player's home board."""
    if player == Player.WHITE:
        return range(0, 6)
    return range(18, 24)


def is_in_home_board(point: Point, player: Player) -> bool:
    """Check whether a point lies in a player's home board."""
    return point in home_board_range(player)


def entry_point_for_die(player: Player, die: int) -> Point:
    """Get the point a checker entering from the bar lands on.

    White enters in Black's home (18-23), Black enters in White's home (0-5).
    """
    if player == Player.WHITE:
        return NUM_POINTS - die
    return die - 1


def pips_to_bear_off(point: Point, player: Player) -> int:
    """Distance from a point (or the bar) to bearing off."""
    if point == BAR:
        return BAR_PIPS
    if player == Player.WHITE:
        return point + 1
    return NUM_POINTS - point


def distance_for_move(
    from_point: Point,
    to_point: Point,
    player: Player,
    bear_off: Point = OFF,
) -> int:
    """Pip distance a move requires.

    Handles bar re-entry, bearing off and regular moves. Direction is
    checked elsewhere, so a regular move is simply the index difference.
    """
    if from_point == BAR:
        if player == Player.WHITE:
            return NUM_POINTS - to_point
        return to_point + 1
    if to_point == bear_off:
        return pips_to_bear_off(from_point, player)
    return abs(to_point - from_point)


# ==============================================================================
# BOARD QUERIES
# ==============================================================================

def all_checkers_in_home(board: BoardState, player: Player) -> bool:
    """Check if every checker of a player is in the home board.

    A checker on the bar counts as outside. This is the precondition for
    bearing off.
    """
    if board.bar[player] > 0:
        return False
    home = home_board_range(player)
    return all(
        point in home
        for point, state in enumerate(board.points)
        if state.owner == player
    )


def is_blocked(board: BoardState, point: Point, player: Player) -> bool:
    """True if the opponent has made `point` (2+ checkers)."""
    return board.points[point].is_made_by(player.opponent())


def calculate_pip_count(board: BoardState, player: Player) -> int:
    """Calculate pip count for a player.

    Sum over on-board checkers of the distance to bearing off, plus 25 for
    each checker on the bar. Borne-off checkers count nothing.
    """
    total = board.bar[player] * BAR_PIPS
    for point, state in enumerate(board.points):
        if state.owner == player:
            total += state.count * pips_to_bear_off(point, player)
    return total


def is_game_over(board: BoardState) -> bool:
    """Game is over when one player has borne off all 15 checkers."""
    return game_winner(board) is not None


def game_winner(board: BoardState) -> Optional[Player]:
    """Return the player who has borne off 15 checkers, if any."""
    for player in (Player.WHITE, Player.BLACK):
        if board.borne_off[player] == CHECKERS_PER_PLAYER:
            return player
    return None


def calculate_win_multiplier(board: BoardState, winner: Player) -> int:
    """Points multiplier for a finished game.

    Returns:
        1 if the loser has borne off at least one checker, 3 (backgammon)
        if the loser still has a checker on the bar or in the winner's home
        board, otherwise 2 (gammon)
    """
    loser = winner.opponent()
    if board.borne_off[loser] > 0:
        return 1
    if board.bar[loser] > 0:
        return 3
    if any(board.points[point].owner == loser for point in home_board_range(winner)):
        return 3
    return 2


def game_outcome(board: BoardState, cube_value: int = 1) -> Optional[GameOutcome]:
    """Determine the winner and outcome type, or None if the game continues."""
    winner = game_winner(board)
    if winner is None:
        return None
    return GameOutcome(
        winner=winner,
        multiplier=calculate_win_multiplier(board, winner),
        cube_value=cube_value,
    )


def is_valid_board(board: BoardState) -> Tuple[bool, str]:
    """Validate a board state.

    Returns:
        (is_valid, error_message) tuple
    """
    for player in (Player.WHITE, Player.BLACK):
        if board.bar[player] < 0 or board.borne_off[player] < 0:
            return False, f"{player} has a negative bar or borne-off count"
        total = board.total_checkers(player)
        if total != CHECKERS_PER_PLAYER:
            return False, f"{player} has {total} checkers, should have {CHECKERS_PER_PLAYER}"
    for point, state in enumerate(board.points):
        if state.count < 0 or (state.count == 0) != (state.owner is None):
            return False, f"Point {point} is inconsistent: {state}"
    return True, ""


def assert_valid_board(board: BoardState) -> None:
    """Raise BoardInvariantError if the board is corrupted."""
    valid, message = is_valid_board(board)
    if not valid:
        raise BoardInvariantError(message)


# ==============================================================================
# MOVE LEGALITY
# ==============================================================================

def _has_checker_behind(board: BoardState, point: Point, player: Player) -> bool:
    """True if the player has a checker further from home than `point`."""
    if player == Player.WHITE:
        further = range(point + 1, NUM_POINTS)
    else:
        further = range(0, point)
    return any(board.points[p].owner == player for p in further)


def _select_die(
    board: BoardState,
    dice: Sequence[int],
    from_point: Point,
    distance: int,
    bearing_off: bool,
) -> Optional[int]:
    """Pick the die a move consumes.

    An exact match is always used. When bearing off without an exact match,
    the smallest larger die may be used, but only if no checker sits behind
    the source point.
    """
    if distance in dice:
        return distance
    if bearing_off and not _has_checker_behind(board, from_point, board.current_player):
        larger = sorted(d for d in set(dice) if d > distance)
        if larger:
            return larger[0]
    return None


def validate_move(
    board: BoardState,
    remaining_dice: Sequence[int],
    from_point: Point,
    to_point: Point,
    bear_off: Point = OFF,
) -> MoveCheck:
    """Check a single checker move for the current player.

    Checks bar priority, source ownership, direction, the bear-off
    precondition, die availability and blocking.

    Args:
        board: Current board (not mutated)
        remaining_dice: Unused die values this turn
        from_point: Source point or BAR
        to_point: Destination point, OFF or the bear-off sentinel
        bear_off: Value used as the bear-off sentinel. OFF is always
            accepted too, since enumerated moves carry OFF.

    Returns:
        MoveCheck with the die consumed, or None and a human-readable reason
    """
    if to_point == OFF:
        to_point = bear_off
    player = board.current_player
    if not remaining_dice:
        return MoveCheck(None, "no dice remaining")

    if board.bar[player] > 0 and from_point != BAR:
        return MoveCheck(None, "checkers on the bar must re-enter first")

    if from_point == BAR:
        if board.bar[player] == 0:
            return MoveCheck(None, "no checker on the bar")
    elif not 0 <= from_point < NUM_POINTS:
        return MoveCheck(None, f"invalid source point {from_point}")
    elif board.points[from_point].owner != player:
        return MoveCheck(None, f"no {player} checker on point {from_point}")

    bearing_off = to_point == bear_off
    if bearing_off:
        if from_point == BAR:
            return MoveCheck(None, "a checker on the bar cannot bear off")
        if not all_checkers_in_home(board, player):
            return MoveCheck(None, "all checkers must be in the home board to bear off")
    elif not 0 <= to_point < NUM_POINTS:
        return MoveCheck(None, f"invalid destination point {to_point}")
    elif from_point == BAR:
        if not is_in_home_board(to_point, player.opponent()):
            return MoveCheck(None, "a checker on the bar must enter in the opponent's home board")
    elif (to_point - from_point) * direction(player) <= 0:
        return MoveCheck(None, "checkers cannot move backward")

    distance = distance_for_move(from_point, to_point, player, bear_off)
    die = _select_die(board, remaining_dice, from_point, distance, bearing_off)
    if die is None:
        return MoveCheck(None, f"no remaining die plays a distance of {distance}")

    if not bearing_off and is_blocked(board, to_point, player):
        return MoveCheck(None, f"point {to_point} is blocked")

    return MoveCheck(die)


def is_legal_move(
    board: BoardState,
    remaining_dice: Sequence[int],
    from_point: Point,
    to_point: Point,
    bear_off: Point = OFF,
) -> Optional[int]:
    """Return the die a legal move would consume, or None if it is illegal."""
    return validate_move(board, remaining_dice, from_point, to_point, bear_off).die


def _target_for_die(from_point: Point, die: int, player: Player, bear_off: Point) -> Point:
    if from_point == BAR:
        return entry_point_for_die(player, die)
    target = from_point + direction(player) * die
    return target if 0 <= target < NUM_POINTS else bear_off


def compute_legal_moves(
    board: BoardState,
    remaining_dice: Sequence[int],
    bear_off: Point = OFF,
) -> List[Move]:
    """Enumerate every single-die move the current player may make.

    If the player has a checker on the bar, only bar entries are considered.
    Moves are returned sorted by source point, then destination point.

    Args:
        board: Current board (not mutated)
        remaining_dice: Unused die values this turn
        bear_off: Value used as the bear-off sentinel

    Returns:
        Legal moves, empty if the player cannot move
    """
    player = board.current_player
    if board.bar[player] > 0:
        origins = [BAR]
    else:
        origins = [p for p, state in enumerate(board.points) if state.owner == player]

    found: Dict[Tuple[Point, Point], Move] = {}
    for origin in origins:
        for die in sorted(set(remaining_dice)):
            target = _target_for_die(origin, die, player, bear_off)
            used = is_legal_move(board, remaining_dice, origin, target, bear_off)
            if used is None:
                continue
            to_point = OFF if target == bear_off else target
            found.setdefault((origin, to_point), Move(origin, to_point, used))

    return sorted(found.values())


def has_any_legal_move(
    board: BoardState,
    remaining_dice: Sequence[int],
    bear_off: Point = OFF,
) -> bool:
    """True if the current player can play at least one die."""
    return bool(compute_legal_moves(board, remaining_dice, bear_off))


# ==============================================================================
# MOVE APPLICATION
# ==============================================================================

def apply_move(board: BoardState, move: Move) -> MoveResult:
    """Apply one move for the current player to a copy of the board.

    A single opposing checker on the destination is hit and sent to the bar.
    Turn bookkeeping (player, dice, remaining moves) is left untouched.

    Args:
        board: Board before the move (not mutated)
        move: Move to apply; assumed legal

    Returns:
        MoveResult with the new board and the hit point (None if no hit)

    Raises:
        BoardInvariantError: If the move cannot be applied to this board
    """
    player = board.current_player
    rival = player.opponent()
    new_board = board.copy()

    if move.from_point == BAR:
        if new_board.bar[player] == 0:
            raise BoardInvariantError(f"{player} has no checker on the bar")
        new_board.bar[player] -= 1
    else:
        source = new_board.points[move.from_point]
        if source.owner != player:
            raise BoardInvariantError(f"{player} has no checker on point {move.from_point}")
        new_board.set_checkers(player, move.from_point, source.count - 1)

    hit_point = None
    if move.to_point == OFF:
        new_board.borne_off[player] += 1
    else:
        target = new_board.points[move.to_point]
        if target.owner == rival:
            if target.count != 1:
                raise BoardInvariantError(f"Point {move.to_point} is blocked by {rival}")
            new_board.points[move.to_point] = EMPTY_POINT
            new_board.bar[rival] += 1
            hit_point = move.to_point
        new_board.set_checkers(player, move.to_point, new_board.get_checkers(player, move.to_point) + 1)

    assert_valid_board(new_board)
    return MoveResult(new_board, hit_point)


def revert_move(board: BoardState, move: Move, hit_point: Optional[Point]) -> BoardState:
    """Undo a move previously applied with `apply_move`.

    Args:
        board: Board after the move
        move: The move that was applied
        hit_point: Hit point reported by `apply_move`

    Returns:
        Board as it was before the move
    """
    player = board.current_player
    rival = player.opponent()
    new_board = board.copy()

    if move.to_point == OFF:
        new_board.borne_off[player] -= 1
    else:
        new_board.set_checkers(player, move.to_point, new_board.get_checkers(player, move.to_point) - 1)
        if hit_point is not None:
            new_board.bar[rival] -= 1
            new_board.set_checkers(rival, hit_point, 1)

    if move.from_point == BAR:
        new_board.bar[player] += 1
    else:
        new_board.set_checkers(player, move.from_point, new_board.get_checkers(player, move.from_point) + 1)

    assert_valid_board(new_board)
    return new_board


# ==============================================================================
# SERIALIZATION
# ==============================================================================

def board_to_dict(board: BoardState) -> Dict[str, Any]:
    """Convert a board to a JSON-serializable dict.

    Points are listed as [count, owner] pairs, owner None for empty points.
    """
    return {
        "points": [[s.count, s.owner.value if s.owner else None] for s in board.points],
        "bar": {p.value: n for p, n in board.bar.items()},
        "borne_off": {p.value: n for p, n in board.borne_off.items()},
        "current_player": board.current_player.value,
        "dice_values": list(board.dice_values),
        "remaining_moves": list(board.remaining_moves),
    }


def board_from_dict(data: Dict[str, Any]) -> BoardState:
    """Rebuild a board from `board_to_dict` output.

    Raises:
        ValueError: If the data is malformed or describes an invalid board
    """
    try:
        points = [
            PointState(int(count), Player(owner) if owner is not None else None)
            for count, owner in data["points"]
        ]
        board = BoardState(
            points=points,
            bar={Player(k): int(v) for k, v in data["bar"].items()},
            borne_off={Player(k): int(v) for k, v in data["borne_off"].items()},
            current_player=Player(data["current_player"]),
            dice_values=[int(d) for d in data.get("dice_values", [])],
            remaining_moves=[int(d) for d in data.get("remaining_moves", [])],
        )
    except (KeyError, TypeError, AttributeError, AssertionError) as e:
        raise ValueError(f"Malformed board data: {e}") from e

    for player in (Player.WHITE, Player.BLACK):
        if player not in board.bar or player not in board.borne_off:
            raise ValueError(f"Malformed board data: missing counts for {player}")
    valid, message = is_valid_board(board)
    if not valid:
        raise ValueError(f"Invalid board: {message}")
    return board


# ==============================================================================
# BOARD DISPLAY (for debugging)
# ==============================================================================

def board_to_string(board: BoardState) -> str:
    """Convert board to string representation.

    Returns:
        Text table of every point plus bar and off counts
    """
    lines = []
    lines.append("=" * 40)
    lines.append(f"Player to move: {board.current_player}")
    if board.dice_values:
        lines.append(f"Dice: {board.dice_values}  remaining: {board.remaining_moves}")
    lines.append(f"White pip count: {calculate_pip_count(board, Player.WHITE)}")
    lines.append(f"Black pip count: {calculate_pip_count(board, Player.BLACK)}")
    lines.append("")
    lines.append("Point | White | Black")
    lines.append("------+-------+------")

    for point in range(NUM_POINTS):
        w = board.get_checkers(Player.WHITE, point)
        b = board.get_checkers(Player.BLACK, point)
        lines.append(f"{point:2d}    |  {w:2d}   |  {b:2d}")

    lines.append(f"BAR   |  {board.bar[Player.WHITE]:2d}   |  {board.bar[Player.BLACK]:2d}")
    lines.append(f"OFF   |  {board.borne_off[Player.WHITE]:2d}   |  {board.borne_off[Player.BLACK]:2d}")
    lines.append("=" * 40)
    return "\n".join(lines)
