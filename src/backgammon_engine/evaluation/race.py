"""Race equity estimation using the Keith count / Effective Pip Count.

When both players have disengaged (no contact), the game becomes a pure
race and the equity can be estimated from pip counts alone. The AI uses
this, plus a rougher pip-lead estimate for contact positions, to make its
doubling cube decisions.

The Keith count adjusts the raw pip count with positional corrections:
- Penalty for checkers on the bar (shouldn't happen in a race, but handle it)
- Penalty for gaps in the home board
- Penalty for having more checkers to bear off
- Penalty for checkers far from the home board

References:
- Tom Keith, "Effective Pip Count" (2005)
- Backgammon Galore race equity tables
"""

import numpy as np

from backgammon_engine.core.board import calculate_pip_count, home_board_range
from backgammon_engine.core.types import CHECKERS_PER_PLAYER, BoardState, Player
from backgammon_engine.evaluation.patterns import home_board_strength, is_past_contact


RACE_SCALE = 12.0  # a 10-pip lead in a typical race is roughly 70% to win
CONTACT_SCALE = 20.0
BAR_PENALTY_PIPS = 8.0
HOME_POINT_PIPS = 3.0


def effective_pip_count(board: BoardState, player: Player) -> float:
    """Compute the Effective Pip Count (EPC) for a player.

    Corrections applied:
    1. +1 for each checker still to bear off
    2. +1 for each gap in the home board
    3. +4 for each checker on the bar (exceptional in a race)
    4. +0.5 per checker outside the home board (crossover penalty)

    Returns:
        Effective pip count (higher is worse for the player), 0 when all off
    """
    checkers_remaining = CHECKERS_PER_PLAYER - board.borne_off[player]
    if checkers_remaining == 0:
        return 0.0

    raw_pips = calculate_pip_count(board, player)
    correction = checkers_remaining * 1.0

    home = home_board_range(player)
    for point in home:
        if board.get_checkers(player, point) == 0:
            correction += 1.0

    correction += board.bar[player] * 4.0

    for point, state in enumerate(board.points):
        if state.owner == player and point not in home:
            correction += state.count * 0.5

    return raw_pips + correction


def race_equity(board: BoardState, player: Player) -> float:
    """Estimate equity for a race position using pip count difference.

    P(win) = 1 / (1 + exp(-(opp_epc - our_epc) / scale))

    Returns:
        Estimated equity in [-1, 1]: +1 certain win, -1 certain loss
    """
    our_epc = effective_pip_count(board, player)
    opp_epc = effective_pip_count(board, player.opponent())

    if our_epc == 0.0:
        return 1.0
    if opp_epc == 0.0:
        return -1.0

    diff = opp_epc - our_epc
    win_prob = 1.0 / (1.0 + np.exp(-diff / RACE_SCALE))
    return float(2.0 * win_prob - 1.0)


def is_race_position(board: BoardState) -> bool:
    """Check if the position is a pure race (no contact possible)."""
    return is_past_contact(board, Player.WHITE)


def position_equity(board: BoardState, player: Player) -> float:
    """Rough cubeless equity for any position.

    Races use the EPC formula. Contact positions use the pip lead, charging
    extra pips for checkers on the bar and crediting home-board points.
    """
    if is_race_position(board):
        return race_equity(board, player)

    rival = player.opponent()
    ours = calculate_pip_count(board, player) + BAR_PENALTY_PIPS * board.bar[player]
    theirs = calculate_pip_count(board, rival) + BAR_PENALTY_PIPS * board.bar[rival]
    ours -= HOME_POINT_PIPS * home_board_strength(board, player)
    theirs -= HOME_POINT_PIPS * home_board_strength(board, rival)

    win_prob = 1.0 / (1.0 + np.exp(-(theirs - ours) / CONTACT_SCALE))
    return float(2.0 * win_prob - 1.0)
