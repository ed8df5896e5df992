"""Doubling cube and match scoring.

This module implements the doubling cube state machine and match play:
- Cube state transitions (offer, accept, decline, reset)
- Match score tracking with the Crawford rule
- Game points (win multiplier x cube value)

Cube states are immutable; every transition returns a success flag and the
resulting state. A failed transition returns the input state unchanged.
"""

from dataclasses import replace
from typing import Optional, Tuple

from backgammon_engine.core.types import (
    CubeOwner,
    CubeState,
    MatchState,
    Player,
)


# ==============================================================================
# CUBE STATE
# ==============================================================================

MAX_CUBE_VALUE = 64

CubeTransition = Tuple[bool, CubeState]


def initial_cube() -> CubeState:
    """Create initial cube state (centered, value 1, no offer)."""
    return CubeState(value=1, owner=CubeOwner.CENTERED)


def reset_cube() -> CubeState:
    """Cube state at the start of every new game."""
    return initial_cube()


def owner_to_player(owner: CubeOwner) -> Optional[Player]:
    """Side holding the cube, or None while it is in the middle."""
    if owner == CubeOwner.CENTERED:
        return None
    return Player(owner.value)


def player_to_owner(player: Player) -> CubeOwner:
    return CubeOwner(player.value)


# ==============================================================================
# CUBE RULES
# ==============================================================================


def can_offer_cube(cube: CubeState, player: Player) -> bool:
    """Whether `player` may turn the cube right now.

    Nobody may double while an offer is pending or once the cube is dead
    (value 64). A centered cube is open to both sides; otherwise only the
    owner may redouble.
    """
    if cube.is_offered or cube.value >= MAX_CUBE_VALUE:
        return False
    return cube.owner in (CubeOwner.CENTERED, player_to_owner(player))


def offer_double(cube: CubeState, player: Player) -> CubeTransition:
    """Offer a double; the opponent must then accept or decline."""
    if not can_offer_cube(cube, player):
        return False, cube
    return True, replace(cube, is_offered=True, offering_player=player)


def accept_double(cube: CubeState, accepting_player: Player) -> CubeTransition:
    """Accept a pending double.

    The cube value doubles and the accepting player becomes the owner, so
    only they may redouble later.
    """
    if not cube.is_offered or accepting_player == cube.offering_player:
        return False, cube
    return True, CubeState(
        value=cube.value * 2,
        owner=player_to_owner(accepting_player),
    )


def decline_double(cube: CubeState) -> CubeTransition:
    """Decline a pending double.

    The offer is cleared and the value stays undoubled. The caller awards
    the game to `cube.offering_player` at the current value.
    """
    if not cube.is_offered:
        return False, cube
    return True, replace(cube, is_offered=False, offering_player=None)


# ==============================================================================
# MATCH PLAY
# ==============================================================================


def new_match(target_points: int) -> MatchState:
    """Create a new match played to `target_points`."""
    return MatchState(target_points=target_points)


def is_match_over(match: MatchState) -> bool:
    """Check if either player has reached the target score."""
    return match_winner(match) is not None


def match_winner(match: MatchState) -> Optional[Player]:
    """Get the match winner, or None if the match is not over."""
    if match.white_score >= match.target_points:
        return Player.WHITE
    if match.black_score >= match.target_points:
        return Player.BLACK
    return None


def update_match_score(match: MatchState, game_winner: Player, points: int) -> MatchState:
    """Score a finished game and advance the Crawford state.

    The game right after a player first reaches match point (one point
    short of the target) is the Crawford game; every later game is
    post-Crawford and the rule no longer applies.

    Args:
        match: Score before the game
        game_winner: Winner of the game
        points: Points won (win multiplier times cube value)
    """
    scores = {Player.WHITE: match.white_score, Player.BLACK: match.black_score}
    before = scores[game_winner]
    scores[game_winner] += points

    match_point = match.target_points - 1
    crawford_next = (
        not match.crawford
        and not match.post_crawford
        and before < match_point == scores[game_winner]
    )
    return replace(
        match,
        white_score=scores[Player.WHITE],
        black_score=scores[Player.BLACK],
        crawford=crawford_next,
        post_crawford=match.post_crawford or match.crawford,
        games_played=match.games_played + 1,
    )


def can_double_in_match(
    cube: CubeState,
    player: Player,
    match: Optional[MatchState],
    crawford_rule: bool = True,
) -> bool:
    """Check if doubling is allowed considering match context.

    Doubling is disabled in the Crawford game. Without a match (money
    play) the plain cube rules apply.
    """
    if match is not None and crawford_rule and match.crawford:
        return False
    return can_offer_cube(cube, player)


def game_points(multiplier: int, cube: CubeState) -> int:
    """Points won in a game: base multiplier (1/2/3) times cube value."""
    return multiplier * cube.value
