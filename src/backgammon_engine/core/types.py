"""Core type definitions for the backgammon rules engine.

This module defines the data structures shared by the rules engine, the
doubling cube, the turn controller and the AI player. Everything here is
plain data plus invariant checks; behaviour lives in the sibling modules.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional


# ==============================================================================
# BOARD REPRESENTATION
# ==============================================================================

# Type aliases
Point = int  # 0-23 board points, plus the BAR and OFF sentinels below
CheckerCount = int  # 0-15

NUM_POINTS = 24
CHECKERS_PER_PLAYER = 15

BAR: Point = 24  # origin of a checker re-entering from the bar
OFF: Point = 25  # destination of a checker being borne off


class BoardInvariantError(AssertionError):
    """Raised when a board violates a structural invariant.

    This always indicates a bug in move application, never bad user input.
    """


class Player(Enum):
    """Player colors.

    White moves from point 23 toward point 0 (home board 0-5).
    Black moves from point 0 toward point 23 (home board 18-23).
    """
    WHITE = "white"
    BLACK = "black"

    def opponent(self) -> "Player":
        """Return the opponent player."""
        return Player.BLACK if self == Player.WHITE else Player.WHITE

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class PointState:
    """Contents of a single point.

    Attributes:
        count: Number of checkers on the point
        owner: Player owning those checkers, None when the point is empty
    """
    count: CheckerCount = 0
    owner: Optional[Player] = None

    def __post_init__(self):
        """Validate point state."""
        assert self.count >= 0, f"Negative checker count: {self.count}"
        assert (self.count == 0) == (self.owner is None), (
            f"Point count {self.count} inconsistent with owner {self.owner}"
        )

    def is_made_by(self, player: Player) -> bool:
        """True if `player` holds two or more checkers here."""
        return self.owner == player and self.count >= 2

    def is_blot_of(self, player: Player) -> bool:
        """True if `player` has exactly one checker here."""
        return self.owner == player and self.count == 1


EMPTY_POINT = PointState()


def _empty_points() -> List[PointState]:
    return [EMPTY_POINT] * NUM_POINTS


def _zero_per_player() -> Dict[Player, int]:
    return {Player.WHITE: 0, Player.BLACK: 0}


@dataclass
class BoardState:
    """Complete board state for one game.

    Attributes:
        points: 24 point records, index 0-23
        bar: Checkers on the bar per player
        borne_off: Checkers borne off per player
        current_player: Player whose turn it is
        dice_values: Usable die values of the current roll (4 entries for doubles)
        remaining_moves: Die values not yet consumed this turn
    """
    points: List[PointState] = field(default_factory=_empty_points)
    bar: Dict[Player, int] = field(default_factory=_zero_per_player)
    borne_off: Dict[Player, int] = field(default_factory=_zero_per_player)
    current_player: Player = Player.WHITE
    dice_values: List[int] = field(default_factory=list)
    remaining_moves: List[int] = field(default_factory=list)

    def __post_init__(self):
        """Validate board shape."""
        assert len(self.points) == NUM_POINTS, "points must have length 24"

    def copy(self) -> "BoardState":
        """Create a deep copy of the board."""
        return BoardState(
            points=list(self.points),
            bar=dict(self.bar),
            borne_off=dict(self.borne_off),
            current_player=self.current_player,
            dice_values=list(self.dice_values),
            remaining_moves=list(self.remaining_moves),
        )

    def get_checkers(self, player: Player, point: Point) -> CheckerCount:
        """Get number of checkers a player has on a point, the bar or off."""
        if point == BAR:
            return self.bar[player]
        if point == OFF:
            return self.borne_off[player]
        state = self.points[point]
        return state.count if state.owner == player else 0

    def set_checkers(self, player: Player, point: Point, count: CheckerCount) -> None:
        """Set number of checkers at a point for a player (mutates board)."""
        assert 0 <= count <= CHECKERS_PER_PLAYER, f"Invalid checker count: {count}"
        if point == BAR:
            self.bar[player] = count
        elif point == OFF:
            self.borne_off[player] = count
        else:
            occupant = self.points[point].owner
            if count == 0:
                if occupant == player:
                    self.points[point] = EMPTY_POINT
                return
            assert occupant in (None, player), f"Point {point} is held by {occupant}"
            self.points[point] = PointState(count, player)

    def total_checkers(self, player: Player) -> int:
        """Checkers on points + bar + borne off for a player (always 15)."""
        on_points = sum(p.count for p in self.points if p.owner == player)
        return on_points + self.bar[player] + self.borne_off[player]


@dataclass(frozen=True, order=True)
class Move:
    """A single checker movement consuming one die.

    Attributes:
        from_point: Starting point (0-23) or BAR
        to_point: Ending point (0-23) or OFF
        die: Die value consumed (1-6)
    """
    from_point: Point
    to_point: Point
    die: int

    def __post_init__(self):
        """Validate move."""
        assert 0 <= self.from_point <= BAR, f"Invalid from_point: {self.from_point}"
        assert 0 <= self.to_point < NUM_POINTS or self.to_point == OFF, (
            f"Invalid to_point: {self.to_point}"
        )
        assert 1 <= self.die <= 6, f"Invalid die: {self.die}"

    def __str__(self) -> str:
        src = "bar" if self.from_point == BAR else str(self.from_point)
        dst = "off" if self.to_point == OFF else str(self.to_point)
        return f"{src}/{dst}"


class MoveCheck(NamedTuple):
    """Outcome of a legality check: the die consumed, or a reason for rejection."""
    die: Optional[int]
    reason: str = ""

    @property
    def legal(self) -> bool:
        return self.die is not None


class MoveResult(NamedTuple):
    """Outcome of applying a move."""
    board: BoardState
    hit_point: Optional[Point]


# ==============================================================================
# DOUBLING CUBE AND MATCH
# ==============================================================================

CUBE_VALUES = (1, 2, 4, 8, 16, 32, 64)


class CubeOwner(Enum):
    """Who may turn the cube next."""
    CENTERED = "center"
    WHITE = "white"
    BLACK = "black"


@dataclass(frozen=True)
class CubeState:
    """Doubling cube state.

    Attributes:
        value: Current stake multiplier
        owner: Who owns the cube (CENTERED at game start)
        is_offered: Whether a double is pending a response
        offering_player: Player who offered the pending double
    """
    value: int = 1
    owner: CubeOwner = CubeOwner.CENTERED
    is_offered: bool = False
    offering_player: Optional[Player] = None

    def __post_init__(self):
        """Validate cube state."""
        assert self.value in CUBE_VALUES, f"Invalid cube value: {self.value}"
        assert self.is_offered == (self.offering_player is not None), (
            "offering_player must be set exactly when a double is pending"
        )


@dataclass(frozen=True)
class MatchState:
    """Running score of a match.

    Attributes:
        target_points: Points needed to win the match
        white_score: Points won by White so far
        black_score: Points won by Black so far
        crawford: Whether the current game is the Crawford game
        post_crawford: Whether the Crawford game has already been played
        games_played: Number of completed games
    """
    target_points: int = 1
    white_score: int = 0
    black_score: int = 0
    crawford: bool = False
    post_crawford: bool = False
    games_played: int = 0

    def __post_init__(self):
        assert self.target_points >= 1, f"Invalid match length: {self.target_points}"

    def score_of(self, player: Player) -> int:
        return self.white_score if player == Player.WHITE else self.black_score


# ==============================================================================
# GAME FLOW
# ==============================================================================

class TurnState(Enum):
    """Turn controller states."""
    OPENING_ROLL = "opening_roll"
    WAITING_FOR_ROLL = "waiting_for_roll"
    ROLLED_DICE = "rolled_dice"
    SELECTING_MOVE = "selecting_move"
    GAME_OVER = "game_over"


@dataclass(frozen=True)
class GameOutcome:
    """Game outcome with points won.

    Attributes:
        winner: Which player won
        multiplier: 1=single, 2=gammon, 3=backgammon
        cube_value: Cube value at the end of the game
        declined: Whether the game ended by a declined double
    """
    winner: Player
    multiplier: int
    cube_value: int = 1
    declined: bool = False

    def __post_init__(self):
        """Validate outcome."""
        assert self.multiplier in (1, 2, 3), f"Multiplier must be 1, 2 or 3, got {self.multiplier}"

    @property
    def points(self) -> int:
        return self.multiplier * self.cube_value

    def is_gammon(self) -> bool:
        """Check if outcome is a gammon (includes backgammon)."""
        return self.multiplier >= 2

    def is_backgammon(self) -> bool:
        """Check if outcome is a backgammon."""
        return self.multiplier == 3


@dataclass(frozen=True)
class MoveRecord:
    """One applied move, as kept in the game history."""
    from_point: Point
    to_point: Point
    player: Player
    die: int
    hit_point: Optional[Point] = None


# ==============================================================================
# CONFIGURATION
# ==============================================================================

DIFFICULTIES = ("easy", "medium", "hard")


@dataclass
class AIConfig:
    """Computer opponent settings.

    Attributes:
        enabled: Whether one side is played by the computer
        player: Which side the computer plays
        difficulty: easy (random), medium (plain heuristic) or hard (full heuristic)
    """
    enabled: bool = False
    player: Player = Player.BLACK
    difficulty: str = "hard"

    def __post_init__(self):
        if self.difficulty not in DIFFICULTIES:
            raise ValueError(f"Unknown difficulty {self.difficulty!r}, expected one of {DIFFICULTIES}")

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "player": self.player.value, "difficulty": self.difficulty}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "AIConfig":
        return AIConfig(
            enabled=bool(data.get("enabled", False)),
            player=Player(data.get("player", Player.BLACK.value)),
            difficulty=data.get("difficulty", "hard"),
        )


@dataclass
class GameConfig:
    """Game and match configuration."""

    match_length: int = 1
    opening_roll: bool = True  # single-die opening roll decides who starts
    auto_end_turn: bool = True  # end the turn as soon as no die can be played
    undo_depth: int = 20
    cube_enabled: bool = True
    crawford: bool = True
    seed: Optional[int] = None
    ai: AIConfig = field(default_factory=AIConfig)

    def __post_init__(self):
        if self.match_length < 1:
            raise ValueError(f"match_length must be >= 1, got {self.match_length}")
        if self.undo_depth < 0:
            raise ValueError(f"undo_depth must be >= 0, got {self.undo_depth}")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["ai"] = self.ai.to_dict()
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "GameConfig":
        known = {k: v for k, v in data.items() if k in GameConfig.__dataclass_fields__ and k != "ai"}
        return GameConfig(ai=AIConfig.from_dict(data.get("ai", {})), **known)
