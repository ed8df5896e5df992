"""Typed domain events emitted by the turn controller.

Every controller command returns the events it produced and also pushes
them to subscribed listeners (renderer, sound, history, logging, ...).
Events are immutable and serialize to flat JSON-friendly dicts tagged with
their `type`.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from backgammon_engine.core.types import Player, Point


@dataclass(frozen=True)
class GameEvent:
    """Base class for all events."""

    @property
    def type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, tuple):
                value = list(value)
            data[f.name] = value
        return data


EventListener = Callable[[GameEvent], None]


# ==============================================================================
# GAME FLOW
# ==============================================================================


@dataclass(frozen=True)
class GameStarted(GameEvent):
    game_number: int
    first_player: Optional[Player]  # None until the opening roll decides
    board: Dict[str, Any]


@dataclass(frozen=True)
class OpeningRollTied(GameEvent):
    die: int


@dataclass(frozen=True)
class OpeningRoll(GameEvent):
    white_die: int
    black_die: int
    first_player: Player


@dataclass(frozen=True)
class DiceRolled(GameEvent):
    player: Player
    values: Tuple[int, ...]


@dataclass(frozen=True)
class NoLegalMoves(GameEvent):
    player: Player
    remaining_dice: Tuple[int, ...]


@dataclass(frozen=True)
class MoveApplied(GameEvent):
    from_point: Point
    to_point: Point
    player: Player
    die: int
    hit_point: Optional[Point] = None


@dataclass(frozen=True)
class CheckerHit(GameEvent):
    point: Point
    color: Player  # owner of the checker sent to the bar


@dataclass(frozen=True)
class MoveUndone(GameEvent):
    from_point: Point
    to_point: Point
    player: Player
    die: int


@dataclass(frozen=True)
class TurnEnded(GameEvent):
    player: Player
    next_player: Player


# ==============================================================================
# DOUBLING CUBE
# ==============================================================================


@dataclass(frozen=True)
class CubeOffered(GameEvent):
    player: Player
    cube_value: int  # value before the double


@dataclass(frozen=True)
class CubeAccepted(GameEvent):
    player: Player
    cube_value: int  # value after the double


@dataclass(frozen=True)
class CubeDeclined(GameEvent):
    player: Player


# ==============================================================================
# RESULTS
# ==============================================================================


@dataclass(frozen=True)
class GameWon(GameEvent):
    winner: Player
    multiplier: int
    cube_value: int
    points: int
    declined: bool = False


@dataclass(frozen=True)
class MatchWon(GameEvent):
    winner: Player
    white_score: int
    black_score: int
