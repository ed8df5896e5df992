"""Core game logic and data structures."""

from backgammon_engine.core.types import (
    BAR,
    OFF,
    BoardInvariantError,
    BoardState,
    CubeOwner,
    CubeState,
    GameConfig,
    AIConfig,
    GameOutcome,
    MatchState,
    Move,
    MoveCheck,
    MoveResult,
    Player,
    Point,
    PointState,
    TurnState,
)

__all__ = [
    "BAR",
    "OFF",
    "BoardInvariantError",
    "BoardState",
    "CubeOwner",
    "CubeState",
    "GameConfig",
    "AIConfig",
    "GameOutcome",
    "MatchState",
    "Move",
    "MoveCheck",
    "MoveResult",
    "Player",
    "Point",
    "PointState",
    "TurnState",
]
