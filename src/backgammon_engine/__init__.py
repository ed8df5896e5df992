"""
Backgammon Engine - rules engine, doubling cube, turn controller and heuristic AI.
"""

__version__ = "0.1.0"

# Core exports
from backgammon_engine.core.types import (
    BAR,
    OFF,
    BoardState,
    GameConfig,
    GameOutcome,
    Move,
    Player,
    TurnState,
)

__all__ = [
    "BAR",
    "OFF",
    "BoardState",
    "GameConfig",
    "GameOutcome",
    "Move",
    "Player",
    "TurnState",
]
