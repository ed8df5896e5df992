"""Saving and loading games.

A saved game is a JSON document with the full board, turn state, match
score, cube, move history and configuration (including the computer
opponent settings). Loading a saved game reproduces an equivalent board,
cube state and match score.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from backgammon_engine.core.board import board_from_dict, board_to_dict
from backgammon_engine.core.types import (
    CubeOwner,
    CubeState,
    GameConfig,
    GameOutcome,
    MatchState,
    MoveRecord,
    Player,
    TurnState,
)
from backgammon_engine.game.controller import GameController


logger = logging.getLogger(__name__)

SAVE_VERSION = 1

PathLike = Union[str, Path]


# ==============================================================================
# COMPONENT SERIALIZERS
# ==============================================================================


def cube_to_dict(cube: CubeState) -> Dict[str, Any]:
    return {
        "value": cube.value,
        "owner": cube.owner.value,
        "is_offered": cube.is_offered,
        "offering_player": cube.offering_player.value if cube.offering_player else None,
    }


def cube_from_dict(data: Dict[str, Any]) -> CubeState:
    offering = data.get("offering_player")
    return CubeState(
        value=int(data["value"]),
        owner=CubeOwner(data["owner"]),
        is_offered=bool(data.get("is_offered", False)),
        offering_player=Player(offering) if offering is not None else None,
    )


def match_to_dict(match: MatchState) -> Dict[str, Any]:
    return {
        "target_points": match.target_points,
        "white_score": match.white_score,
        "black_score": match.black_score,
        "crawford": match.crawford,
        "post_crawford": match.post_crawford,
        "games_played": match.games_played,
    }


def match_from_dict(data: Dict[str, Any]) -> MatchState:
    return MatchState(
        target_points=int(data["target_points"]),
        white_score=int(data.get("white_score", 0)),
        black_score=int(data.get("black_score", 0)),
        crawford=bool(data.get("crawford", False)),
        post_crawford=bool(data.get("post_crawford", False)),
        games_played=int(data.get("games_played", 0)),
    )


def record_to_dict(record: MoveRecord) -> Dict[str, Any]:
    return {
        "from": record.from_point,
        "to": record.to_point,
        "player": record.player.value,
        "die": record.die,
        "hit_point": record.hit_point,
    }


def record_from_dict(data: Dict[str, Any]) -> MoveRecord:
    return MoveRecord(
        from_point=int(data["from"]),
        to_point=int(data["to"]),
        player=Player(data["player"]),
        die=int(data["die"]),
        hit_point=None if data.get("hit_point") is None else int(data["hit_point"]),
    )


def outcome_to_dict(outcome: Optional[GameOutcome]) -> Optional[Dict[str, Any]]:
    if outcome is None:
        return None
    return {
        "winner": outcome.winner.value,
        "multiplier": outcome.multiplier,
        "cube_value": outcome.cube_value,
        "declined": outcome.declined,
    }


def outcome_from_dict(data: Optional[Dict[str, Any]]) -> Optional[GameOutcome]:
    if data is None:
        return None
    return GameOutcome(
        winner=Player(data["winner"]),
        multiplier=int(data["multiplier"]),
        cube_value=int(data.get("cube_value", 1)),
        declined=bool(data.get("declined", False)),
    )


# ==============================================================================
# WHOLE GAME
# ==============================================================================


def game_to_dict(controller: GameController) -> Dict[str, Any]:
    """Serialize a controller's full game state."""
    return {
        "version": SAVE_VERSION,
        "board": board_to_dict(controller.board),
        "turn_state": controller.turn_state.value,
        "match": match_to_dict(controller.match),
        "cube": cube_to_dict(controller.cube),
        "history": [record_to_dict(r) for r in controller.history],
        "outcome": outcome_to_dict(controller.outcome),
        "config": controller.config.to_dict(),
    }


def game_from_dict(data: Dict[str, Any]) -> GameController:
    """Rebuild a controller from `game_to_dict` output.

    The undo stack is not saved, so a loaded game cannot take back moves
    made before it was saved.

    Raises:
        ValueError: If the data is malformed or from an unknown version
    """
    version = data.get("version")
    if version != SAVE_VERSION:
        raise ValueError(f"Unsupported save version: {version!r}")

    try:
        config = GameConfig.from_dict(data.get("config", {}))
        controller = GameController(config)
        controller.board = board_from_dict(data["board"])
        controller.turn_state = TurnState(data["turn_state"])
        controller.match = match_from_dict(data["match"])
        controller.cube = cube_from_dict(data["cube"])
        controller.history = [record_from_dict(r) for r in data.get("history", [])]
        controller.outcome = outcome_from_dict(data.get("outcome"))
    except (KeyError, TypeError, AttributeError, AssertionError) as e:
        raise ValueError(f"Malformed saved game: {e}") from e
    return controller


def save_game(controller: GameController, path: PathLike) -> Path:
    """Write a game to a JSON file, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(game_to_dict(controller), f, indent=2)
    logger.info("Saved game to %s", path)
    return path


def load_game(path: PathLike) -> GameController:
    """Load a game written by `save_game`.

    Raises:
        ValueError: If the file is not a valid saved game
    """
    path = Path(path)
    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a saved game")
    logger.info("Loaded game from %s", path)
    return game_from_dict(data)


# ==============================================================================
# CONFIGURATION FILES
# ==============================================================================


def load_config(path: PathLike) -> GameConfig:
    """Read a GameConfig from a JSON file.

    Raises:
        ValueError: If the file is not a JSON object or has invalid values
    """
    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return GameConfig.from_dict(data)
