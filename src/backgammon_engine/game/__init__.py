"""Turn controller, domain events, persistence and simulations."""

from backgammon_engine.game.controller import (
    CommandResult,
    GameController,
    GameSnapshot,
)

from backgammon_engine.game.event_log import GameEventLogger

from backgammon_engine.game.persistence import (
    game_from_dict,
    game_to_dict,
    load_config,
    load_game,
    save_game,
)

from backgammon_engine.game.self_play import (
    GameResult,
    compute_game_statistics,
    play_game,
    play_games,
)

__all__ = [
    # Controller
    "CommandResult",
    "GameController",
    "GameSnapshot",
    # Logging
    "GameEventLogger",
    # Persistence
    "game_from_dict",
    "game_to_dict",
    "load_config",
    "load_game",
    "save_game",
    # Simulation
    "GameResult",
    "compute_game_statistics",
    "play_game",
    "play_games",
]
