"""Command-line entrypoint for backgammon-engine.

Subcommands:
    play        play against the computer in the terminal
    simulate N  play N computer-vs-computer games and print statistics
    serve       run the HTTP API
"""

from __future__ import annotations

import argparse
import json
import logging
from typing import Callable, Optional, Sequence

from backgammon_engine import __version__
from backgammon_engine.core.board import board_to_string
from backgammon_engine.core.types import DIFFICULTIES, AIConfig, GameConfig, Player, TurnState
from backgammon_engine.evaluation.agents import agent_for_difficulty
from backgammon_engine.game.controller import CommandResult, GameController
from backgammon_engine.game.event_log import GameEventLogger
from backgammon_engine.game.persistence import load_config, save_game
from backgammon_engine.game.self_play import compute_game_statistics, play_games
from backgammon_engine.server import create_app, parse_point


logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

PLAY_HELP = """Commands:
  roll              roll the dice
  move FROM TO      move a checker (points 0-23, "bar", "off")
  moves             list legal moves
  undo              take back the last move
  end               end the turn
  double            offer a double
  accept / decline  answer a double
  save PATH         save the game as JSON
  quit              leave"""


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser."""
    parser = argparse.ArgumentParser(
        prog="backgammon-engine",
        description="Backgammon rules engine and computer opponent",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"backgammon-engine {__version__}",
    )
    parser.add_argument("--log-level", default="WARNING", choices=LOG_LEVELS, type=str.upper)
    parser.add_argument("--config", default=None, help="JSON file with a GameConfig")
    parser.add_argument("--seed", type=int, default=None, help="Dice seed (overrides the config)")

    subparsers = parser.add_subparsers(dest="command")

    play = subparsers.add_parser("play", help="Play against the computer")
    play.add_argument("--difficulty", choices=DIFFICULTIES, default=None)
    play.add_argument("--color", choices=[p.value for p in Player], default="white",
                      help="Side you play")
    play.add_argument("--match-length", type=int, default=None)

    simulate = subparsers.add_parser("simulate", help="Play computer-vs-computer games")
    simulate.add_argument("games", type=int)
    simulate.add_argument("--white", choices=DIFFICULTIES, default="hard")
    simulate.add_argument("--black", choices=DIFFICULTIES, default="hard")
    simulate.add_argument("--log-dir", default=None, help="Write a JSON summary here")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8002)

    return parser


def load_game_config(args: argparse.Namespace) -> GameConfig:
    """Config file values, then command-line overrides."""
    config = load_config(args.config) if args.config else GameConfig()
    if args.seed is not None:
        config.seed = args.seed
    return config


# ==============================================================================
# PLAY
# ==============================================================================


def _report(result: CommandResult, output: Callable[[str], None]) -> None:
    if not result.success:
        output(f"Rejected: {result.reason}")
        return
    for event in result.events:
        fields = {k: v for k, v in event.to_dict().items() if k not in ("type", "board")}
        output(f"  {event.type} {fields}")


def run_play(
    controller: GameController,
    input_fn: Callable[[str], str] = input,
    output: Callable[[str], None] = print,
) -> int:
    """Interactive terminal game loop. Returns when the match ends or on quit."""
    output(PLAY_HELP)
    _report(controller.new_game(), output)

    while True:
        if controller.ai_has_control():
            result = controller.play_ai_turn()
            _report(result, output)
            if not result.success:
                return 1
            continue

        if controller.turn_state == TurnState.GAME_OVER:
            if controller.match_over:
                output(f"Match over: white {controller.match.white_score}, black {controller.match.black_score}")
                return 0
            _report(controller.next_game(), output)
            continue

        output(board_to_string(controller.board))
        try:
            line = input_fn(f"[{controller.turn_state.value}] > ").strip()
        except EOFError:
            return 0
        if not line:
            continue
        command, *rest = line.split()
        command = command.lower()

        try:
            if command == "quit":
                return 0
            elif command == "help":
                output(PLAY_HELP)
            elif command == "roll":
                _report(controller.roll_dice(), output)
            elif command == "move" and len(rest) == 2:
                _report(controller.request_move(parse_point(rest[0]), parse_point(rest[1])), output)
            elif command == "moves":
                output(" ".join(str(m) for m in controller.get_legal_moves()) or "(none)")
            elif command == "undo":
                _report(controller.undo_move(), output)
            elif command == "end":
                _report(controller.end_turn(), output)
            elif command == "double":
                _report(controller.offer_double(), output)
            elif command == "accept":
                _report(controller.accept_double(), output)
            elif command == "decline":
                _report(controller.decline_double(), output)
            elif command == "save" and len(rest) == 1:
                output(f"Saved to {save_game(controller, rest[0])}")
            else:
                output(f"Unknown command: {line}")
        except ValueError as e:
            output(f"Error: {e}")


def cmd_play(args: argparse.Namespace) -> int:
    config = load_game_config(args)
    human = Player(args.color)
    difficulty = args.difficulty or config.ai.difficulty
    config.ai = AIConfig(enabled=True, player=human.opponent(), difficulty=difficulty)
    if args.match_length is not None:
        config.match_length = args.match_length
    return run_play(GameController(config))


# ==============================================================================
# SIMULATE
# ==============================================================================


def cmd_simulate(args: argparse.Namespace) -> int:
    config = load_game_config(args)
    config.cube_enabled = False
    white = agent_for_difficulty(args.white, config.seed)
    black = agent_for_difficulty(args.black, None if config.seed is None else config.seed + 1)

    if args.log_dir:
        with GameEventLogger(log_dir=args.log_dir, run_name="simulation") as event_log:
            games = play_games(args.games, white, black, config, listener=event_log)
            stats = compute_game_statistics(games)
            event_log.save_summary(stats)
    else:
        stats = compute_game_statistics(play_games(args.games, white, black, config))

    stats.update({'white_agent': args.white, 'black_agent': args.black})
    print(json.dumps(stats, indent=2))
    return 0


# ==============================================================================
# SERVE
# ==============================================================================


def cmd_serve(args: argparse.Namespace) -> int:
    app = create_app(load_game_config(args))
    logger.info("Serving on http://%s:%d", args.host, args.port)
    app.run(host=args.host, port=args.port)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entrypoint used by the `backgammon-engine` console script."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    if args.command == "play":
        return cmd_play(args)
    if args.command == "simulate":
        return cmd_simulate(args)
    if args.command == "serve":
        return cmd_serve(args)
    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
