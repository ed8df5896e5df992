"""HTTP API for playing backgammon.

Wraps one `GameController` per app. Every command endpoint returns

    {"success": true, "events": [...], "state": {...}}

or, when the command is rejected,

    {"success": false, "error": "<reason>", "events": []}   (HTTP 400)

Points are 0-23; the bar is "bar" (or 24) and bearing off is "off" (or 25).

Usage:
    backgammon-engine serve --port 8002
"""

import logging
from typing import Any, Dict, List, Optional

from flask import Flask, jsonify, request

from backgammon_engine.core.board import board_to_dict
from backgammon_engine.core.types import BAR, OFF, GameConfig, Move, Player, Point
from backgammon_engine.game.controller import CommandResult, GameController
from backgammon_engine.game.persistence import cube_to_dict, match_to_dict, outcome_to_dict, record_to_dict


logger = logging.getLogger(__name__)

POINT_NAMES = {"bar": BAR, "off": OFF}


# ==============================================================================
# SERIALIZATION HELPERS
# ==============================================================================

def parse_point(value: Any) -> Point:
    """Parse a point from JSON: an index or "bar"/"off".

    Raises:
        ValueError: If the value is not a point
    """
    if isinstance(value, str):
        name = value.strip().lower()
        if name in POINT_NAMES:
            return POINT_NAMES[name]
        value = name
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Not a point: {value!r}") from None


def move_to_dict(move: Move) -> Dict[str, Any]:
    return {'from': move.from_point, 'to': move.to_point, 'die': move.die, 'notation': str(move)}


def state_to_dict(controller: GameController) -> Dict[str, Any]:
    """JSON view of the controller state."""
    return {
        'board': board_to_dict(controller.board),
        'turn_state': controller.turn_state.value,
        'cube': cube_to_dict(controller.cube),
        'match': match_to_dict(controller.match),
        'history': [record_to_dict(r) for r in controller.history],
        'outcome': outcome_to_dict(controller.outcome),
        'pip_count': {p.value: controller.calculate_pip_count(p) for p in Player},
    }


# ==============================================================================
# FLASK APP
# ==============================================================================

def create_app(config: Optional[GameConfig] = None) -> Flask:
    """Application factory.

    Args:
        config: Configuration of the hosted game (defaults if None)

    Returns:
        Flask app with the game API registered
    """
    app = Flask(__name__)
    holder = {'controller': GameController(config)}

    def controller() -> GameController:
        return holder['controller']

    def respond(result: CommandResult):
        if not result.success:
            return jsonify({
                'success': False,
                'error': result.reason,
                'events': [e.to_dict() for e in result.events],
            }), 400
        return jsonify({
            'success': True,
            'events': [e.to_dict() for e in result.events],
            'state': state_to_dict(controller()),
        })

    @app.errorhandler(ValueError)
    def handle_value_error(error):
        logger.debug("Bad request: %s", error)
        return jsonify({'success': False, 'error': str(error), 'events': []}), 400

    def json_body() -> Dict[str, Any]:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}

    # --------------------------------------------------------------------------
    # Commands
    # --------------------------------------------------------------------------

    @app.route('/api/new_game', methods=['POST'])
    def api_new_game():
        """Start a new match. Optional JSON: a GameConfig dict."""
        data = json_body()
        if data:
            holder['controller'] = GameController(GameConfig.from_dict(data))
        return respond(controller().new_game())

    @app.route('/api/next_game', methods=['POST'])
    def api_next_game():
        return respond(controller().next_game())

    @app.route('/api/roll', methods=['POST'])
    def api_roll():
        """Roll the dice. Optional JSON: {"dice": [d1, d2]}."""
        dice = json_body().get('dice')
        return respond(controller().roll_dice(dice))

    @app.route('/api/move', methods=['POST'])
    def api_move():
        """Move one checker. JSON: {"from": point, "to": point}."""
        data = json_body()
        if 'from' not in data or 'to' not in data:
            raise ValueError("A move needs 'from' and 'to'")
        return respond(controller().request_move(parse_point(data['from']), parse_point(data['to'])))

    @app.route('/api/end_turn', methods=['POST'])
    def api_end_turn():
        return respond(controller().end_turn())

    @app.route('/api/undo', methods=['POST'])
    def api_undo():
        return respond(controller().undo_move())

    @app.route('/api/double/offer', methods=['POST'])
    def api_offer_double():
        return respond(controller().offer_double())

    @app.route('/api/double/accept', methods=['POST'])
    def api_accept_double():
        return respond(controller().accept_double())

    @app.route('/api/double/decline', methods=['POST'])
    def api_decline_double():
        return respond(controller().decline_double())

    @app.route('/api/ai_turn', methods=['POST'])
    def api_ai_turn():
        """Let the computer play until it is the human's turn again."""
        return respond(controller().play_ai_turn())

    # --------------------------------------------------------------------------
    # Queries
    # --------------------------------------------------------------------------

    @app.route('/api/state', methods=['GET'])
    def api_state():
        return jsonify({'success': True, 'events': [], 'state': state_to_dict(controller())})

    @app.route('/api/legal_moves', methods=['GET'])
    def api_legal_moves():
        moves: List[Move] = controller().get_legal_moves()
        return jsonify({'success': True, 'events': [], 'legal_moves': [move_to_dict(m) for m in moves]})

    @app.route('/api/pip_count', methods=['GET'])
    def api_pip_count():
        c = controller()
        return jsonify({
            'success': True,
            'events': [],
            'pip_count': {p.value: c.calculate_pip_count(p) for p in Player},
        })

    return app
