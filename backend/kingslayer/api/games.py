from flask import Blueprint, jsonify, request, current_app

from kingslayer import get_registry
from kingslayer import validation
from kingslayer.errors import GameError, error_payload


games = Blueprint('games', __name__)


@games.route('/create', methods=['POST'])
def create_game():
    """
    Creates a game lobby over HTTP. The host attaches a socket later by
    joining with reconnect, so the host starts out disconnected.
    """
    data = request.get_json(silent=True)
    try:
        host_name, player_count = validation.create_game(data)
    except validation.ValidationError as exc:
        return jsonify({'error': str(exc), **error_payload(GameError.VALIDATION_ERROR, str(exc))}), 400

    registry = get_registry()
    with registry.lock:
        game, player_id = registry.create_game(host_name, player_count)
        game.players[player_id].connected = False
    current_app.logger.info(f"[http-create] game={game.room_code} host={player_id}")
    return jsonify({'roomCode': game.room_code, 'playerId': player_id}), 201


@games.route('/<string:room_code>/exists', methods=['GET'])
def game_exists(room_code):
    registry = get_registry()
    with registry.lock:
        game = registry.get_game(room_code)
        if game is None:
            return jsonify({'exists': False})
        return jsonify({
            'exists': True,
            'playerCount': len(game.players),
            'maxPlayers': game.player_count,
            'phase': game.phase.value,
        })
