from functools import wraps
from typing import Dict, Optional

from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from kingslayer import get_registry, socketio
from kingslayer import validation
from kingslayer.errors import GameError, error_payload
from kingslayer.models import Phase
from kingslayer.services.games import session


_sid_to_player: Dict[str, str] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _room(game) -> str:
    return f"game:{game.room_code}"


def _emit_error(code: GameError, message: Optional[str] = None) -> None:
    emit('error', error_payload(code, message))


def _broadcast_state(game) -> None:
    emit('state_update', {'gameState': game.to_dict()}, to=_room(game))


def _send_private(player, event: str, payload: dict) -> None:
    if player is not None and player.connected and player.sid:
        emit(event, payload, to=player.sid)


def _game_event(handler):
    """Serialize the handler against the registry and turn bad payloads into VALIDATION_ERROR."""
    @wraps(handler)
    def wrapper(data=None):
        if current_app.config.get('SOCKET_DEBUG_LOG'):
            current_app.logger.info(f"[socket] event={handler.__name__} sid={_get_sid()[:8]} data={data}")
        registry = get_registry()
        with registry.lock:
            try:
                return handler(registry, data)
            except validation.ValidationError as exc:
                _emit_error(GameError.VALIDATION_ERROR, str(exc))
    return wrapper


def _caller(registry):
    """Resolve the calling socket to (player_id, game), emitting NOT_IN_GAME if unknown."""
    player_id = _sid_to_player.get(_get_sid())
    game = registry.get_game_by_player_id(player_id) if player_id else None
    if game is None or player_id not in game.players:
        _emit_error(GameError.NOT_IN_GAME)
        return None, None
    return player_id, game


def _announce_departure(game, player_id: str, was_setup: bool) -> None:
    emit('player_left', {'playerId': player_id}, to=_room(game))
    if was_setup:
        _announce_if_playing(game)
    _broadcast_state(game)


def _detach(registry, sid: str) -> None:
    """Drop whatever game this socket was playing in before it creates or joins another."""
    player_id = _sid_to_player.pop(sid, None)
    if not player_id:
        return
    previous = registry.get_game_by_player_id(player_id)
    was_setup = previous is not None and previous.phase is Phase.SETUP
    if previous is not None:
        leave_room(_room(previous))
    game = registry.leave_game(player_id)
    if game is not None:
        _announce_departure(game, player_id, was_setup)


# ---- connection lifecycle ----

def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    sid = _get_sid()
    player_id = _sid_to_player.pop(sid, None)
    if not player_id:
        return
    registry = get_registry()
    with registry.lock:
        game = registry.disconnect_player(player_id)
        if game is not None:
            emit('state_update', {'gameState': game.to_dict()}, to=_room(game), include_self=False)


# ---- lobby ----

@_game_event
def handle_create_game(registry, data):
    host_name, player_count = validation.create_game(data)
    sid = _get_sid()
    _detach(registry, sid)
    try:
        game, player_id = registry.create_game(host_name, player_count, sid=sid)
    except RuntimeError:
        current_app.logger.exception("[create-failed]")
        _emit_error(GameError.CREATE_FAILED)
        return
    _sid_to_player[sid] = player_id
    join_room(_room(game))
    emit('game_created', {'roomCode': game.room_code, 'playerId': player_id})
    emit('state_update', {'gameState': game.to_dict()})


@_game_event
def handle_join_game(registry, data):
    room_code, player_name, reconnect = validation.join_game(data)
    sid = _get_sid()
    _detach(registry, sid)
    result = registry.join_game(room_code, player_name, sid=sid, reconnect=reconnect)
    if not result.success:
        _emit_error(result.error)
        return

    game, player_id = result.game, result.player_id
    _sid_to_player[sid] = player_id
    join_room(_room(game))
    payload = {
        'gameState': game.to_dict(),
        'playerId': player_id,
        'isReconnection': result.is_reconnection,
    }
    if result.is_reconnection:
        payload['timerState'] = game.timer_values() if game.phase is Phase.PLAYING else {'room0Timer': None, 'room1Timer': None}
        player = game.players[player_id]
        if player.role is not None:
            _send_private(player, 'role_assigned', {
                'role': player.role.to_dict(),
                'servantKingId': (game.servant_info or {}).get(player_id),
            })
    emit('game_joined', payload)
    if not result.is_reconnection:
        emit('player_joined', {'player': game.players[player_id].to_dict()}, to=_room(game), include_self=False)
    _broadcast_state(game)


@_game_event
def handle_leave_game(registry, data):
    sid = _get_sid()
    player_id = _sid_to_player.pop(sid, None)
    if not player_id:
        return
    previous = registry.get_game_by_player_id(player_id)
    was_setup = previous is not None and previous.phase is Phase.SETUP
    if previous is not None:
        leave_room(_room(previous))
    game = registry.leave_game(player_id)
    emit('left', {'playerId': player_id})
    if game is not None:
        _announce_departure(game, player_id, was_setup)


@_game_event
def handle_player_ready(registry, data):
    player_id, game = _caller(registry)
    if game is None:
        return
    ready = not game.players[player_id].is_ready
    if session.set_ready(game, player_id, ready) is None:
        _emit_error(GameError.INVALID_ACTION, 'You can only change readiness in the lobby')
        return
    emit('player_ready_changed', {'playerId': player_id, 'ready': ready}, to=_room(game))
    _broadcast_state(game)


@_game_event
def handle_kick_player(registry, data):
    target_id = validation.target(data)
    player_id, game = _caller(registry)
    if game is None:
        return
    target = game.players.get(target_id)
    was_setup = game.phase is Phase.SETUP
    if registry.kick_player(player_id, target_id) is None:
        if not game.players[player_id].is_host:
            _emit_error(GameError.NOT_HOST)
        else:
            _emit_error(GameError.INVALID_ACTION, 'Cannot kick that player')
        return
    if target.sid:
        emit('player_kicked', {'playerId': target_id}, to=target.sid)
        leave_room(_room(game), sid=target.sid, namespace=request.namespace)
        _sid_to_player.pop(target.sid, None)
    _announce_departure(game, target_id, was_setup)


@_game_event
def handle_start_game(registry, data):
    player_id, game = _caller(registry)
    if game is None:
        return
    if not game.players[player_id].is_host:
        _emit_error(GameError.NOT_HOST)
        return
    if session.start_game(game, player_id) is None:
        current_app.logger.info(
            f"[start-failed] game={game.room_code} players={len(game.players)}/{game.player_count} "
            f"ready={sum(1 for p in game.players.values() if p.is_ready)}"
        )
        _emit_error(GameError.START_FAILED)
        return

    for player in game.players.values():
        _send_private(player, 'role_assigned', {
            'role': player.role.to_dict(),
            'servantKingId': (game.servant_info or {}).get(player.id),
        })
        _send_private(player, 'room_assignment', {'room': player.current_room})

    emit('game_started', {'gameState': game.to_dict()}, to=_room(game))
    emit('phase_changed', {'phase': Phase.SETUP.value}, to=_room(game))
    _broadcast_state(game)


@_game_event
def handle_restart_game(registry, data):
    player_id, game = _caller(registry)
    if game is None:
        return
    if session.restart_game(game, player_id) is None:
        _emit_error(GameError.NOT_HOST)
        return
    emit('phase_changed', {'phase': Phase.LOBBY.value}, to=_room(game))
    _broadcast_state(game)


# ---- setup ----

def _announce_if_playing(game) -> bool:
    if game.phase is Phase.PLAYING:
        emit('phase_changed', {'phase': Phase.PLAYING.value}, to=_room(game))
        emit('timer_update', game.timer_values(), to=_room(game))
        return True
    return False


@_game_event
def handle_player_role_ready(registry, data):
    player_id, game = _caller(registry)
    if game is None:
        return
    ready = not game.players[player_id].is_role_ready
    if session.set_role_ready(game, player_id, ready, cooldown=registry.cooldown_sec) is None:
        _emit_error(GameError.INVALID_ACTION, 'Role readiness only applies during setup')
        return
    emit('player_role_ready_changed', {'playerId': player_id, 'ready': ready}, to=_room(game))
    _announce_if_playing(game)
    _broadcast_state(game)


@_game_event
def handle_confirm_room(registry, data):
    room = validation.confirm_room(data)
    player_id, game = _caller(registry)
    if game is None:
        return
    if session.confirm_room(game, player_id, room, cooldown=registry.cooldown_sec) is None:
        _emit_error(GameError.INVALID_ACTION, 'Rooms can only be confirmed during setup')
        return
    emit('room_confirmed', {'playerId': player_id, 'room': room}, to=_room(game))
    if not _announce_if_playing(game):
        emit('room_confirmation_progress', session.confirmation_progress(game), to=_room(game))
    _broadcast_state(game)


# ---- playing ----

@_game_event
def handle_point_at_player(registry, data):
    target_id = validation.target(data, nullable=True)
    player_id, game = _caller(registry)
    if game is None:
        return
    room_index = game.players[player_id].current_room
    leader_before = game.rooms[room_index].leader_id
    if session.update_pointing(game, player_id, target_id) is None:
        _emit_error(GameError.INVALID_ACTION, 'You cannot point right now')
        return
    emit('pointing_changed', {'playerId': player_id, 'targetId': target_id}, to=_room(game))
    leader_after = game.rooms[room_index].leader_id
    if leader_after and leader_after != leader_before:
        emit('leader_elected', {'roomIndex': room_index, 'leaderId': leader_after}, to=_room(game))
    _broadcast_state(game)


@_game_event
def handle_declare_leader(registry, data):
    player_id, game = _caller(registry)
    if game is None:
        return
    if session.declare_leader(game, player_id) is None:
        _emit_error(GameError.INVALID_ACTION, 'You cannot declare leadership right now')
        return
    room_index = game.players[player_id].current_room
    emit('leader_elected', {'roomIndex': room_index, 'leaderId': player_id}, to=_room(game))
    _broadcast_state(game)


def _announce_move(game, target_id: str, from_room: int) -> None:
    target = game.players[target_id]
    emit('player_sent', {'playerId': target_id, 'fromRoom': from_room, 'toRoom': target.current_room}, to=_room(game))
    _send_private(target, 'room_assignment', {'room': target.current_room})
    _broadcast_state(game)


@_game_event
def handle_send_player(registry, data):
    target_id = validation.target(data)
    player_id, game = _caller(registry)
    if game is None:
        return
    target = game.players.get(target_id)
    from_room = target.current_room if target else None
    if session.send_player(game, player_id, target_id, cooldown=registry.cooldown_sec) is None:
        _emit_error(GameError.INVALID_ACTION, 'Cannot send that player now')
        return
    current_app.logger.info(f"[player-sent] game={game.room_code} leader={player_id} target={target_id}")
    _announce_move(game, target_id, from_room)


@_game_event
def handle_gatekeeper_send(registry, data):
    target_id = validation.target(data)
    player_id, game = _caller(registry)
    if game is None:
        return
    target = game.players.get(target_id)
    from_room = target.current_room if target else None
    if session.gatekeeper_send(game, player_id, target_id) is None:
        _emit_error(GameError.INVALID_ACTION, 'Gatekeeper ability unavailable')
        return
    current_app.logger.info(f"[gatekeeper-send] game={game.room_code} gatekeeper={player_id} target={target_id}")
    _announce_move(game, target_id, from_room)


@_game_event
def handle_swordsmith_confirm(registry, data):
    assassin_id = validation.target(data, 'assassinId')
    player_id, game = _caller(registry)
    if game is None:
        return
    if session.swordsmith_confirm(game, player_id, assassin_id) is None:
        _emit_error(GameError.INVALID_ACTION, 'Swordsmith confirmation not allowed')
        return
    _send_private(game.players[assassin_id], 'swordsmith_confirmed', {'assassinId': assassin_id})
    _broadcast_state(game)


@_game_event
def handle_request_state(registry, data):
    player_id, game = _caller(registry)
    if game is None:
        return
    emit('state_update', {'gameState': game.to_dict()})


def handle_ping(data):
    emit('pong', data or {})


HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'create_game': handle_create_game,
    'join_game': handle_join_game,
    'leave_game': handle_leave_game,
    'player_ready': handle_player_ready,
    'kick_player': handle_kick_player,
    'start_game': handle_start_game,
    'restart_game': handle_restart_game,
    'player_role_ready': handle_player_role_ready,
    'confirm_room': handle_confirm_room,
    'point_at_player': handle_point_at_player,
    'declare_leader': handle_declare_leader,
    'send_player': handle_send_player,
    'gatekeeper_send': handle_gatekeeper_send,
    'swordsmith_confirm': handle_swordsmith_confirm,
    'request_state': handle_request_state,
    'ping': handle_ping,
}


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    for event, handler in HANDLERS.items():
        socketio.on_event(event, handler, namespace='/ws')
    if testing:
        # Test-only mirror on default namespace
        for event, handler in HANDLERS.items():
            socketio.on_event(event, handler, namespace='/')
