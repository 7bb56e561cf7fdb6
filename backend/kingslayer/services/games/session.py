"""Per-game state machine.

Every operation takes the :class:`GameSession` it mutates and the acting
player's id. Guards are evaluated before any mutation; a failed guard
returns ``None`` and leaves the session untouched.

Phases only move forward (lobby -> setup -> playing -> ended) except for a
host restart, which drops the whole game back to the lobby.
"""
import logging
from typing import Optional, Tuple

from kingslayer.models import (
    LEADER_COOLDOWN_SEC, GameSession, Phase, Player, RoleType, Room, RoomTimer, Team,
    Victory, now_ms,
)
from .assignment import assign_rooms, build_servant_info, distribute_roles
from .election import check_leader_election

logger = logging.getLogger(__name__)


def _player_in_phase(game: Optional[GameSession], player_id: str, phase: Phase) -> Optional[Player]:
    if game is None or game.phase is not phase:
        return None
    return game.players.get(player_id)


def _move_player(game: GameSession, target: Player) -> Tuple[int, int]:
    from_room = target.current_room
    to_room = 1 - from_room
    game.rooms[from_room].discard(target.id)
    game.rooms[to_room].players.append(target.id)
    target.current_room = to_room
    # A leader who is moved out loses the room they were leading
    if game.rooms[from_room].leader_id == target.id:
        game.rooms[from_room].leader_id = None
        target.is_leader = False
    return from_room, to_room


# ---- lobby ----

def set_ready(game, player_id, ready):
    player = _player_in_phase(game, player_id, Phase.LOBBY)
    if player is None:
        return None
    player.is_ready = bool(ready)
    return game


def can_start(game: GameSession) -> bool:
    return (
        game.phase is Phase.LOBBY
        and len(game.players) == game.player_count
        and all(p.is_ready for p in game.players.values())
    )


def start_game(game, player_id):
    """lobby -> setup: deal roles, split the rooms, build the servant map."""
    player = _player_in_phase(game, player_id, Phase.LOBBY)
    if player is None or not player.is_host or not can_start(game):
        return None

    player_ids = list(game.players)
    for pid, role in zip(player_ids, distribute_roles(len(player_ids))):
        game.players[pid].role = role

    room0, room1 = assign_rooms(player_ids)
    for idx, members in enumerate((room0, room1)):
        game.rooms[idx].players = list(members)
        game.rooms[idx].leader_id = None
        game.rooms[idx].leader_elected_at = None
        for pid in members:
            game.players[pid].current_room = idx
            game.players[pid].is_room_confirmed = False
            game.players[pid].is_role_ready = False

    if len(player_ids) >= 14:
        game.servant_info = build_servant_info(game.players)

    game.phase = Phase.SETUP
    logger.info(f"[setup] game={game.room_code} rooms={len(room0)}/{len(room1)}")
    return game


# ---- setup ----

def begin_playing_if_ready(game: GameSession, cooldown: int = LEADER_COOLDOWN_SEC) -> bool:
    """setup -> playing once every remaining player is room-confirmed and role-ready.

    Re-run after anything that changes those flags or the player set.
    Returns True only when this call made the transition.
    """
    if game is None or game.phase is not Phase.SETUP or not game.players:
        return False
    players = game.players.values()
    if not all(p.is_room_confirmed for p in players):
        return False
    if not all(p.is_role_ready for p in players):
        return False
    game.phase = Phase.PLAYING
    for timer in game.timers:
        timer.start(cooldown)
    logger.info(f"[playing] game={game.room_code} cooldowns={cooldown}s")
    return True


def set_role_ready(game, player_id, ready, cooldown=LEADER_COOLDOWN_SEC):
    player = _player_in_phase(game, player_id, Phase.SETUP)
    if player is None:
        return None
    player.is_role_ready = bool(ready)
    begin_playing_if_ready(game, cooldown)
    return game


def confirm_room(game, player_id, room=None, cooldown=LEADER_COOLDOWN_SEC):
    """Mark the caller as physically present in their assigned room.

    ``room`` is what the client claims; the assignment made at setup is
    authoritative, so it is only logged.
    """
    player = _player_in_phase(game, player_id, Phase.SETUP)
    if player is None:
        return None
    player.is_room_confirmed = True
    if room is not None and room != player.current_room:
        logger.info(f"[room-confirm] game={game.room_code} player={player_id} claimed room {room}, assigned {player.current_room}")
    begin_playing_if_ready(game, cooldown)
    return game


def confirmation_progress(game):
    if game is None or game.phase is not Phase.SETUP:
        return None
    players = list(game.players.values())
    return {
        'confirmed': sum(1 for p in players if p.is_room_confirmed),
        'total': len(players),
        'names': [p.name for p in players if not p.is_room_confirmed],
    }


# ---- playing ----

def update_pointing(game, player_id, target_id):
    player = _player_in_phase(game, player_id, Phase.PLAYING)
    if player is None:
        return None
    if target_id is not None and target_id not in game.players:
        return None
    player.pointing_at = target_id
    leader_id = check_leader_election(game, player.current_room)
    if leader_id:
        logger.info(f"[leader-elected] game={game.room_code} room={player.current_room} leader={leader_id}")
    return game


def declare_leader(game, player_id):
    """Self-declared leadership. Bypasses the majority count."""
    player = _player_in_phase(game, player_id, Phase.PLAYING)
    if player is None:
        return None
    room = game.rooms[player.current_room]
    if room.leader_id and room.leader_id in game.players:
        game.players[room.leader_id].is_leader = False
    room.leader_id = player_id
    room.leader_elected_at = now_ms()
    player.is_leader = True
    return game


def send_player(game, leader_id, target_id, cooldown=LEADER_COOLDOWN_SEC):
    """Leader moves a roommate to the other room once the room cooldown hits zero."""
    leader = _player_in_phase(game, leader_id, Phase.PLAYING)
    target = game.players.get(target_id) if leader else None
    if leader is None or target is None or not leader.is_leader:
        return None
    if leader.current_room != target.current_room:
        return None
    room_index = leader.current_room
    timer = game.timers[room_index]
    if timer.cooldown is None or timer.cooldown > 0:
        return None

    _move_player(game, target)
    timer.start(cooldown)
    return game


def gatekeeper_send(game, gatekeeper_id, target_id):
    """One-shot Gatekeeper move. Ignores and does not reset the cooldown."""
    gatekeeper = _player_in_phase(game, gatekeeper_id, Phase.PLAYING)
    target = game.players.get(target_id) if gatekeeper else None
    if gatekeeper is None or target is None:
        return None
    if gatekeeper.role is None or gatekeeper.role.type is not RoleType.GATEKEEPER:
        return None
    if gatekeeper.has_used_ability or gatekeeper.current_room != target.current_room:
        return None

    gatekeeper.has_used_ability = True
    _move_player(game, target)
    return game


def swordsmith_confirm(game, swordsmith_id, assassin_id):
    swordsmith = _player_in_phase(game, swordsmith_id, Phase.PLAYING)
    assassin = game.players.get(assassin_id) if swordsmith else None
    if swordsmith is None or assassin is None:
        return None
    if swordsmith.role is None or swordsmith.role.type is not RoleType.SWORDSMITH:
        return None
    if assassin.role is None or assassin.role.type is not RoleType.ASSASSIN:
        return None
    if swordsmith.role.team is not assassin.role.team:
        return None
    assassin.can_assassinate = True
    return game


# ---- out of band ----

def end_game(game, winner: Team, reason: str):
    """Record a result reported from outside the engine. playing -> ended."""
    if game is None or game.phase is not Phase.PLAYING:
        return None
    game.victory = Victory(Team(winner), reason)
    game.phase = Phase.ENDED
    return game


def restart_game(game, host_id):
    """Host-only reset to the lobby. Players, names and connections survive."""
    if game is None:
        return None
    host = game.players.get(host_id)
    if host is None or not host.is_host:
        return None

    for player in game.players.values():
        player.reset_for_lobby()
        player.is_host = False
    if game.original_host_id in game.players:
        game.players[game.original_host_id].is_host = True
    else:
        host.is_host = True

    game.phase = Phase.LOBBY
    game.rooms = [Room(), Room()]
    game.timers = [RoomTimer(), RoomTimer()]
    game.servant_info = None
    game.victory = None
    logger.info(f"[restart] game={game.room_code} by={host_id}")
    return game
