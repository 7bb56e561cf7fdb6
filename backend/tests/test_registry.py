import re

from kingslayer.errors import GameError
from kingslayer.models import Phase
from kingslayer.services.games import registry as registry_module
from kingslayer.services.games import session


def test_create_game_registers_host(registry):
    game, host_id = registry.create_game('Alice', 8)
    assert re.fullmatch(r'[A-Z0-9]{6}', game.room_code)
    assert game.phase is Phase.LOBBY
    assert game.player_count == 8
    assert game.players[host_id].is_host
    assert registry.get_game(game.room_code) is game
    assert registry.get_game(game.room_code.lower()) is game
    assert registry.get_game_by_player_id(host_id) is game


def test_room_codes_are_unique(registry):
    codes = {registry.create_game(f'Host{i}', 6)[0].room_code for i in range(300)}
    assert len(codes) == 300
    assert len(registry) == 300


def test_room_code_collision_is_retried(registry, monkeypatch):
    sequence = iter(['AAAAAA', 'AAAAAA', 'BBBBBB'])
    monkeypatch.setattr(registry_module, 'generate_room_code', lambda length=6: next(sequence))
    first, _ = registry.create_game('One', 6)
    second, _ = registry.create_game('Two', 6)
    assert (first.room_code, second.room_code) == ('AAAAAA', 'BBBBBB')


def test_join_game_errors(registry):
    assert registry.join_game('ZZZZZZ', 'Bob').error is GameError.GAME_NOT_FOUND

    game, _ = registry.create_game('Alice', 6)
    assert registry.join_game(game.room_code, 'ALICE').error is GameError.NAME_TAKEN

    for i in range(5):
        assert registry.join_game(game.room_code, f'P{i}').success
    result = registry.join_game(game.room_code, 'Late')
    assert result.error is GameError.GAME_FULL
    assert len(game.players) == 6


def test_join_is_case_insensitive_on_code(registry):
    game, _ = registry.create_game('Alice', 6)
    result = registry.join_game(game.room_code.lower(), 'Bob')
    assert result.success
    assert result.game is game
    assert not game.players[result.player_id].is_host


def test_join_outside_lobby_is_rejected(make_game, registry):
    game, ids = make_game(phase=Phase.SETUP)
    registry.leave_game(ids[-1])
    assert registry.join_game(game.room_code, 'Newcomer').error is GameError.GAME_IN_PROGRESS


def test_host_transfers_and_empty_game_is_destroyed(registry):
    game, host_id = registry.create_game('Alice', 6)
    bob = registry.join_game(game.room_code, 'Bob').player_id
    cara = registry.join_game(game.room_code, 'Cara').player_id

    assert registry.leave_game(host_id) is game
    hosts = [p for p in game.players.values() if p.is_host]
    assert len(hosts) == 1
    assert hosts[0].id in (bob, cara)
    assert registry.get_game_by_player_id(host_id) is None

    registry.leave_game(bob)
    assert registry.leave_game(cara) is None
    assert registry.get_game(game.room_code) is None
    assert len(registry) == 0


def test_leave_unknown_player(registry):
    assert registry.leave_game('ghost') is None


def test_leave_while_playing_removes_from_room(make_game, registry):
    game, ids = make_game(phase=Phase.PLAYING)
    leaver = ids[2]
    session.declare_leader(game, leaver)
    room_index = game.players[leaver].current_room
    registry.leave_game(leaver)
    assert leaver not in game.rooms[0].players + game.rooms[1].players
    assert game.rooms[room_index].leader_id is None
    assert set(game.rooms[0].players) | set(game.rooms[1].players) == set(game.players)


def test_kick_player(registry):
    game, host_id = registry.create_game('Alice', 6)
    bob = registry.join_game(game.room_code, 'Bob').player_id
    cara = registry.join_game(game.room_code, 'Cara').player_id

    assert registry.kick_player(bob, cara) is None
    assert registry.kick_player(host_id, host_id) is None
    assert registry.kick_player(host_id, 'ghost') is None
    assert registry.kick_player(host_id, bob) is game
    assert bob not in game.players
    assert registry.get_game_by_player_id(bob) is None


def test_disconnect_and_reconnect(make_game, registry):
    game, ids = make_game(phase=Phase.PLAYING)
    player = game.players[ids[3]]
    assert registry.disconnect_player(ids[3]) is game
    assert not player.connected and player.sid is None

    assert registry.join_game(game.room_code, player.name.upper()).error is GameError.GAME_IN_PROGRESS
    result = registry.join_game(game.room_code, player.name.upper(), sid='sid-2', reconnect=True)
    assert result.success and result.is_reconnection
    assert result.player_id == ids[3]
    assert player.connected and player.sid == 'sid-2'
    assert len(game.players) == 6


def test_reconnect_requires_disconnected_player(registry):
    game, _ = registry.create_game('Alice', 6)
    result = registry.join_game(game.room_code, 'alice', reconnect=True)
    assert result.error is GameError.NAME_TAKEN


def test_playing_games_filter(make_game, registry):
    playing, _ = make_game(phase=Phase.PLAYING)
    make_game(phase=Phase.LOBBY)
    assert registry.playing_games() == [playing]


def test_contains_ignores_case(registry):
    game, _ = registry.create_game('Alice', 6)
    assert game.room_code in registry
    assert game.room_code.lower() in registry
    assert 'NOPE00' not in registry


def test_last_unconfirmed_player_leaving_starts_play(make_game, registry):
    game, ids = make_game(phase=Phase.SETUP)
    for pid in ids[:-1]:
        session.set_role_ready(game, pid, True)
        session.confirm_room(game, pid)
    assert game.phase is Phase.SETUP

    assert registry.leave_game(ids[-1]) is game
    assert game.phase is Phase.PLAYING
    assert [t.cooldown for t in game.timers] == [120, 120]


def test_last_unconfirmed_player_kicked_starts_play(make_game, registry):
    game, ids = make_game(phase=Phase.SETUP)
    for pid in ids[:-1]:
        session.set_role_ready(game, pid, True)
        session.confirm_room(game, pid)

    assert registry.kick_player(ids[0], ids[-1]) is game
    assert game.phase is Phase.PLAYING


def test_leaving_setup_waits_for_remaining_players(make_game, registry):
    game, ids = make_game(phase=Phase.SETUP)
    session.set_role_ready(game, ids[0], True)
    session.confirm_room(game, ids[0])
    registry.leave_game(ids[-1])
    assert game.phase is Phase.SETUP
    assert [t.cooldown for t in game.timers] == [None, None]


def test_reconnect_fills_a_missing_host(registry):
    game, host_id = registry.create_game('Alice', 6)
    bob = registry.join_game(game.room_code, 'Bob').player_id
    registry.disconnect_player(bob)
    game.players[host_id].is_host = False

    result = registry.join_game(game.room_code, 'bob', reconnect=True)
    assert result.is_reconnection
    assert game.host is game.players[bob]


def test_reconnect_never_displaces_current_host(registry):
    game, host_id = registry.create_game('Alice', 6)
    bob = registry.join_game(game.room_code, 'Bob').player_id
    registry.disconnect_player(host_id)
    game.players[host_id].is_host = False
    game.players[bob].is_host = True

    assert registry.join_game(game.room_code, 'Alice', reconnect=True).player_id == host_id
    assert game.host is game.players[bob]
    assert not game.players[host_id].is_host
