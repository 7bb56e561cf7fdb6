import os
import sys
import pytest

# Ensure the backend root (containing the `kingslayer` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from kingslayer import create_app, get_registry, socketio
from kingslayer.models import Phase
from kingslayer.services.games import session
from kingslayer.services.games.registry import GameRegistry


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['http://localhost:5173']
    LEADER_COOLDOWN_SEC = 120
    TIMER_TICK_SEC = 1
    TIMER_HEARTBEAT_SEC = 0
    ROOM_CODE_LENGTH = 6
    SOCKET_DEBUG_LOG = False


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def app_registry(flask_app):
    return get_registry(flask_app)


@pytest.fixture()
def sio_factory(flask_app):
    created = []

    def _make():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace='/ws'
        )
        created.append(test_client)
        return test_client

    yield _make
    for test_client in created:
        try:
            test_client.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def sio_client(sio_factory):
    return sio_factory()


@pytest.fixture()
def registry():
    return GameRegistry()


@pytest.fixture()
def make_game(registry):
    """Build a full game in the requested phase. Returns (game, player_ids), host first."""
    def _make(size=6, phase=Phase.LOBBY):
        game, host_id = registry.create_game('Host', size)
        player_ids = [host_id]
        for i in range(1, size):
            player_ids.append(registry.join_game(game.room_code, f'Player{i}').player_id)
        if phase in (Phase.SETUP, Phase.PLAYING):
            for pid in player_ids:
                session.set_ready(game, pid, True)
            assert session.start_game(game, host_id) is game
        if phase is Phase.PLAYING:
            for pid in player_ids:
                session.set_role_ready(game, pid, True)
                session.confirm_room(game, pid, game.players[pid].current_room)
            assert game.phase is Phase.PLAYING
        return game, player_ids
    return _make
