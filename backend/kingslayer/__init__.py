from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO(async_mode=None)


def get_registry(flask_app=None):
    from flask import current_app
    return (flask_app or current_app).extensions['game_registry']


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One registry per app: owns every live game for this process
    from kingslayer.services.games.registry import GameRegistry
    registry = GameRegistry(
        cooldown_sec=int(flask_app.config.get('LEADER_COOLDOWN_SEC', 120)),
        code_length=int(flask_app.config.get('ROOM_CODE_LENGTH', 6)),
    )
    flask_app.extensions['game_registry'] = registry

    from kingslayer.main import main
    flask_app.register_blueprint(main)

    from kingslayer.api.games import games
    # Mount game routes under /api to match frontend API client
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from kingslayer.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from kingslayer.services.games.scheduler import start_cooldown_timer
    start_cooldown_timer(flask_app, registry)

    return flask_app
