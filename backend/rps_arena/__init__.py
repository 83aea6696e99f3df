from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

NAMESPACE = '/ws'

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = list(flask_app.config.get('CORS_ORIGINS') or [])
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from rps_arena.services.arena import Arena
    from rps_arena.socketio_events import flush, is_addressable, register_socketio_handlers

    flask_app.extensions['arena'] = Arena.from_config(
        flask_app.config,
        addressable=is_addressable,
        transport=flush,
    )

    from rps_arena.main import main
    flask_app.register_blueprint(main)

    # Register Socket.IO event handlers
    register_socketio_handlers()

    from rps_arena.services.arena.sweeps import start_sweeps
    start_sweeps(flask_app)

    return flask_app
