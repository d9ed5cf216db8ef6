from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

EXTENSION_KEY = 'whosaid'


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Per-app services; their lifetime is the app's
    from whosaid.services.games.manager import GameStateManager
    from whosaid.services.rate_limit import RateLimiter
    from whosaid.services.store import SessionStore

    store = SessionStore(ttl_sec=int(flask_app.config.get('SESSION_TTL_SEC', 24 * 60 * 60)))
    flask_app.extensions[EXTENSION_KEY] = {
        'store': store,
        'manager': GameStateManager(
            store, code_attempts=int(flask_app.config.get('CODE_GENERATION_ATTEMPTS', 10))
        ),
        'rate_limiter': RateLimiter(),
        'sockets': {},
    }

    from whosaid.main import main
    flask_app.register_blueprint(main)

    from whosaid.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from whosaid.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('sessions-purge')
    def sessions_purge_command():
        """Deletes expired game sessions."""
        with flask_app.app_context():
            removed = store.purge_expired()
            print(f'Removed {removed} expired game session(s).')

    flask_app.cli.add_command(sessions_purge_command)

    return flask_app


def get_services():
    from flask import current_app
    return current_app.extensions[EXTENSION_KEY]
