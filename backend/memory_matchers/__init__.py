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


class GameServices:
    """Per-app game wiring kept in ``app.extensions['memory_matchers']``."""

    def __init__(self, registry, scheduler, store):
        self.registry = registry
        self.scheduler = scheduler
        self.store = store
        # Last accepted tap per game code, for TAP_DEBOUNCE_MS
        self.last_tap_at = {}

    def forget(self, game_code):
        self.last_tap_at.pop(game_code.upper(), None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    flask_app.extensions['memory_matchers'] = _build_game_services(flask_app)

    # Import and register blueprints here
    from memory_matchers.main import main
    flask_app.register_blueprint(main)

    from memory_matchers.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from memory_matchers.api.scores import scores
    flask_app.register_blueprint(scores, url_prefix='/api/scores')

    from memory_matchers.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database."""
        import memory_matchers.models  # noqa: F401
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app


def _build_game_services(flask_app):
    from memory_matchers.services.games import (
        DEFAULT_FACES,
        GameSession,
        ManualScheduler,
        SessionController,
        SessionRegistry,
        SqlScoreStore,
        TaskScheduler,
    )
    from memory_matchers.socketio_events import broadcast_game_event

    cfg = flask_app.config
    # Tests drive pair evaluation by hand unless explicitly opted in
    if cfg.get('TESTING') and not cfg.get('ENABLE_SCHEDULER_IN_TESTS'):
        scheduler = ManualScheduler()
    else:
        scheduler = TaskScheduler(socketio.start_background_task, socketio.sleep)
    store = SqlScoreStore()
    faces = cfg.get('CARD_FACES') or DEFAULT_FACES
    delay = float(cfg.get('EVALUATION_DELAY_SEC', 0.5))
    modes = cfg.get('GRID_MODES') or None
    idle_timeout = float(cfg.get('SESSION_IDLE_TIMEOUT_SEC') or 0)

    def _new_session():
        return GameSession(faces=faces, scheduler=scheduler, evaluation_delay=delay)

    def _new_controller(game_code):
        controller = SessionController(store, session_factory=_new_session, modes=modes)
        controller.subscribe(lambda event: broadcast_game_event(game_code, event))
        return controller

    flask_app.logger.info(f"[setup] scheduler={type(scheduler).__name__} delay={delay}s modes={modes}")
    registry = SessionRegistry(_new_controller, idle_timeout=idle_timeout)
    return GameServices(registry, scheduler, store)
